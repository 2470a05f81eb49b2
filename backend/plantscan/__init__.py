"""
PlantScan Backend - Application Package
========================================

What: HTTP backend for the nursery inventory scanner. A QR tag is scanned,
      its two identifiers are extracted, the matching PlantList record is
      returned, and photos can be attached to or detached from that record.

Layering:

    ┌─────────────────────────────────────┐
    │           Routes (API Layer)        │  ← HTTP concerns only
    ├─────────────────────────────────────┤
    │   Services (parser, links, store)   │  ← Scan parsing, ImageLinks edits
    ├─────────────────────────────────────┤
    │       Models & Schemas (Data)       │  ← SQLAlchemy ORM + Pydantic
    ├─────────────────────────────────────┤
    │        Database (Persistence)       │  ← Async SQLAlchemy engine
    └─────────────────────────────────────┘

The database handle and the services are built once per process in the
application lifespan and handed to route handlers through FastAPI's
dependency injection (see plantscan.dependencies).
"""

__version__ = "1.0.0"
