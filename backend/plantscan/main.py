"""
PlantScan Backend - FastAPI Application Factory
=================================================

What:  Creates and configures the FastAPI application instance.
How:   create_app() wires middleware, exception handlers and routers;
       the lifespan opens the database and builds the services.
Who:   uvicorn (uvicorn plantscan.main:app), tests (create_app + attach_runtime).

Application Architecture:
    ┌─────────────────────────────────────────────────────┐
    │                   FastAPI App                       │
    │                                                     │
    │  Middleware Chain:                                  │
    │  ┌──────────┐ ┌─────────────┐ ┌──────┐ ┌──────────┐ │
    │  │ Req ID   │→│  Logging    │→│ GZip │→│  CORS    │ │
    │  └──────────┘ └─────────────┘ └──────┘ └──────────┘ │
    │                                                     │
    │  Routes:                                            │
    │  POST /scan   POST /upload   DELETE /delete-image   │
    │  GET /uploads/{name}   GET /   GET /health          │
    │                                                     │
    │  Exception Handlers:                                │
    │  InvalidPayload→400 │ NotFound→404 │ Storage→500    │
    └─────────────────────────────────────────────────────┘

Lifecycle:
    Startup:  logging → Database(settings) → FileService/InventoryService
              → app.state
    Shutdown: Database.dispose()
"""

import logging
import sys
from contextlib import asynccontextmanager
from typing import AsyncGenerator, Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse

from plantscan import __version__
from plantscan.config import Settings, settings
from plantscan.database import Database
from plantscan.exceptions import (
    FileOperationError,
    InvalidPayload,
    NotFoundError,
    PlantScanError,
    StorageError,
)
from plantscan.middleware.logging import RequestLoggingMiddleware
from plantscan.middleware.request_id import RequestIDMiddleware, request_id_var
from plantscan.routes import health, images, scan
from plantscan.services.file_service import FileService
from plantscan.services.inventory_service import InventoryService
from plantscan.services.inventory_store import inventory_store
from plantscan.services.scan_parser import ScanParser

logger = logging.getLogger(__name__)

CORS_METHODS = ["GET", "POST", "DELETE", "OPTIONS"]


# ══════════════════════════════════════════════════════════════════════════
# Logging Configuration
# ══════════════════════════════════════════════════════════════════════════

def setup_logging(log_level: str = "INFO") -> None:
    """
    Configure root logging once at startup.

    Format: 2024-06-10T12:00:00 [INFO] plantscan.services.inventory_service: Scan hit: ...
    """
    logging.basicConfig(
        level=getattr(logging, log_level, logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%dT%H:%M:%S",
        handlers=[logging.StreamHandler(sys.stdout)],
        force=True,
    )

    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
    logging.getLogger("aiosqlite").setLevel(logging.WARNING)


# ══════════════════════════════════════════════════════════════════════════
# Runtime Wiring
# ══════════════════════════════════════════════════════════════════════════

def attach_runtime(app: FastAPI, database: Database) -> InventoryService:
    """
    Build the services around an open Database and publish them on app.state.

    The lifespan calls this at startup; tests call it with their own
    Database since ASGI test transports do not run the lifespan.
    """
    app_settings: Settings = app.state.settings
    file_service = FileService(
        upload_dir=app_settings.upload_dir,
        url_prefix=app_settings.upload_url_prefix,
        max_file_size=app_settings.max_file_size,
    )
    parser = ScanParser(
        id_fields=app_settings.scan_id_field_pairs,
        raw_field=app_settings.scan_raw_field,
    )
    inventory_service = InventoryService(
        parser=parser,
        store=inventory_store,
        files=file_service,
        link_update_attempts=app_settings.link_update_attempts,
    )

    app.state.database = database
    app.state.file_service = file_service
    app.state.inventory_service = inventory_service
    return inventory_service


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    app_settings: Settings = app.state.settings

    setup_logging(app_settings.log_level)
    logger.info("PlantScan Backend starting up...")

    database = Database(app_settings)
    attach_runtime(app, database)
    logger.info("Upload directory: %s", app.state.file_service.upload_dir)
    logger.info("Server is running on port %d", app_settings.port)

    yield

    logger.info("PlantScan Backend shutting down...")
    await database.dispose()
    logger.info("Shutdown complete.")


# ══════════════════════════════════════════════════════════════════════════
# Exception Handlers
# ══════════════════════════════════════════════════════════════════════════

def _error_body(exc: PlantScanError, message: str, include_details: bool = False) -> dict:
    body = {
        "error": exc.error_code,
        "message": message,
        "request_id": request_id_var.get(""),
    }
    if include_details and exc.context:
        body["details"] = exc.context
    return body


def register_exception_handlers(app: FastAPI) -> None:
    """
    Map the exception hierarchy to HTTP responses.

        InvalidPayload      → 400 (message + details)
        NotFoundError       → 404 (RecordNotFound included)
        StorageError        → 500 generic message, context logged
        FileOperationError  → 500, context logged
        Exception           → 500 generic message, stack trace logged
    """

    @app.exception_handler(InvalidPayload)
    async def handle_invalid_payload(request: Request, exc: InvalidPayload):
        logger.warning("[%s] Invalid payload on %s: %s", request_id_var.get(""), request.url.path, exc.message)
        return JSONResponse(
            status_code=exc.status_code,
            content=_error_body(exc, exc.message, include_details=True),
        )

    @app.exception_handler(NotFoundError)
    async def handle_not_found(request: Request, exc: NotFoundError):
        return JSONResponse(
            status_code=exc.status_code,
            content=_error_body(exc, exc.message),
        )

    @app.exception_handler(StorageError)
    async def handle_storage_error(request: Request, exc: StorageError):
        logger.error(
            "[%s] Storage error on %s %s: %s | Context: %s",
            request_id_var.get(""),
            request.method,
            request.url.path,
            exc.message,
            exc.context,
        )
        return JSONResponse(
            status_code=exc.status_code,
            content=_error_body(exc, exc.message),
        )

    @app.exception_handler(FileOperationError)
    async def handle_file_operation_error(request: Request, exc: FileOperationError):
        logger.error(
            "[%s] File operation error on %s %s: %s | Context: %s",
            request_id_var.get(""),
            request.method,
            request.url.path,
            exc.message,
            exc.context,
        )
        return JSONResponse(
            status_code=exc.status_code,
            content=_error_body(exc, exc.message),
        )

    @app.exception_handler(Exception)
    async def handle_unexpected_error(request: Request, exc: Exception):
        rid = request_id_var.get("")
        logger.error("[%s] Unexpected error: %s", rid, str(exc), exc_info=True)
        return JSONResponse(
            status_code=500,
            content={
                "error": "internal_server_error",
                "message": "An unexpected error occurred. Please try again later.",
                "request_id": rid,
            },
        )


# ══════════════════════════════════════════════════════════════════════════
# Application Factory
# ══════════════════════════════════════════════════════════════════════════

def create_app(app_settings: Optional[Settings] = None) -> FastAPI:
    """Assemble middleware, handlers and routers for the given settings."""
    app_settings = app_settings or settings

    app = FastAPI(
        title="PlantScan API",
        description=(
            "Nursery inventory backend: look up plant records from QR tags "
            "and attach photos to them."
        ),
        version=__version__,
        lifespan=lifespan,
    )
    app.state.settings = app_settings

    # Last added = first to execute: RequestID → Logging → GZip → CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=app_settings.cors_origins_list,
        allow_methods=CORS_METHODS,
        allow_headers=["*"],
        expose_headers=["X-Request-ID"],
    )
    app.add_middleware(GZipMiddleware, minimum_size=500)
    app.add_middleware(RequestLoggingMiddleware)
    app.add_middleware(RequestIDMiddleware)

    register_exception_handlers(app)

    app.include_router(health.router)
    app.include_router(scan.router)
    app.include_router(images.router)
    app.include_router(images.files_router, prefix="/" + app_settings.upload_url_prefix.strip("/"))

    return app


app = create_app()
