# Middleware package init
"""
PlantScan Backend - Middleware Package
========================================

Middleware Chain (order matters!):
    Request → [Request ID] → [Logging] → [GZip] → [CORS] → Route Handler

    1. Request ID: correlation ID for logs and error bodies
    2. Logging:    access line with the ID, status and duration
    3. CORS:       FastAPI's CORSMiddleware answers preflight OPTIONS for
                   every path (/scan, /upload, /delete-image, ...)

    Responses pass back through the chain in reverse order.
"""
