"""
PlantScan Backend - Service Info & Health Routes
==================================================

What:  GET / (plain-text greeting identifying the service) and GET /health.
Who:   Browsers hitting the API root, Docker health checks, load balancers.

Status levels:
    - healthy:   database reachable and upload directory writable (HTTP 200)
    - degraded:  upload directory unavailable, lookups still work (HTTP 200)
    - unhealthy: database unreachable (HTTP 200, body says unhealthy)
"""

import logging
import os
import time

from fastapi import APIRouter, Request
from fastapi.responses import PlainTextResponse

from plantscan import __version__
from plantscan.schemas.plant import HealthResponse

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Health"])

_start_time = time.time()


@router.get("/", response_class=PlainTextResponse, summary="Service greeting")
async def root() -> str:
    return "PlantScan nursery inventory backend is running"


@router.get(
    "/health",
    response_model=HealthResponse,
    summary="Service health check",
)
async def health_check(request: Request) -> HealthResponse:
    """Probe the database (SELECT 1) and the upload directory."""
    overall = "healthy"

    database = request.app.state.database
    db_status = "connected" if await database.ping() else "disconnected"
    if db_status == "disconnected":
        overall = "unhealthy"

    upload_dir = request.app.state.file_service.upload_dir
    storage_status = "writable"
    if not (upload_dir.is_dir() and os.access(upload_dir, os.W_OK)):
        storage_status = "unavailable"
        logger.warning("Health check: upload directory not writable: %s", upload_dir)
        if overall == "healthy":
            overall = "degraded"

    return HealthResponse(
        status=overall,
        version=__version__,
        database=db_status,
        storage=storage_status,
        uptime_seconds=round(time.time() - _start_time, 2),
    )
