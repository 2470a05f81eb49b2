"""
PlantScan Backend - Request Logging Middleware
================================================

What:  One access-log line per HTTP request with status, duration and,
       for the record endpoints, the PlantList key the request named.
How:   Route handlers tag the request with tag_record_key() once the key
       is parsed; the middleware reads the tag after the response is built
       and picks the level from the status code (5xx ERROR, 4xx WARNING,
       otherwise INFO).

Example:
    POST /upload 201 12.4ms key=7/99 [1f0e2d3c] from 10.0.0.5
    POST /scan 400 1.1ms key=- [9a8b7c6d] from 10.0.0.5

Not logged: request bodies, uploaded file contents, raw QR strings
"""

import logging
import time

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

from plantscan.middleware.request_id import request_id_var
from plantscan.services.scan_parser import ParsedIdentifiers

logger = logging.getLogger("plantscan.access")

NO_KEY = "-"


def tag_record_key(request: Request, ids: ParsedIdentifiers) -> None:
    """Remember which record this request targets, for the access line."""
    request.state.record_key = f"{ids.group_id}/{ids.plant_id}"


def _level_for(status: int) -> int:
    if status >= 500:
        return logging.ERROR
    if status >= 400:
        return logging.WARNING
    return logging.INFO


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Access logger; GET /health and GET /uploads/* are probe and asset traffic and skipped."""

    def __init__(self, app, skip_prefixes=("/health", "/uploads/")):
        super().__init__(app)
        self.skip_prefixes = tuple(skip_prefixes)

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        path = request.url.path
        if path.startswith(self.skip_prefixes):
            return await call_next(request)

        start_time = time.perf_counter()
        response = await call_next(request)
        duration_ms = (time.perf_counter() - start_time) * 1000

        rid = request_id_var.get("")
        record_key = getattr(request.state, "record_key", NO_KEY)
        client_ip = request.client.host if request.client else "unknown"
        status = response.status_code

        logger.log(
            _level_for(status),
            "%s %s %d %.1fms key=%s [%s] from %s",
            request.method,
            path,
            status,
            duration_ms,
            record_key,
            rid,
            client_ip,
            extra={
                "request_id": rid,
                "record_key": record_key,
                "status": status,
                "duration_ms": round(duration_ms, 2),
            },
        )
        return response
