"""
PlantScan Backend - Request ID Middleware
===========================================

What:  Tags each request with a short correlation ID, echoed back in the
       X-Request-ID response header and in every error body.
How:   A client-supplied X-Request-ID is kept when it is a plain token
       (letters, digits, "._-", at most 64 characters) so scanner logs can
       be matched against ours; anything else is replaced by 8 hex
       characters. The ID lives in a ContextVar for the exception handlers
       and on request.state for the access log.
"""

import re
import uuid
from contextvars import ContextVar

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

REQUEST_ID_HEADER = "X-Request-ID"
_CLIENT_ID = re.compile(r"[A-Za-z0-9._-]{1,64}", re.ASCII)

request_id_var: ContextVar[str] = ContextVar("request_id", default="")


def resolve_request_id(supplied: str) -> str:
    """Client ID if it is safe to log and echo, otherwise a fresh one."""
    if supplied and _CLIENT_ID.fullmatch(supplied):
        return supplied
    return uuid.uuid4().hex[:8]


class RequestIDMiddleware(BaseHTTPMiddleware):

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        rid = resolve_request_id(request.headers.get(REQUEST_ID_HEADER, ""))
        request_id_var.set(rid)
        request.state.request_id = rid

        response = await call_next(request)
        response.headers[REQUEST_ID_HEADER] = rid
        return response
