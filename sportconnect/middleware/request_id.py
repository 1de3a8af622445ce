"""
SportConnect Backend — Request ID Middleware
============================================

What:  Gives every request a short correlation id and echoes it back in
       the X-Request-ID response header.
How:   Reuses the caller's X-Request-ID when present (the API client and
       mobile apps send one per user action), otherwise generates 8 hex
       characters. The id is kept in a ContextVar so exception handlers
       and the access logger can read it without a request object.
When:  Outermost application middleware; runs before logging.
"""

import uuid
from contextvars import ContextVar

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

# Coroutine-local: concurrent requests on one event loop each see their own id
request_id_var: ContextVar[str] = ContextVar("request_id", default="")


def new_request_id() -> str:
    return uuid.uuid4().hex[:8]


class RequestIDMiddleware(BaseHTTPMiddleware):
    """Assigns the request id and stores it in the ContextVar and request.state."""

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        rid = request.headers.get("X-Request-ID") or new_request_id()
        request_id_var.set(rid)
        request.state.request_id = rid

        response = await call_next(request)
        response.headers["X-Request-ID"] = rid
        return response
