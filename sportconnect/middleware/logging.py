"""
SportConnect Backend — Access Logging Middleware
================================================

What:  One log line per HTTP request on the `sportconnect.access` logger.
How:   Times the downstream call and logs method, path, status, duration,
       request id and client address. The level follows the status class:
       5xx → ERROR, 4xx → WARNING, everything else → INFO.
When:  Inside RequestIDMiddleware, so the request id is already set.

Request bodies are never logged: post text, bios and coordinates are
user data.

Example line:
    2026-05-02T18:04:11 [INFO] sportconnect.access: POST /api/posts/9f1c.../like 200 14.2ms [a1b2c3d4] from 10.0.0.7
"""

import logging
import time

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

from sportconnect.middleware.request_id import request_id_var

logger = logging.getLogger("sportconnect.access")

# Probed every few seconds by the orchestrator
QUIET_PATHS = frozenset({"/health"})


def level_for_status(status: int) -> int:
    if status >= 500:
        return logging.ERROR
    if status >= 400:
        return logging.WARNING
    return logging.INFO


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Access log with request-id correlation and per-request duration."""

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        path = request.url.path
        if path in QUIET_PATHS:
            return await call_next(request)

        start_time = time.perf_counter()
        response = await call_next(request)
        duration_ms = (time.perf_counter() - start_time) * 1000

        client_ip = request.client.host if request.client else "unknown"
        rid = request_id_var.get("")
        status = response.status_code

        logger.log(
            level_for_status(status),
            "%s %s %d %.1fms [%s] from %s",
            request.method,
            path,
            status,
            duration_ms,
            rid,
            client_ip,
            extra={
                "request_id": rid,
                "method": request.method,
                "path": path,
                "status": status,
                "duration_ms": round(duration_ms, 2),
                "client_ip": client_ip,
            },
        )
        return response
