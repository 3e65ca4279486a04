"""
BookAPI Backend - Request Logging Middleware
=============================================

What:  One access-log line per HTTP request.
How:   Classifies the request into the same operation names the telemetry
       uses (get_all, get_by_id, create, update, delete, unsupported), then
       logs operation, status, duration, book id, request ID and client IP.
When:  After RequestIDMiddleware (uses the request ID for correlation).

Log levels:
    5xx → ERROR, 4xx → WARNING, everything else → INFO.
    /healthz is not logged (health checks hit it every few seconds).

Request bodies are never logged.

Example:
    PUT /books update → 404 in 3.2ms (book_id=42) [a1b2c3d4] from 10.0.0.7
"""

import logging
import time

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

from bookapi.middleware.request_id import request_id_var
from bookapi.middleware.telemetry import classify_operation

logger = logging.getLogger("bookapi.access")


def _level_for(status: int) -> int:
    if status >= 500:
        return logging.ERROR
    if status >= 400:
        return logging.WARNING
    return logging.INFO


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    EXCLUDED_PATHS = {"/healthz"}

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        path = request.url.path
        if path in self.EXCLUDED_PATHS:
            return await call_next(request)

        book_id = request.query_params.get("id") or None
        operation = classify_operation(request.method, path, book_id)
        started = time.perf_counter()

        response = await call_next(request)

        duration_ms = (time.perf_counter() - started) * 1000
        client_ip = request.client.host if request.client else "unknown"
        logger.log(
            _level_for(response.status_code),
            "%s %s %s → %d in %.1fms%s [%s] from %s",
            request.method,
            path,
            operation,
            response.status_code,
            duration_ms,
            f" (book_id={book_id})" if book_id is not None else "",
            request_id_var.get(""),
            client_ip,
            extra={
                "operation": operation,
                "book_id": book_id,
                "status": response.status_code,
                "duration_ms": round(duration_ms, 2),
                "client_ip": client_ip,
            },
        )
        return response
