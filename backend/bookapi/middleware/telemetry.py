"""
BookAPI Backend - Request Telemetry Middleware
===============================================

What:  One span, one counter increment and one latency sample per request.
How:   Pure ASGI wrapper; captures the response status from the
       `http.response.start` message and classifies the request into an
       operation and an outcome once the downstream app returns.

Span:     "{METHOD} {path}", continuing an incoming `traceparent` if valid.
Metrics:  http.requests{operation,outcome}, http.request_ms{operation,outcome}

/metrics is excluded so scraping does not distort the numbers it reports.
"""

from time import perf_counter
from typing import Any, Callable, Dict, Optional
from urllib.parse import parse_qs

from bookapi.middleware.request_id import request_id_var
from bookapi.observability.telemetry import Telemetry
from bookapi.observability.tracing import parse_traceparent

BOOKS_PATH = "/books"

_BOOK_OPERATIONS = {
    "POST": "create",
    "PUT": "update",
    "DELETE": "delete",
}


def classify_operation(method: str, path: str, query_id: Optional[str]) -> str:
    if path.rstrip("/") != BOOKS_PATH:
        return path
    if method == "GET":
        return "get_by_id" if query_id is not None else "get_all"
    return _BOOK_OPERATIONS.get(method, "unsupported")


def classify_outcome(status_code: int) -> str:
    if 200 <= status_code < 400:
        return "success"
    if status_code == 400:
        return "invalid_request"
    if status_code == 404:
        return "not_found"
    if status_code == 405:
        return "method_not_allowed"
    if status_code == 504:
        return "timeout"
    if status_code >= 500:
        return "server_error"
    return "client_error"


class TelemetryMiddleware:
    EXCLUDED_PATHS = {"/metrics"}

    def __init__(self, app: Callable[..., Any], telemetry: Telemetry) -> None:
        self.app = app
        self.telemetry = telemetry

    async def __call__(
        self, scope: Dict[str, Any], receive: Callable[..., Any], send: Callable[..., Any]
    ) -> None:
        if scope.get("type") != "http" or scope.get("path") in self.EXCLUDED_PATHS:
            await self.app(scope, receive, send)
            return

        method = scope.get("method", "GET")
        path = scope.get("path", "")
        headers = {
            key.decode("latin-1").lower(): value.decode("latin-1")
            for key, value in scope.get("headers") or []
        }
        query_string = (scope.get("query_string") or b"").decode("latin-1")
        query = parse_qs(query_string)
        query_id = query["id"][0] if "id" in query else None
        operation = classify_operation(method, path, query_id)

        attributes: Dict[str, Any] = {
            "http.method": method,
            "http.url": f"{path}?{query_string}" if query_string else path,
            "http.user_agent": headers.get("user-agent", ""),
            "operation": operation,
        }
        if query_id is not None:
            attributes["book.query.id"] = query_id

        span_kwargs: Dict[str, Any] = {}
        parent = parse_traceparent(headers.get("traceparent"))
        if parent is not None:
            span_kwargs["trace_id"], span_kwargs["parent_id"] = parent

        status_code = 500

        async def send_wrapper(message: Dict[str, Any]) -> None:
            nonlocal status_code
            if message.get("type") == "http.response.start":
                status_code = int(message.get("status", 500))
            await send(message)

        start = perf_counter()
        try:
            with self.telemetry.span(f"{method} {path}", attributes, **span_kwargs) as span:
                try:
                    await self.app(scope, receive, send_wrapper)
                finally:
                    span.set_attribute("http.status_code", status_code)
                    span.set_attribute("request.id", request_id_var.get(""))
                    if status_code >= 500:
                        span.status = "error"
        finally:
            elapsed_ms = (perf_counter() - start) * 1000.0
            outcome = classify_outcome(status_code)
            self.telemetry.count("http.requests", operation=operation, outcome=outcome)
            self.telemetry.timing("http.request_ms", elapsed_ms, operation=operation, outcome=outcome)
