"""
BookAPI Backend - Request Deadline Middleware
==============================================

What:  Bounds how long one request may run.
How:   Runs the downstream app under asyncio.wait_for(). On expiry the
       request's task is cancelled, which cancels the awaited database call
       inside the gateway, and a 504 is sent if no response has started yet.

Pure ASGI (not BaseHTTPMiddleware) so the cancellation reaches the handler
coroutine directly.
"""

import asyncio
import logging
from typing import Any, Callable, Dict

from starlette.responses import JSONResponse

from bookapi.middleware.request_id import request_id_var

logger = logging.getLogger(__name__)


class RequestTimeoutMiddleware:
    def __init__(self, app: Callable[..., Any], timeout: float = 30.0) -> None:
        self.app = app
        self.timeout = timeout

    async def __call__(
        self, scope: Dict[str, Any], receive: Callable[..., Any], send: Callable[..., Any]
    ) -> None:
        if scope.get("type") != "http" or not self.timeout:
            await self.app(scope, receive, send)
            return

        response_started = False

        async def send_wrapper(message: Dict[str, Any]) -> None:
            nonlocal response_started
            if message.get("type") == "http.response.start":
                response_started = True
            await send(message)

        try:
            await asyncio.wait_for(self.app(scope, receive, send_wrapper), timeout=self.timeout)
        except asyncio.TimeoutError:
            rid = request_id_var.get("")
            logger.warning(
                "[%s] %s %s exceeded %.1fs deadline; in-flight work cancelled",
                rid,
                scope.get("method"),
                scope.get("path"),
                self.timeout,
            )
            if response_started:
                raise
            response = JSONResponse(
                status_code=504,
                content={
                    "error": "timeout",
                    "message": "The request took too long to complete. Please try again.",
                    "request_id": rid,
                },
            )
            await response(scope, receive, send)
