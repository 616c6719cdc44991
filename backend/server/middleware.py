"""
HTTP request logging middleware.

Pure ASGI (no BaseHTTPMiddleware) so streaming responses and client
disconnects pass through untouched. One HTTP_REQUEST event per request,
emitted when the response has finished or the request was abandoned.
"""

from __future__ import annotations

import time

from starlette.types import ASGIApp, Message, Receive, Scope, Send

from observability.logger import log_event


class RequestLogMiddleware:
    """Log method, path, status, duration and client of every HTTP request."""

    def __init__(self, app: ASGIApp) -> None:
        self.app = app

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        start_ns = time.monotonic_ns()
        status: dict[str, int | None] = {"code": None}

        async def send_wrapper(message: Message) -> None:
            if message["type"] == "http.response.start":
                status["code"] = message["status"]
            await send(message)

        try:
            await self.app(scope, receive, send_wrapper)
        finally:
            client = scope.get("client")
            code = status["code"]
            log_event({
                "event_type": "HTTP_REQUEST",
                "method": scope.get("method"),
                "path": scope.get("path"),
                "status": code,
                "duration_ms": (time.monotonic_ns() - start_ns) // 1_000_000,
                "client": f"{client[0]}:{client[1]}" if client else None,
            }, level="WARN" if code is None or code >= 500 else "INFO")
