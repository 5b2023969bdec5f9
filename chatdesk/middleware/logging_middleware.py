"""
Request logging middleware for the local API.

Pure ASGI (not BaseHTTPMiddleware) so streamed replies pass through untouched.
Only the request line, status and timing are logged; message bodies carry
conversation text and API keys and are left out.
"""

import logging
import time
from typing import Optional

from starlette.types import ASGIApp, Message, Receive, Scope, Send

logger = logging.getLogger(__name__)


class RequestLoggingMiddleware:
    """Logs one line per request with status code and duration."""

    def __init__(self, app: ASGIApp, exclude_paths: Optional[list] = None):
        """
        Args:
            app: The ASGI application
            exclude_paths: Paths that are not logged (e.g., ["/health"])
        """
        self.app = app
        self.exclude_paths = exclude_paths or ["/health", "/"]

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http" or scope.get("path", "") in self.exclude_paths:
            await self.app(scope, receive, send)
            return

        start_time = time.time()
        method = scope.get("method", "UNKNOWN")
        path = scope.get("path", "")
        status_code = 0
        streaming = False

        async def logging_send(message: Message) -> None:
            nonlocal status_code, streaming
            if message["type"] == "http.response.start":
                status_code = message.get("status", 0)
                headers = dict(message.get("headers", []))
                streaming = headers.get(b"content-type", b"").startswith(b"text/event-stream")
            await send(message)

        try:
            await self.app(scope, receive, logging_send)
        except Exception as e:
            logger.error(
                f"Request failed: {method} {path} - {e}",
                exc_info=True,
                extra={"extra_fields": {
                    "method": method,
                    "path": path,
                    "duration_ms": round((time.time() - start_time) * 1000, 2),
                }}
            )
            raise

        duration_ms = (time.time() - start_time) * 1000
        if status_code < 400:
            log_level = logging.INFO
        elif status_code < 500:
            log_level = logging.WARNING
        else:
            log_level = logging.ERROR

        logger.log(
            log_level,
            f"Request completed: {method} {path} - {status_code} ({duration_ms:.2f}ms)",
            extra={"extra_fields": {
                "method": method,
                "path": path,
                "status_code": status_code,
                "duration_ms": round(duration_ms, 2),
                "streaming": streaming,
            }}
        )
