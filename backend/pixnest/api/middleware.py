"""Request Size Guard: bounds every request body before route code parses it.

Invariants:
    - A declared Content-Length above max_bytes is refused without reading the body
    - Bodies without a Content-Length (chunked) are counted as they arrive; the
      request is cut off with 413 as soon as the count passes max_bytes
    - At most one response is sent: once the 413 is out, anything the app
      tries to send afterwards is dropped

Design Decisions:
    - Pure ASGI middleware over BaseHTTPMiddleware: only a wrapped `receive`
      sees body chunks before multipart parsing spools them
    - After the cut-off the app receives http.disconnect, so parsing stops
      the same way it would for a client that went away
"""

import logging
from typing import Callable

from starlette.datastructures import Headers
from starlette.responses import JSONResponse
from starlette.types import ASGIApp, Message, Receive, Scope, Send

from pixnest.core.errors import PayloadTooLargeError

logger = logging.getLogger(__name__)


class RequestSizeLimitMiddleware:
    """413 for request bodies larger than the configured ceiling."""

    def __init__(
        self,
        app: ASGIApp,
        max_bytes: Callable[[], int],
        media_max_bytes: Callable[[], int],
    ):
        self.app = app
        self._max_bytes = max_bytes
        self._media_max_bytes = media_max_bytes

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        limit = self._max_bytes()
        declared = Headers(scope=scope).get("content-length")
        if declared and declared.isdigit() and int(declared) > limit:
            await self._reject(scope, receive, send, f"{declared}-byte")
            return

        received = 0
        rejected = False
        response_started = False

        async def limited_receive() -> Message:
            nonlocal received, rejected
            if rejected:
                return {"type": "http.disconnect"}
            message = await receive()
            if message["type"] == "http.request":
                received += len(message.get("body", b""))
                if received > limit:
                    rejected = True
                    if not response_started:
                        await self._reject(scope, receive, send, f"over {limit}-byte streamed")
                    return {"type": "http.disconnect"}
            return message

        async def guarded_send(message: Message) -> None:
            nonlocal response_started
            if rejected:
                return
            if message["type"] == "http.response.start":
                response_started = True
            await send(message)

        try:
            await self.app(scope, limited_receive, guarded_send)
        except Exception as e:
            if not rejected:
                raise
            logger.debug(f"Request aborted after size cut-off: {e!r}")

    async def _reject(
        self, scope: Scope, receive: Receive, send: Send, size: str,
    ) -> None:
        exc = PayloadTooLargeError(self._media_max_bytes())
        logger.warning(
            f"Rejected {size} request body",
            extra={"path": scope.get("path"), "error_code": exc.code},
        )
        response = JSONResponse(status_code=exc.http_status, content=exc.to_response())
        await response(scope, receive, send)
