from __future__ import annotations

import logging
import time
import uuid
from typing import Any

from starlette.datastructures import Headers
from starlette.responses import JSONResponse
from starlette.types import ASGIApp, Message, Receive, Scope, Send

logger = logging.getLogger("document-service.guard")


class _BodyTooLarge(Exception):
    def __init__(self, received: int) -> None:
        super().__init__(f"request body exceeded limit after {received} bytes")
        self.received = received


class UploadSizeGuard:
    """Reject upload bodies larger than ``max_body_bytes`` with a 413.

    A declared ``Content-Length`` is checked up front.  The bytes actually
    received are counted as the endpoint reads them, so chunked bodies are
    cut off at the limit instead of being buffered whole.
    """

    WATCH_PATH_PREFIXES = ("/api/documents",)
    WATCH_METHODS = {"POST", "PUT"}

    def __init__(self, app: ASGIApp, *, max_body_bytes: int | None = None, **_: Any) -> None:
        self.app = app
        self.max_body_bytes = max_body_bytes if max_body_bytes and max_body_bytes > 0 else None

    def _watched(self, scope: Scope) -> bool:
        if scope["type"] != "http" or self.max_body_bytes is None:
            return False
        if scope.get("method") not in self.WATCH_METHODS:
            return False
        path = scope.get("path", "")
        return any(path.startswith(prefix) for prefix in self.WATCH_PATH_PREFIXES)

    def _reject(self) -> JSONResponse:
        return JSONResponse(
            status_code=413,
            content={
                "ok": False,
                "error": "REQUEST_BODY_TOO_LARGE",
                "limit": self.max_body_bytes,
            },
        )

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if not self._watched(scope):
            await self.app(scope, receive, send)
            return

        headers = Headers(scope=scope)
        path = scope["path"]
        method = scope["method"]
        rid = headers.get("X-Request-ID") or str(uuid.uuid4())[:8]
        start = time.time()

        content_length_header = headers.get("content-length")
        try:
            content_length = int(content_length_header) if content_length_header else None
        except (TypeError, ValueError):
            content_length = None

        limit = self.max_body_bytes or 0
        if content_length is not None and content_length > limit:
            logger.info(
                "[guard] rid=%s path=%s method=%s cl=%s rejected=oversize",
                rid,
                path,
                method,
                content_length_header,
            )
            await self._reject()(scope, receive, send)
            return

        received = 0
        status: int | None = None

        async def limited_receive() -> Message:
            nonlocal received
            message = await receive()
            if message["type"] == "http.request":
                received += len(message.get("body", b""))
                if received > limit:
                    raise _BodyTooLarge(received)
            return message

        async def tracking_send(message: Message) -> None:
            nonlocal status
            if message["type"] == "http.response.start":
                status = message["status"]
            await send(message)

        try:
            await self.app(scope, limited_receive, tracking_send)
        except _BodyTooLarge as exc:
            logger.info(
                "[guard] rid=%s path=%s method=%s cl=%s rejected=oversize received=%s",
                rid,
                path,
                method,
                content_length_header,
                exc.received,
            )
            if status is not None:
                raise
            await self._reject()(scope, receive, send)
            return

        duration_ms = int((time.time() - start) * 1000)
        logger.info(
            "[guard] rid=%s path=%s method=%s cl=%s received=%s status=%s dur_ms=%s",
            rid,
            path,
            method,
            content_length_header,
            received,
            status,
            duration_ms,
        )
