"""Request body size limit for policy document uploads."""

import logging
from collections.abc import Callable

from fastapi import Request, Response, status
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

logger = logging.getLogger(__name__)

_BODY_METHODS = frozenset({"POST", "PUT", "PATCH"})


class RequestSizeLimitMiddleware(BaseHTTPMiddleware):
    """
    Answer 413 when a request body is larger than ``max_size_mb``.

    A declared Content-Length over the limit is refused before the body is
    read. Bodies of POST, PUT and PATCH requests are also measured, because
    the header can be absent or understate the size.
    """

    def __init__(self, app, max_size_mb: int = 1):
        super().__init__(app)
        self.max_size_bytes = max_size_mb * 1024 * 1024

    def _too_large(self, request: Request, size: int) -> Response:
        logger.warning(
            "Request body of %d bytes exceeds limit of %d bytes",
            size,
            self.max_size_bytes,
            extra={"path": request.url.path},
        )
        return JSONResponse(
            status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
            content={
                "error": "RequestTooLarge",
                "message": "Policy document exceeds maximum allowed size",
                "details": {"max_bytes": self.max_size_bytes},
            },
        )

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        declared = request.headers.get("content-length", "")
        if declared.isdigit() and int(declared) > self.max_size_bytes:
            return self._too_large(request, int(declared))

        if request.method not in _BODY_METHODS:
            return await call_next(request)

        body = await request.body()
        if len(body) > self.max_size_bytes:
            return self._too_large(request, len(body))

        # Downstream handlers read the body again from receive()
        async def replay():
            return {"type": "http.request", "body": body, "more_body": False}

        request._receive = replay
        return await call_next(request)
