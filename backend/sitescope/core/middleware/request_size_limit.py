from __future__ import annotations

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware

from sitescope.api.exception_handlers import exception_response
from sitescope.core.errors import ApiError


_BODYLESS_METHODS = frozenset({"GET", "HEAD", "OPTIONS", "DELETE"})


def declared_length(request: Request) -> int | None:
    raw = request.headers.get("content-length")
    if raw is None:
        return None
    try:
        return int(raw)
    except ValueError:
        return None


class RequestSizeLimitMiddleware(BaseHTTPMiddleware):
    """Reject bodies over the configured size with a 413 envelope.

    Requests without a usable Content-Length (chunked uploads) are buffered
    and measured; the buffered body stays available to the route.
    """

    def __init__(self, app, *, max_request_body_bytes: int) -> None:
        super().__init__(app)
        self._limit = max_request_body_bytes

    async def _too_large(self, request: Request) -> bool:
        length = declared_length(request)
        if length is not None:
            return length > self._limit
        if request.method in _BODYLESS_METHODS:
            return False
        return len(await request.body()) > self._limit

    async def dispatch(self, request: Request, call_next):
        if await self._too_large(request):
            return exception_response(request, ApiError("Payload too large", status_code=413))
        return await call_next(request)
