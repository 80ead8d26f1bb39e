from __future__ import annotations

import time

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware

from sitescope.core.metrics import http_request_duration_seconds, http_requests_total


class MetricsMiddleware(BaseHTTPMiddleware):
    def __init__(self, app, *, enabled: bool) -> None:
        super().__init__(app)
        self._enabled = enabled

    async def dispatch(self, request: Request, call_next):
        if not self._enabled:
            return await call_next(request)
        started_at = time.perf_counter()
        response = await call_next(request)
        elapsed = time.perf_counter() - started_at
        # Route templates only; raw paths would explode label cardinality.
        template = getattr(request.scope.get("route"), "path", None) or "unmatched"
        http_requests_total.labels(method=request.method, path=template, status=str(response.status_code)).inc()
        http_request_duration_seconds.labels(method=request.method, path=template).observe(elapsed)
        return response
