from __future__ import annotations

import logging

from fastapi import Request
from redis.exceptions import RedisError
from starlette.middleware.base import BaseHTTPMiddleware

from sitescope.api.exception_handlers import exception_response
from sitescope.core.errors import TooManyRequestsError
from sitescope.core.metrics import rate_limit_rejections_total
from sitescope.core.rate_limit import AdmissionGate
from sitescope.core.request_context import client_ip


logger = logging.getLogger("sitescope.rate_limit")


class RateLimitMiddleware(BaseHTTPMiddleware):
    def __init__(self, app, *, enabled: bool, gate: AdmissionGate) -> None:
        super().__init__(app)
        self._enabled = enabled
        self._gate = gate

    async def dispatch(self, request: Request, call_next):
        if not self._enabled:
            return await call_next(request)

        ip = client_ip(request)
        try:
            decisions = self._gate.admit(ip, method=request.method, path=request.url.path)
        except RedisError:
            logger.warning("rate_limit_store_unavailable_fail_open", extra={"client_ip": ip})
            return await call_next(request)

        if decisions and not decisions[-1].allowed:
            rejected = decisions[-1]
            rate_limit_rejections_total.labels(policy=rejected.policy.name).inc()
            response = exception_response(request, TooManyRequestsError(rejected.policy.message))
            response.headers.update(rejected.headers())
            response.headers["Retry-After"] = rejected.headers()["RateLimit-Reset"]
            return response

        response = await call_next(request)
        try:
            self._gate.record_outcome(ip, decisions, status_code=response.status_code)
        except RedisError:
            logger.warning("rate_limit_store_unavailable_on_release", extra={"client_ip": ip})
        if decisions:
            response.headers.update(decisions[-1].headers())
        return response
