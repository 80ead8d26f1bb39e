from sitescope.core.middleware.metrics import MetricsMiddleware
from sitescope.core.middleware.rate_limit import RateLimitMiddleware
from sitescope.core.middleware.request_logging import RequestLoggingMiddleware
from sitescope.core.middleware.request_size_limit import RequestSizeLimitMiddleware
from sitescope.core.middleware.security_headers import SecurityHeadersMiddleware

__all__ = [
    "MetricsMiddleware",
    "RateLimitMiddleware",
    "RequestLoggingMiddleware",
    "RequestSizeLimitMiddleware",
    "SecurityHeadersMiddleware",
]
