from __future__ import annotations

from prometheus_client import CONTENT_TYPE_LATEST, Counter, Histogram, generate_latest


http_requests_total = Counter(
    "sitescope_http_requests_total",
    "Total number of HTTP requests.",
    ["method", "path", "status"],
)

http_request_duration_seconds = Histogram(
    "sitescope_http_request_duration_seconds",
    "HTTP request duration in seconds.",
    ["method", "path"],
)

rate_limit_rejections_total = Counter(
    "sitescope_rate_limit_rejections_total",
    "Requests rejected by the rate admission gate.",
    ["policy"],
)


def render_metrics() -> tuple[bytes, str]:
    return generate_latest(), CONTENT_TYPE_LATEST
