from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import Response

from sitescope.api.exception_handlers import register_exception_handlers
from sitescope.api.v1.router import build_api_router
from sitescope.core.config import Settings, get_settings
from sitescope.core.logging_config import configure_logging, get_context_logger
from sitescope.core.metrics import render_metrics
from sitescope.core.middleware import (
    MetricsMiddleware,
    RateLimitMiddleware,
    RequestLoggingMiddleware,
    RequestSizeLimitMiddleware,
    SecurityHeadersMiddleware,
)
from sitescope.core.rate_limit import AdmissionGate, CounterStore, InMemoryCounterStore, RedisCounterStore
from sitescope.db.session import reset_engine_state

OPENAPI_TAGS = [
    {"name": "Health", "description": "Health check endpoints"},
    {"name": "Demo", "description": "Demo endpoints showing request validation and error envelopes"},
]

settings = get_settings()
configure_logging(log_level=settings.log_level, app_env=settings.app_env, log_dir=settings.log_dir)
logger = get_context_logger("SERVER")


def build_counter_store(app_settings: Settings) -> CounterStore:
    if app_settings.rate_limit_backend.lower() == "redis":
        return RedisCounterStore.from_url(app_settings.redis_url)
    return InMemoryCounterStore()


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    app_settings: Settings = app.state.settings
    logger.info(
        "SiteScope server started",
        extra={
            "environment": app_settings.app_env,
            "rate_limit_backend": app_settings.rate_limit_backend,
            "docs_enabled": app_settings.docs_enabled,
        },
    )
    yield
    reset_engine_state()


async def metrics(_: Request) -> Response:
    payload, content_type = render_metrics()
    return Response(content=payload, media_type=content_type)


def create_app(app_settings: Settings | None = None, *, counter_store: CounterStore | None = None) -> FastAPI:
    app_settings = app_settings or get_settings()
    application = FastAPI(
        title=app_settings.app_name,
        version=app_settings.app_version,
        description="HTTP API skeleton with health checks, request logging, rate limiting and uniform error envelopes.",
        license_info={"name": "ISC", "url": "https://opensource.org/licenses/ISC"},
        openapi_tags=OPENAPI_TAGS,
        docs_url="/api-docs" if app_settings.docs_enabled else None,
        openapi_url="/openapi.json" if app_settings.docs_enabled else None,
        redoc_url=None,
        lifespan=lifespan,
    )
    application.state.settings = app_settings
    application.state.admission_gate = AdmissionGate(
        counter_store if counter_store is not None else build_counter_store(app_settings)
    )

    # Added inner-first: the last middleware added runs outermost.
    register_exception_handlers(application)
    application.add_middleware(RequestSizeLimitMiddleware, max_request_body_bytes=app_settings.max_request_body_bytes)
    application.add_middleware(
        RateLimitMiddleware,
        enabled=app_settings.rate_limit_enabled,
        gate=application.state.admission_gate,
    )
    application.add_middleware(MetricsMiddleware, enabled=app_settings.metrics_enabled)
    application.add_middleware(
        RequestLoggingMiddleware,
        slow_request_threshold_ms=app_settings.slow_request_threshold_ms,
        log_response_bodies=app_settings.debug_logging,
    )
    application.add_middleware(SecurityHeadersMiddleware, production=app_settings.is_production)
    application.add_middleware(
        CORSMiddleware,
        allow_origins=app_settings.cors_origins,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["X-Request-ID", "RateLimit-Limit", "RateLimit-Remaining", "RateLimit-Reset"],
    )

    application.include_router(build_api_router())
    if app_settings.metrics_enabled:
        application.add_route("/metrics", metrics, methods=["GET"], include_in_schema=False)
    return application


app = create_app(settings)
