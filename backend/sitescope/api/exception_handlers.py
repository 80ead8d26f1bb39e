from __future__ import annotations

import traceback

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.middleware.base import BaseHTTPMiddleware

from sitescope.api.deps import settings_for
from sitescope.api.response import classified_error, utc_timestamp
from sitescope.api.validation import details_from_request_errors
from sitescope.core.errors import (
    ApiError,
    ErrorClassification,
    NotFoundError,
    ValidationFailedError,
    classify_exception,
)
from sitescope.core.logging_config import get_context_logger
from sitescope.core.request_context import get_request_context


logger = get_context_logger("ERROR")


def _log_failure(request: Request, exc: Exception, classification: ErrorClassification) -> None:
    try:
        stack = None
        if exc.__traceback__ is not None:
            stack = "".join(traceback.format_exception(type(exc), exc, exc.__traceback__))
        context = get_request_context(request)
        log = logger.error if classification.http_status >= 500 else logger.warning
        log(
            "Error occurred",
            extra={
                "request_id": context.request_id if context is not None else None,
                "error_type": type(exc).__name__,
                "error_message": str(exc),
                "stack": stack,
                "category": str(classification.category),
                "status_code": classification.http_status,
                "method": request.method,
                "url": str(request.url),
                "occurred_at": utc_timestamp(),
            },
        )
    except Exception:  # noqa: BLE001
        # A failing log sink must not replace the error response.
        return


def exception_response(request: Request, exc: Exception) -> JSONResponse:
    classification = classify_exception(exc, production=settings_for(request).is_production)
    _log_failure(request, exc, classification)
    return classified_error(request, classification)


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    if exc.status_code == 404 and request.scope.get("endpoint") is None:
        return exception_response(request, NotFoundError(f"Route {request.method} {request.url.path} not found"))
    return exception_response(request, exc)


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    failure = ValidationFailedError(details_from_request_errors(exc.errors()))
    return exception_response(request, failure)


async def api_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    return exception_response(request, exc)


class UnhandledErrorMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next):
        try:
            return await call_next(request)
        except Exception as exc:  # noqa: BLE001
            return exception_response(request, exc)


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(ApiError, api_exception_handler)
    app.add_exception_handler(SQLAlchemyError, api_exception_handler)
    # Innermost middleware: anything the handlers above do not claim.
    app.add_middleware(UnhandledErrorMiddleware)
