from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum
from typing import Any

from sqlalchemy.exc import (
    DataError,
    IntegrityError,
    InterfaceError,
    OperationalError,
    ProgrammingError,
    SQLAlchemyError,
)
from starlette.exceptions import HTTPException as StarletteHTTPException


class ErrorCategory(StrEnum):
    BAD_REQUEST = "Bad Request"
    UNAUTHORIZED = "Unauthorized"
    FORBIDDEN = "Forbidden"
    NOT_FOUND = "Not Found"
    VALIDATION_ERROR = "Validation Error"
    TOO_MANY_REQUESTS = "Too Many Requests"
    INTERNAL_ERROR = "Internal Server Error"
    GENERIC = "Error"


_CATEGORY_BY_STATUS: dict[int, ErrorCategory] = {
    400: ErrorCategory.BAD_REQUEST,
    401: ErrorCategory.UNAUTHORIZED,
    403: ErrorCategory.FORBIDDEN,
    404: ErrorCategory.NOT_FOUND,
    422: ErrorCategory.VALIDATION_ERROR,
    429: ErrorCategory.TOO_MANY_REQUESTS,
    500: ErrorCategory.INTERNAL_ERROR,
}

PRODUCTION_INTERNAL_MESSAGE = "Internal server error"


def category_for_status(status_code: int) -> ErrorCategory:
    return _CATEGORY_BY_STATUS.get(status_code, ErrorCategory.GENERIC)


@dataclass(frozen=True)
class ApiErrorDetail:
    field: str
    message: str
    code: str

    def as_dict(self) -> dict[str, str]:
        return {"field": self.field, "message": self.message, "code": self.code}


@dataclass(frozen=True)
class ErrorClassification:
    category: ErrorCategory
    http_status: int
    message: str
    details: tuple[ApiErrorDetail, ...] | None = None


class ApiError(Exception):
    """Base failure carrying an explicit HTTP status.

    Raise a subclass for the taxonomy entries; raise this class directly only
    for statuses outside the taxonomy (they classify as the generic ``Error``).
    """

    status_code: int = 500

    def __init__(
        self,
        message: str,
        *,
        status_code: int | None = None,
        details: list[ApiErrorDetail] | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code
        self.details = list(details) if details else None


class BadRequestError(ApiError):
    status_code = 400

    def __init__(self, message: str = "Bad request", *, details: list[ApiErrorDetail] | None = None) -> None:
        super().__init__(message, details=details)


class UnauthorizedError(ApiError):
    status_code = 401

    def __init__(self, message: str = "Unauthorized") -> None:
        super().__init__(message)


class ForbiddenError(ApiError):
    status_code = 403

    def __init__(self, message: str = "Forbidden") -> None:
        super().__init__(message)


class NotFoundError(ApiError):
    status_code = 404

    def __init__(self, message: str = "Resource not found") -> None:
        super().__init__(message)


class ValidationFailedError(ApiError):
    status_code = 422

    def __init__(self, details: list[ApiErrorDetail], message: str = "Request validation failed") -> None:
        super().__init__(message, details=details)


class TooManyRequestsError(ApiError):
    status_code = 429

    def __init__(self, message: str = "Too many requests") -> None:
        super().__init__(message)


class InternalServerError(ApiError):
    status_code = 500

    def __init__(self, message: str = PRODUCTION_INTERNAL_MESSAGE) -> None:
        super().__init__(message)


def _persistence_classification(exc: SQLAlchemyError) -> ErrorClassification:
    if isinstance(exc, IntegrityError):
        return ErrorClassification(ErrorCategory.BAD_REQUEST, 400, "Database operation failed")
    if isinstance(exc, DataError):
        return ErrorClassification(ErrorCategory.BAD_REQUEST, 400, "Invalid data provided")
    if isinstance(exc, (OperationalError, InterfaceError)):
        return ErrorClassification(ErrorCategory.INTERNAL_ERROR, 500, "Database connection error")
    if isinstance(exc, ProgrammingError):
        return ErrorClassification(ErrorCategory.INTERNAL_ERROR, 500, "Database schema error")
    return ErrorClassification(ErrorCategory.INTERNAL_ERROR, 500, "Database error")


def classify_exception(exc: Exception, *, production: bool) -> ErrorClassification:
    if isinstance(exc, ValidationFailedError):
        return ErrorClassification(ErrorCategory.VALIDATION_ERROR, 422, exc.message, tuple(exc.details or ()))

    if isinstance(exc, ApiError):
        return ErrorClassification(
            category_for_status(exc.status_code),
            exc.status_code,
            exc.message,
            tuple(exc.details) if exc.details else None,
        )
    if isinstance(exc, StarletteHTTPException):
        detail: Any = exc.detail
        message = detail if isinstance(detail, str) else "Request failed"
        return ErrorClassification(category_for_status(exc.status_code), exc.status_code, message)

    if isinstance(exc, SQLAlchemyError):
        return _persistence_classification(exc)

    message = PRODUCTION_INTERNAL_MESSAGE if production else (str(exc) or type(exc).__name__)
    return ErrorClassification(ErrorCategory.INTERNAL_ERROR, 500, message)
