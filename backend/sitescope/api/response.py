from __future__ import annotations

from datetime import UTC, datetime
from typing import Any

from fastapi import Request
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse

from sitescope.core.errors import ApiErrorDetail, ErrorClassification


def utc_timestamp() -> str:
    return datetime.now(UTC).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def success_envelope(data: Any, message: str | None = None) -> dict:
    payload: dict[str, Any] = {"success": True, "data": jsonable_encoder(data)}
    if message is not None:
        payload["message"] = message
    payload["timestamp"] = utc_timestamp()
    return payload


def error_body(
    request: Request,
    category: str,
    message: str,
    details: list[ApiErrorDetail] | tuple[ApiErrorDetail, ...] | None = None,
) -> dict:
    payload: dict[str, Any] = {
        "error": str(category),
        "message": message,
        "timestamp": utc_timestamp(),
    }
    if details:
        payload["details"] = [detail.as_dict() for detail in details]
    payload["path"] = request.url.path
    payload["method"] = request.method
    return payload


def success(data: Any, message: str | None = None, status_code: int = 200) -> JSONResponse:
    return JSONResponse(status_code=status_code, content=success_envelope(data, message))


def created(data: Any, message: str | None = None) -> JSONResponse:
    return success(data, message, status_code=201)


def error(
    request: Request,
    category: str,
    message: str,
    status_code: int,
    details: list[ApiErrorDetail] | tuple[ApiErrorDetail, ...] | None = None,
) -> JSONResponse:
    return JSONResponse(status_code=status_code, content=error_body(request, category, message, details))


def classified_error(request: Request, classification: ErrorClassification) -> JSONResponse:
    return error(
        request,
        classification.category,
        classification.message,
        classification.http_status,
        classification.details,
    )
