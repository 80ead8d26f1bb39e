from __future__ import annotations

import json
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from typing import Any

from fastapi import Request
from pydantic import BaseModel, ValidationError

from sitescope.core.errors import ApiErrorDetail, ValidationFailedError


SOURCES = ("body", "query", "params")
_SOURCE_BY_LOCATION = {"body": "body", "query": "query", "path": "params", "header": "headers", "cookie": "cookies"}
_SOURCE_RANK = {source: rank for rank, source in enumerate(SOURCES)}

MALFORMED_JSON = object()


@dataclass(frozen=True)
class ValidationSchemas:
    body: type[BaseModel] | None = None
    query: type[BaseModel] | None = None
    params: type[BaseModel] | None = None


@dataclass(frozen=True)
class ValidatedInput:
    body: Any = None
    query: Any = None
    params: Any = None


def format_schema_errors(source: str, errors: Iterable[Mapping[str, Any]]) -> list[ApiErrorDetail]:
    details: list[ApiErrorDetail] = []
    for err in errors:
        path = ".".join(str(part) for part in err.get("loc", ()))
        details.append(
            ApiErrorDetail(
                field=f"{source}.{path}" if path else source,
                message=str(err.get("msg", "Invalid value")),
                code=str(err.get("type", "invalid")),
            )
        )
    return details


def details_from_request_errors(errors: Iterable[Mapping[str, Any]]) -> list[ApiErrorDetail]:
    """Normalise framework request-validation errors to the adapter's shape.

    Locations arrive as ``("path", "id")`` and are reported as ``params.id``;
    body errors sort before query errors, which sort before path errors.
    """
    grouped: list[tuple[int, ApiErrorDetail]] = []
    for err in errors:
        loc = tuple(err.get("loc", ()))
        location = str(loc[0]) if loc else "body"
        source = _SOURCE_BY_LOCATION.get(location, location)
        for detail in format_schema_errors(source, [{**err, "loc": loc[1:]}]):
            grouped.append((_SOURCE_RANK.get(source, len(SOURCES)), detail))
    grouped.sort(key=lambda item: item[0])
    return [detail for _rank, detail in grouped]


def validate_inputs(
    schemas: ValidationSchemas,
    *,
    body: Any = None,
    query: Any = None,
    params: Any = None,
) -> ValidatedInput:
    raw_inputs = {"body": body, "query": query, "params": params}
    validated: dict[str, Any] = {}
    details: list[ApiErrorDetail] = []
    for source in SOURCES:
        schema = getattr(schemas, source)
        raw = raw_inputs[source]
        if schema is None:
            validated[source] = raw
            continue
        if raw is MALFORMED_JSON:
            details.append(ApiErrorDetail(field=source, message="Malformed JSON body", code="json_invalid"))
            continue
        try:
            validated[source] = schema.model_validate(raw)
        except ValidationError as exc:
            details.extend(format_schema_errors(source, exc.errors()))
    if details:
        raise ValidationFailedError(details)
    return ValidatedInput(**validated)


async def read_json_body(request: Request) -> Any:
    raw = await request.body()
    if not raw.strip():
        return None
    try:
        return json.loads(raw)
    except (json.JSONDecodeError, UnicodeDecodeError):
        return MALFORMED_JSON


class RequestValidator:
    """Route dependency validating body, query and path input in one pass."""

    def __init__(
        self,
        *,
        body: type[BaseModel] | None = None,
        query: type[BaseModel] | None = None,
        params: type[BaseModel] | None = None,
    ) -> None:
        self.schemas = ValidationSchemas(body=body, query=query, params=params)

    async def __call__(self, request: Request) -> ValidatedInput:
        raw_body = await read_json_body(request) if self.schemas.body is not None else None
        validated = validate_inputs(
            self.schemas,
            body=raw_body,
            query=dict(request.query_params),
            params=dict(request.path_params),
        )
        request.state.validated = validated
        return validated
