from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Response model serialised with camelCase keys (dump with ``by_alias=True``)."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ErrorDetailOut(BaseModel):
    field: str
    message: str
    code: str


class ErrorOut(BaseModel):
    error: str
    message: str
    timestamp: str
    details: list[ErrorDetailOut] | None = None
    path: str | None = None
    method: str | None = None


class SuccessEnvelope(BaseModel):
    success: bool = True
    data: Any = None
    message: str | None = None
    timestamp: str


class PaginationQuery(BaseModel):
    page: int = Field(default=1, ge=1)
    limit: int = Field(default=10, ge=1, le=100)


class PaginationOut(CamelModel):
    page: int
    limit: int
    total: int
    total_pages: int


ERROR_RESPONSES: dict[int | str, dict[str, Any]] = {
    422: {"model": ErrorOut, "description": "Request validation failed"},
    429: {"model": ErrorOut, "description": "Rate limit exceeded"},
    500: {"model": ErrorOut, "description": "Internal server error"},
}
