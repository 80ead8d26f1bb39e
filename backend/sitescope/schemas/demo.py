import re
from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, Field, HttpUrl, field_validator

from sitescope.schemas.common import CamelModel, PaginationOut, PaginationQuery


_EMAIL_PATTERN = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


class CreateUserIn(BaseModel):
    name: str = Field(min_length=1, max_length=100)
    email: str
    age: int = Field(ge=18, le=120)
    website: HttpUrl | None = None

    @field_validator("email")
    @classmethod
    def validate_email(cls, value: str) -> str:
        if not _EMAIL_PATTERN.match(value):
            raise ValueError("Invalid email format")
        return value.lower()


class UserPathParams(BaseModel):
    id: UUID


class UserListQuery(PaginationQuery):
    search: str | None = None


class UserOut(CamelModel):
    id: UUID
    name: str
    email: str
    age: int | None = None
    website: HttpUrl | None = None
    created_at: datetime | None = None


class UserSummaryOut(CamelModel):
    id: UUID
    name: str
    email: str


class UserListOut(CamelModel):
    users: list[UserSummaryOut]
    pagination: PaginationOut
