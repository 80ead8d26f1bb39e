import math
import uuid
from datetime import UTC, datetime

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from sitescope.api.response import created, success
from sitescope.api.validation import RequestValidator, ValidatedInput
from sitescope.schemas.common import ERROR_RESPONSES, PaginationOut
from sitescope.schemas.demo import (
    CreateUserIn,
    UserListOut,
    UserListQuery,
    UserOut,
    UserPathParams,
    UserSummaryOut,
)

router = APIRouter(prefix="/api/demo", tags=["Demo"])

_DEMO_USERS = (
    ("Alice Smith", "alice@example.com"),
    ("Bob Johnson", "bob@example.com"),
)


@router.post(
    "/users",
    status_code=201,
    responses=ERROR_RESPONSES,
    openapi_extra={
        "requestBody": {
            "required": True,
            "content": {"application/json": {"schema": CreateUserIn.model_json_schema()}},
        }
    },
)
def create_user(validated: ValidatedInput = Depends(RequestValidator(body=CreateUserIn))) -> JSONResponse:
    body: CreateUserIn = validated.body
    user = UserOut(id=uuid.uuid4(), created_at=datetime.now(UTC), **body.model_dump())
    return created(user.model_dump(mode="json", exclude_none=True, by_alias=True), "User created successfully")


@router.get("/users/{id}", responses=ERROR_RESPONSES)
def get_user(validated: ValidatedInput = Depends(RequestValidator(params=UserPathParams))) -> JSONResponse:
    params: UserPathParams = validated.params
    user = UserOut(id=params.id, name="Jane Doe", email="jane@example.com", age=28)
    return success(user.model_dump(mode="json", exclude_none=True, by_alias=True), "User retrieved successfully")


@router.get("/users", responses=ERROR_RESPONSES)
def list_users(validated: ValidatedInput = Depends(RequestValidator(query=UserListQuery))) -> JSONResponse:
    query: UserListQuery = validated.query
    users = [UserSummaryOut(id=uuid.uuid4(), name=name, email=email) for name, email in _DEMO_USERS]
    if query.search:
        needle = query.search.lower()
        users = [user for user in users if needle in user.name.lower()]

    total = len(users)
    start = (query.page - 1) * query.limit
    result = UserListOut(
        users=users[start : start + query.limit],
        pagination=PaginationOut(
            page=query.page,
            limit=query.limit,
            total=total,
            total_pages=math.ceil(total / query.limit),
        ),
    )
    return success(result.model_dump(mode="json", by_alias=True), "Users retrieved successfully")
