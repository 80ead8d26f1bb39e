import json
import re
from datetime import datetime
from uuid import UUID

from starlette.requests import Request

from sitescope.api.response import created, error, success, success_envelope, utc_timestamp
from sitescope.core.errors import ApiErrorDetail, ErrorCategory

_TIMESTAMP = re.compile(r"^\d{4}-\d{2}-\d{2}T\d{2}:\d{2}:\d{2}\.\d{3}Z$")


def _request() -> Request:
    return Request(
        {
            "type": "http",
            "method": "DELETE",
            "path": "/api/demo/users/1",
            "root_path": "",
            "scheme": "http",
            "query_string": b"",
            "headers": [],
            "server": ("testserver", 80),
        }
    )


def test_utc_timestamp_has_millisecond_precision():
    assert _TIMESTAMP.match(utc_timestamp())


def test_success_envelope_omits_missing_message():
    payload = success_envelope({"a": 1})
    assert list(payload) == ["success", "data", "timestamp"]
    assert payload["success"] is True


def test_success_envelope_encodes_rich_values():
    payload = success_envelope({"id": UUID(int=1), "at": datetime(2024, 1, 2, 3, 4, 5)}, "done")
    assert payload["data"] == {"id": "00000000-0000-0000-0000-000000000001", "at": "2024-01-02T03:04:05"}
    assert payload["message"] == "done"


def test_success_and_created_status_codes():
    assert success(None).status_code == 200
    response = created({"id": 1}, "Created")
    assert response.status_code == 201
    assert json.loads(response.body)["data"] == {"id": 1}


def test_error_envelope_shape():
    detail = ApiErrorDetail(field="params.id", message="Invalid", code="uuid_parsing")
    response = error(_request(), ErrorCategory.NOT_FOUND, "User not found", 404, [detail])
    body = json.loads(response.body)

    assert response.status_code == 404
    assert list(body) == ["error", "message", "timestamp", "details", "path", "method"]
    assert body["error"] == "Not Found"
    assert body["details"] == [{"field": "params.id", "message": "Invalid", "code": "uuid_parsing"}]
    assert body["path"] == "/api/demo/users/1"
    assert body["method"] == "DELETE"
    assert _TIMESTAMP.match(body["timestamp"])


def test_error_envelope_omits_empty_details():
    body = json.loads(error(_request(), ErrorCategory.BAD_REQUEST, "Bad", 400, []).body)
    assert "details" not in body
