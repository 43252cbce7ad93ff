import json
import threading

import httpx
import pytest

from app.client.api import StudentsApiClient
from app.client.errors import (
    ApiError,
    AuthenticationError,
    NetworkError,
    NotFoundError,
    ValidationError,
)
from app.core.exceptions import CsvParseError
from app.services.list_state import InMemoryListStateStore, StudentListController


def _error_body(code: str, message: str, details: dict | None = None) -> dict:
    return {"success": False, "error": {"code": code, "message": message, "details": details or {}}}


def _client(handler) -> StudentsApiClient:
    return StudentsApiClient("http://test", token="abc", transport=httpx.MockTransport(handler))


def test_sends_bearer_token_and_prefix():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["path"] = request.url.path
        seen["auth"] = request.headers.get("Authorization")
        return httpx.Response(200, json={"students": [], "total": 0})

    with _client(handler) as client:
        assert client.list_students({"status": "active"}) == {"students": [], "total": 0}

    assert seen == {"path": "/api/students", "auth": "Bearer abc"}


def test_login_stores_token():
    tokens = []

    def handler(request: httpx.Request) -> httpx.Response:
        tokens.append(request.headers.get("Authorization"))
        if request.url.path == "/api/auth/login":
            return httpx.Response(200, json={"user": {"id": 1}, "sessionToken": "new-token"})
        return httpx.Response(200, json={"id": 7})

    client = StudentsApiClient("http://test", transport=httpx.MockTransport(handler))
    assert client.login("staff", "password123") == {"id": 1}
    client.get_student(7)

    assert tokens == [None, "Bearer new-token"]


@pytest.mark.parametrize(
    "status, error_class",
    [
        (401, AuthenticationError),
        (404, NotFoundError),
        (409, ValidationError),
        (422, ValidationError),
        (500, ApiError),
    ],
)
def test_status_codes_map_to_errors(status, error_class):
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(status, json=_error_body("SOME_CODE", "Something went wrong", {"field": "email"}))

    with pytest.raises(error_class) as exc_info:
        _client(handler).get_student(1)

    assert exc_info.value.status_code == status
    assert exc_info.value.code == "SOME_CODE"
    assert exc_info.value.details == {"field": "email"}


def test_non_json_error_body():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(502, text="Bad Gateway")

    with pytest.raises(ApiError) as exc_info:
        _client(handler).delete_student(1)

    assert exc_info.value.message == "HTTP 502"


def test_transport_failure_is_network_error():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    with pytest.raises(NetworkError):
        _client(handler).list_notes(1)


def test_create_student_sends_camel_case():
    bodies = []

    def handler(request: httpx.Request) -> httpx.Response:
        bodies.append(json.loads(request.content))
        return httpx.Response(201, json={"id": 1})

    _client(handler).create_student({"name": "Ana", "course_interested": "Nursing"})

    assert bodies == [{"name": "Ana", "courseInterested": "Nursing"}]


def test_fetch_page_uses_controller_state():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen.update(dict(request.url.params))
        return httpx.Response(200, json={"students": [], "total": 0})

    controller = StudentListController(InMemoryListStateStore(), limit_options=[10, 300])
    controller.mount()
    controller.set_filter("status", ["active", "pending"])
    controller.set_limit(10)

    _client(handler).fetch_page(controller)

    assert seen == {"status": "active,pending", "limit": "10", "offset": "0"}


def test_import_csv_reports_failed_rows():
    lock = threading.Lock()
    created = []

    def handler(request: httpx.Request) -> httpx.Response:
        body = json.loads(request.content)
        if body["email"] == "dup@email.com":
            return httpx.Response(409, json=_error_body("CONFLICT", "Email 'dup@email.com' is already registered"))
        with lock:
            created.append(body["name"])
        return httpx.Response(201, json={"id": len(created)})

    text = "name,email\nAna,ana@email.com\nDup,dup@email.com\nBob,bob@email.com\n"
    result = _client(handler).import_csv(text, max_workers=2)

    assert (result.succeeded, result.failed, result.total) == (2, 1, 3)
    assert result.errors == ["Row 2: Email 'dup@email.com' is already registered"]
    assert sorted(created) == ["Ana", "Bob"]


def test_import_csv_parse_error_sends_nothing():
    calls = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        return httpx.Response(201, json={})

    with pytest.raises(CsvParseError):
        _client(handler).import_csv("name,email\nAna\n")

    assert calls == []


def test_fetch_expanded_notes_splits_and_degrades():
    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.path == "/api/students/2/notes":
            return httpx.Response(500, json=_error_body("INTERNAL_ERROR", "boom"))
        return httpx.Response(200, json=[
            {"id": 1, "content": "Called back", "isSystemGenerated": False},
            {"id": 2, "content": "Status changed", "isSystemGenerated": True},
        ])

    controller = StudentListController(InMemoryListStateStore())
    controller.mount()
    controller.toggle_row(1)
    controller.toggle_row(2)

    notes = _client(handler).fetch_expanded_notes(controller)

    user_notes, system_logs = notes[1]
    assert [n["content"] for n in user_notes] == ["Called back"]
    assert [n["content"] for n in system_logs] == ["Status changed"]
    assert notes[2] == ([], [])
