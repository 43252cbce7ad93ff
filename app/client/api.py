"""HTTP client for the student registration API."""

import logging
from typing import Any

import httpx
from pydantic.alias_generators import to_camel

from app.client.errors import (
    ApiError,
    AuthenticationError,
    NetworkError,
    NotFoundError,
    ValidationError,
)
from app.core.config import settings
from app.schemas.student import ImportResult
from app.services.csv_import import CsvImportPipeline
from app.services.list_state import StudentListController, split_notes

logger = logging.getLogger(__name__)

STATUS_ERRORS: dict[int, type[ApiError]] = {
    401: AuthenticationError,
    404: NotFoundError,
    409: ValidationError,
    422: ValidationError,
}


class StudentsApiClient:
    """Thin synchronous client; one method per API operation.

    ``httpx.Client`` is safe to share between threads, which the bulk import
    relies on.
    """

    def __init__(
        self,
        base_url: str,
        token: str | None = None,
        timeout: float = 30.0,
        transport: httpx.BaseTransport | None = None,
        api_prefix: str = settings.API_PREFIX,
    ):
        self.api_prefix = api_prefix.rstrip("/")
        self._client = httpx.Client(base_url=base_url, timeout=timeout, transport=transport)
        if token:
            self.set_token(token)

    def __enter__(self) -> "StudentsApiClient":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def close(self) -> None:
        self._client.close()

    def set_token(self, token: str) -> None:
        self._client.headers["Authorization"] = f"Bearer {token}"

    # Transport

    def _request(self, method: str, path: str, **kwargs: Any) -> httpx.Response:
        try:
            response = self._client.request(method, f"{self.api_prefix}{path}", **kwargs)
        except httpx.HTTPError as e:
            logger.warning(f"{method} {path} failed: {e}")
            raise NetworkError(f"Request failed: {e}") from e

        if response.is_success:
            return response
        raise self._error_from(response)

    @staticmethod
    def _error_from(response: httpx.Response) -> ApiError:
        code = None
        details: dict[str, Any] = {}
        message = f"HTTP {response.status_code}"
        try:
            body = response.json()
        except ValueError:
            body = None
        if isinstance(body, dict) and isinstance(body.get("error"), dict):
            error = body["error"]
            code = error.get("code")
            message = error.get("message") or message
            details = error.get("details") or {}

        error_class = STATUS_ERRORS.get(response.status_code, ApiError)
        return error_class(message, response.status_code, code=code, details=details)

    # Auth

    def login(self, username: str, password: str) -> dict[str, Any]:
        """Open a session and use its token for subsequent requests."""
        data = self._request(
            "POST", "/auth/login", json={"username": username, "password": password}
        ).json()
        self.set_token(data["sessionToken"])
        return data["user"]

    def logout(self) -> None:
        self._request("POST", "/auth/logout")
        self._client.headers.pop("Authorization", None)

    # Students

    def list_students(self, params: dict[str, str] | None = None) -> dict[str, Any]:
        """One page of students: ``{"students": [...], "total": n}``."""
        return self._request("GET", "/students", params=params).json()

    def fetch_page(self, controller: StudentListController) -> dict[str, Any]:
        """Fetch the page described by a list controller's current state."""
        return self.list_students(controller.query_params())

    def get_student(self, student_id: int) -> dict[str, Any]:
        return self._request("GET", f"/students/{student_id}").json()

    def create_student(self, payload: dict[str, Any]) -> dict[str, Any]:
        body = {to_camel(key): value for key, value in payload.items()}
        return self._request("POST", "/students", json=body).json()

    def update_student(self, student_id: int, payload: dict[str, Any]) -> dict[str, Any]:
        body = {to_camel(key): value for key, value in payload.items()}
        return self._request("PUT", f"/students/{student_id}", json=body).json()

    def delete_student(self, student_id: int) -> None:
        self._request("DELETE", f"/students/{student_id}")

    # Notes

    def list_notes(self, student_id: int) -> list[dict[str, Any]]:
        return self._request("GET", f"/students/{student_id}/notes").json()

    def create_note(self, student_id: int, content: str) -> dict[str, Any]:
        return self._request(
            "POST", f"/students/{student_id}/notes", json={"content": content}
        ).json()

    def update_note(self, note_id: int, content: str) -> dict[str, Any]:
        return self._request("PUT", f"/notes/{note_id}", json={"content": content}).json()

    def delete_note(self, note_id: int) -> None:
        self._request("DELETE", f"/notes/{note_id}")

    def fetch_expanded_notes(
        self, controller: StudentListController
    ) -> dict[int, tuple[list[dict[str, Any]], list[dict[str, Any]]]]:
        """Notes of every expanded row as ``(user_notes, system_logs)``.

        A row whose notes cannot be fetched shows no notes.
        """
        notes = controller.load_expanded_notes(self.list_notes)
        return {student_id: split_notes(items) for student_id, items in notes.items()}

    # Import / export

    def import_csv(self, text: str, max_workers: int | None = None) -> ImportResult:
        """Import a CSV by creating each row through the API.

        At most ``max_workers`` create requests are in flight at once.
        """
        pipeline = CsvImportPipeline(
            self.create_student,
            max_workers=max_workers or settings.IMPORT_MAX_CONCURRENCY,
        )
        return pipeline.run(text)

    def export_csv(self, params: dict[str, str] | None = None) -> str:
        return self._request("GET", "/students/export", params=params).text
