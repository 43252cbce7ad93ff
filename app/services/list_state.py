"""Student list view state: filters, sort, paging and expanded rows.

The controller owns the state and persists it through a store after every
change. On mount, URL query parameters win over the saved snapshot whenever
any recognised parameter is present.
"""

import logging
import re
from collections.abc import Callable, Iterable, Mapping
from concurrent.futures import ThreadPoolExecutor
from typing import Any, Protocol, TypeVar
from urllib.parse import urlencode

from pydantic import ValidationError as PydanticValidationError

from app.core.config import settings
from app.core.exceptions import ValidationError
from app.core.session import SessionStore
from app.models.user import UserSession
from app.schemas.list_state import StudentListState
from app.schemas.student import SortColumn, StudentFilter
from app.services.student import split_multi_value

logger = logging.getLogger(__name__)

T = TypeVar("T")

LIST_STATE_KEY = "studentListState"

# URL parameter -> state field
URL_FILTER_PARAMS = {
    "name": "name",
    "email": "email",
    "phone": "phone",
    "courseInterested": "course_interested",
    "location": "location",
    "status": "status",
    "registrationDateFrom": "registration_date_from",
    "registrationDateTo": "registration_date_to",
}
RECOGNIZED_URL_PARAMS = set(URL_FILTER_PARAMS) | {"view"}

MULTI_VALUE_FIELDS = {"course_interested", "status"}
FILTER_FIELDS = set(URL_FILTER_PARAMS.values())


class ListStateStore(Protocol):
    """Where the list state snapshot lives between page visits."""

    def load(self) -> StudentListState | None: ...

    def save(self, state: StudentListState) -> None: ...


class InMemoryListStateStore:
    """Keeps the snapshot in memory, for scripts and tests."""

    def __init__(self, snapshot: dict[str, Any] | None = None):
        self.snapshot = snapshot

    def load(self) -> StudentListState | None:
        if not self.snapshot:
            return None
        return StudentListState.model_validate(self.snapshot)

    def save(self, state: StudentListState) -> None:
        self.snapshot = state.model_dump(mode="json", by_alias=True)


class SessionListStateStore:
    """Keeps the snapshot in the user's server-side session."""

    def __init__(self, sessions: SessionStore, session: UserSession):
        self.sessions = sessions
        self.session = session

    def load(self) -> StudentListState | None:
        raw = self.sessions.get_value(self.session, LIST_STATE_KEY)
        if not raw:
            return None
        try:
            return StudentListState.model_validate(raw)
        except PydanticValidationError:
            logger.warning("Discarding unreadable student list state from session")
            return None

    def save(self, state: StudentListState) -> None:
        self.sessions.set_value(
            self.session,
            LIST_STATE_KEY,
            state.model_dump(mode="json", by_alias=True),
        )


class StudentListController:
    """Applies list-view interactions to the state and saves after each one."""

    def __init__(
        self,
        store: ListStateStore,
        limit_options: Iterable[int] | None = None,
        default_limit: int | None = None,
    ):
        self.store = store
        self.limit_options = list(limit_options or settings.PAGE_LIMIT_OPTIONS)
        self.default_limit = default_limit or settings.DEFAULT_PAGE_LIMIT
        self.state = StudentListState(limit=self.default_limit)
        self.expanded_ids: set[int] = set()
        self.last_expanded_id: int | None = None

    # Lifecycle

    def mount(self, url_params: Mapping[str, str] | None = None) -> StudentListState:
        """Restore state from the snapshot and/or URL parameters."""
        params = url_params or {}
        has_url_filters = any(key in params for key in RECOGNIZED_URL_PARAMS)

        if not has_url_filters:
            saved = self.store.load()
            if saved is not None:
                self.replace(saved, save=False)

        updates: dict[str, Any] = {}
        for param, field in URL_FILTER_PARAMS.items():
            if param not in params:
                continue
            raw = params.get(param) or ""
            updates[field] = split_multi_value(raw) if field in MULTI_VALUE_FIELDS else raw
        if updates:
            self.state = self.state.model_copy(update=updates)

        self._save()
        return self.state

    def replace(self, state: StudentListState, save: bool = True) -> StudentListState:
        """Adopt a whole state, including which rows are expanded."""
        self.state = state
        self.expanded_ids = set(state.expanded_student_ids)
        self.last_expanded_id = state.expanded_student_id
        if self.last_expanded_id is not None:
            self.expanded_ids.add(self.last_expanded_id)
        if save:
            self._save()
        return self.state

    def _save(self) -> None:
        self.store.save(self.state)

    def _update(self, **changes: Any) -> StudentListState:
        self.state = self.state.model_copy(update=changes)
        self._save()
        return self.state

    # Filters

    def set_filter(self, field: str, value: str | list[str] | None) -> StudentListState:
        """Change one filter field; paging restarts from the first page."""
        if field not in FILTER_FIELDS:
            raise ValidationError(f"Unknown filter field '{field}'", details={"field": field})

        if field in MULTI_VALUE_FIELDS:
            if value is None:
                value = []
            elif isinstance(value, str):
                value = split_multi_value(value)
            else:
                value = [v.strip() for v in value if v and v.strip()]
        else:
            if isinstance(value, list):
                raise ValidationError(f"Filter '{field}' takes a single value", details={"field": field})
            value = value or ""

        return self._update(**{field: value, "offset": 0})

    def clear_filters(self) -> StudentListState:
        return self._update(
            name="",
            email="",
            phone="",
            course_interested=[],
            location="",
            status=[],
            registration_date_from="",
            registration_date_to="",
            offset=0,
        )

    @property
    def has_filters(self) -> bool:
        s = self.state
        return bool(
            s.name
            or s.email
            or s.phone
            or s.course_interested
            or s.location.strip()
            or s.status
            or s.registration_date_from
            or s.registration_date_to
        )

    # Sorting

    def toggle_sort(self, column: SortColumn) -> StudentListState:
        """Cycle a column through ascending, descending and unsorted."""
        if self.state.sort_column == column:
            if self.state.sort_direction == "asc":
                return self._update(sort_direction="desc", offset=0)
            return self._update(sort_column=None, sort_direction=None, offset=0)
        return self._update(sort_column=column, sort_direction="asc", offset=0)

    # Paging

    def next_page(self, total: int) -> StudentListState:
        if self.state.offset + self.state.limit >= total:
            return self.state
        return self._update(offset=self.state.offset + self.state.limit)

    def previous_page(self) -> StudentListState:
        return self._update(offset=max(0, self.state.offset - self.state.limit))

    def set_limit(self, limit: int) -> StudentListState:
        if limit not in self.limit_options:
            raise ValidationError(
                f"Page size must be one of {self.limit_options}",
                details={"limit": limit},
            )
        return self._update(limit=limit, offset=0)

    @property
    def current_page(self) -> int:
        return self.state.offset // self.state.limit + 1

    def total_pages(self, total: int) -> int:
        return max(1, -(-total // self.state.limit))

    # Row expansion

    def toggle_row(self, student_id: int) -> StudentListState:
        """Expand or collapse a row; the last expanded row is remembered."""
        if student_id in self.expanded_ids:
            self.expanded_ids.discard(student_id)
            if self.last_expanded_id == student_id:
                self.last_expanded_id = None
        else:
            self.expanded_ids.add(student_id)
            self.last_expanded_id = student_id
        return self._update(
            expanded_student_ids=sorted(self.expanded_ids),
            expanded_student_id=self.last_expanded_id,
        )

    def collapse_all(self) -> StudentListState:
        self.expanded_ids.clear()
        self.last_expanded_id = None
        return self._update(expanded_student_ids=[], expanded_student_id=None)

    def load_expanded_notes(
        self,
        fetch: Callable[[int], list[T]],
        max_workers: int = 4,
    ) -> dict[int, list[T]]:
        """Fetch notes for every expanded row concurrently.

        A failed fetch degrades that row to an empty list.
        """
        ids = sorted(self.expanded_ids)
        if not ids:
            return {}

        def fetch_one(student_id: int) -> list[T]:
            try:
                return fetch(student_id)
            except Exception as e:
                logger.warning(f"Could not load notes for student {student_id}: {e}")
                return []

        with ThreadPoolExecutor(max_workers=max_workers) as executor:
            return dict(zip(ids, executor.map(fetch_one, ids)))

    # Query

    def filter_spec(self) -> StudentFilter:
        s = self.state
        return StudentFilter(
            name=s.name or None,
            email=s.email or None,
            phone=s.phone or None,
            course_interested=s.course_interested,
            location=s.location or None,
            status=s.status,
            registration_date_from=s.registration_date_from or None,
            registration_date_to=s.registration_date_to or None,
            sort_column=s.sort_column,
            sort_direction=s.sort_direction,
        )

    def query_params(self) -> dict[str, str]:
        """Query parameters for ``GET /api/students``."""
        s = self.state
        params: dict[str, str] = {}
        if s.name:
            params["name"] = s.name
        if s.email:
            params["email"] = s.email
        if s.phone:
            params["phone"] = s.phone
        if s.course_interested:
            params["courseInterested"] = ",".join(s.course_interested)
        if s.location.strip():
            params["location"] = s.location
        if s.status:
            params["status"] = ",".join(s.status)
        if s.registration_date_from:
            params["registrationDateFrom"] = s.registration_date_from
        if s.registration_date_to:
            params["registrationDateTo"] = s.registration_date_to
        if s.sort_column and s.sort_direction:
            params["sortColumn"] = s.sort_column
            params["sortDirection"] = s.sort_direction
        params["limit"] = str(s.limit)
        params["offset"] = str(s.offset)
        return params

    def query_string(self) -> str:
        return urlencode(self.query_params())


def is_system_note(note: Any) -> bool:
    if isinstance(note, Mapping):
        return bool(note.get("isSystemGenerated", note.get("is_system_generated", False)))
    return bool(getattr(note, "is_system_generated", False))


def split_notes(notes: Iterable[T]) -> tuple[list[T], list[T]]:
    """Separate user-authored notes from system log entries.

    Accepts note models as well as API payloads (camelCase dicts).
    """
    user_notes: list[T] = []
    system_logs: list[T] = []
    for note in notes:
        (system_logs if is_system_note(note) else user_notes).append(note)
    return user_notes, system_logs


def highlight_segments(text: str, term: str) -> list[tuple[str, bool]]:
    """Split text into (segment, is_match) pairs for a case-insensitive term."""
    if not text:
        return []
    if not term:
        return [(text, False)]

    segments: list[tuple[str, bool]] = []
    position = 0
    for match in re.finditer(re.escape(term), text, flags=re.IGNORECASE):
        if match.start() > position:
            segments.append((text[position:match.start()], False))
        segments.append((match.group(0), True))
        position = match.end()
    if position < len(text):
        segments.append((text[position:], False))
    return segments
