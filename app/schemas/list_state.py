"""Student list UI state schemas."""

from typing import Literal

from pydantic import Field

from app.schemas.common import BaseSchema
from app.schemas.student import SortColumn, SortDirection


class StudentListState(BaseSchema):
    """Filter, sort and paging state of the student list view."""

    name: str = ""
    email: str = ""
    phone: str = ""
    course_interested: list[str] = []
    location: str = ""
    status: list[str] = []
    registration_date_from: str = ""
    registration_date_to: str = ""
    sort_column: SortColumn | None = None
    sort_direction: SortDirection | None = None
    offset: int = Field(0, ge=0)
    limit: int = Field(300, ge=1)
    expanded_student_ids: list[int] = []
    expanded_student_id: int | None = None


ListAction = Literal[
    "setFilter",
    "clearFilters",
    "sort",
    "nextPage",
    "previousPage",
    "setLimit",
    "toggleRow",
    "collapseAll",
]


class ListStateActionRequest(BaseSchema):
    """One user interaction applied to the persisted list state."""

    action: ListAction
    field: str | None = None
    value: str | list[str] | None = None
    column: SortColumn | None = None
    limit: int | None = None
    total: int | None = Field(None, ge=0)
    student_id: int | None = None


class ListStateResponse(BaseSchema):
    """Current list state plus the query string that fetches its page."""

    state: StudentListState
    query: str
    has_filters: bool
    current_page: int
    total_pages: int | None = None
