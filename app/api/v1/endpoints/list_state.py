"""Persisted student list view state endpoints."""

from typing import Annotated

from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session

from app.core.database import get_db
from app.core.dependencies import CurrentSession
from app.core.exceptions import ValidationError
from app.core.session import SessionStore
from app.schemas.list_state import ListStateActionRequest, ListStateResponse, StudentListState
from app.services.list_state import SessionListStateStore, StudentListController

router = APIRouter()


def get_list_controller(
    session: CurrentSession,
    db: Annotated[Session, Depends(get_db)],
) -> StudentListController:
    store = SessionListStateStore(SessionStore(db), session)
    return StudentListController(store)


ListController = Annotated[StudentListController, Depends(get_list_controller)]


def _response(controller: StudentListController, total: int | None = None) -> ListStateResponse:
    return ListStateResponse(
        state=controller.state,
        query=controller.query_string(),
        has_filters=controller.has_filters,
        current_page=controller.current_page,
        total_pages=controller.total_pages(total) if total is not None else None,
    )


@router.get("", response_model=ListStateResponse)
def get_list_state(controller: ListController, request: Request):
    """
    Restore the list view state.

    Recognised filter parameters on this request take precedence over the
    snapshot saved in the session.
    """
    controller.mount(request.query_params)
    return _response(controller)


@router.put("", response_model=ListStateResponse)
def replace_list_state(state: StudentListState, controller: ListController):
    """Replace the saved list view state."""
    controller.mount()
    if state.limit not in controller.limit_options:
        raise ValidationError(
            f"Page size must be one of {controller.limit_options}",
            details={"limit": state.limit},
        )
    controller.replace(state)
    return _response(controller)


@router.post("/actions", response_model=ListStateResponse)
def apply_list_action(action: ListStateActionRequest, controller: ListController):
    """Apply one list interaction (filter edit, sort click, paging, row toggle)."""
    controller.mount()

    if action.action == "setFilter":
        if not action.field:
            raise ValidationError("field is required", details={"field": None})
        controller.set_filter(action.field, action.value)
    elif action.action == "clearFilters":
        controller.clear_filters()
    elif action.action == "sort":
        if not action.column:
            raise ValidationError("column is required", details={"column": None})
        controller.toggle_sort(action.column)
    elif action.action == "nextPage":
        if action.total is None:
            raise ValidationError("total is required", details={"total": None})
        controller.next_page(action.total)
    elif action.action == "previousPage":
        controller.previous_page()
    elif action.action == "setLimit":
        if action.limit is None:
            raise ValidationError("limit is required", details={"limit": None})
        controller.set_limit(action.limit)
    elif action.action == "toggleRow":
        if action.student_id is None:
            raise ValidationError("studentId is required", details={"studentId": None})
        controller.toggle_row(action.student_id)
    elif action.action == "collapseAll":
        controller.collapse_all()

    return _response(controller, action.total)
