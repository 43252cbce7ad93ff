"""Main API router aggregating all module routers."""

from fastapi import APIRouter

from app.api.v1.endpoints import auth, dashboard, list_state, notes, students
from app.schemas.common import ErrorResponse

# Every route may answer with the standard error envelope
api_router = APIRouter(
    responses={
        401: {"model": ErrorResponse, "description": "Not authenticated"},
        422: {"model": ErrorResponse, "description": "Validation error"},
    },
)

# Authentication (login is public)
api_router.include_router(
    auth.router,
    prefix="/auth",
    tags=["Authentication"],
)

# Students, their notes, import and export
api_router.include_router(
    students.router,
    prefix="/students",
    tags=["Students"],
)

# Notes addressed by note ID
api_router.include_router(
    notes.router,
    prefix="/notes",
    tags=["Notes"],
)

# Persisted student list view state
api_router.include_router(
    list_state.router,
    prefix="/list-state",
    tags=["List State"],
)

# Dashboard statistics
api_router.include_router(
    dashboard.router,
    prefix="/dashboard",
    tags=["Dashboard"],
)
