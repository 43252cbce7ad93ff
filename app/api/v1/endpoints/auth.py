"""Authentication endpoints."""

from typing import Annotated

from fastapi import APIRouter, Depends, Response, status
from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.database import get_db
from app.core.dependencies import AdminUser, CurrentSession, CurrentUser
from app.schemas.auth import LoginRequest, LoginResponse, UserCreate, UserResponse
from app.schemas.common import MessageResponse
from app.services.auth import AuthService

router = APIRouter()


@router.post("/login", response_model=LoginResponse)
def login(
    request: LoginRequest,
    response: Response,
    db: Annotated[Session, Depends(get_db)],
):
    """
    Authenticate and open a session.

    The session token is set as an HTTP-only cookie and also returned in the
    body for clients that send it as a Bearer token.
    """
    service = AuthService(db)
    result = service.login(request)
    response.set_cookie(
        key=settings.SESSION_COOKIE_NAME,
        value=result.session_token,
        max_age=settings.session_max_age_seconds,
        httponly=True,
        secure=settings.is_production,
        samesite="none" if settings.is_production else "lax",
    )
    return result


@router.post("/logout", response_model=MessageResponse)
def logout(
    session: CurrentSession,
    response: Response,
    db: Annotated[Session, Depends(get_db)],
):
    """End the current session."""
    service = AuthService(db)
    service.logout(session.sid)
    response.delete_cookie(settings.SESSION_COOKIE_NAME)
    return MessageResponse(message="Logged out")


@router.get("/me", response_model=UserResponse)
def get_current_user_info(current_user: CurrentUser):
    """Get the authenticated user."""
    return UserResponse.model_validate(current_user)


@router.post("/users", response_model=UserResponse, status_code=status.HTTP_201_CREATED)
def create_user(
    request: UserCreate,
    admin: AdminUser,
    db: Annotated[Session, Depends(get_db)],
):
    """Create a dashboard user (admin only)."""
    service = AuthService(db)
    return service.register_user(request)
