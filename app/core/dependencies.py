"""FastAPI dependency injection utilities."""

from typing import Annotated

from fastapi import Depends, Header, Request
from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.database import get_db
from app.core.exceptions import AuthenticationError, PermissionDeniedError
from app.core.security import verify_session_token
from app.core.session import SessionStore
from app.models.user import User, UserSession


def _extract_token(request: Request, authorization: str | None) -> str | None:
    if authorization:
        if not authorization.startswith("Bearer "):
            raise AuthenticationError("Invalid authorization header format")
        return authorization[7:]  # Remove "Bearer " prefix
    return request.cookies.get(settings.SESSION_COOKIE_NAME)


def get_current_session(
    request: Request,
    db: Annotated[Session, Depends(get_db)],
    authorization: str | None = Header(None, description="Bearer session token"),
) -> UserSession:
    """Resolve the caller's session from the cookie or a Bearer header."""
    token = _extract_token(request, authorization)
    if not token:
        raise AuthenticationError("Not authenticated")

    payload = verify_session_token(token)
    if not payload:
        raise AuthenticationError("Invalid or expired session")

    session = SessionStore(db).get(payload["sid"])
    if session is None or str(session.user_id) != payload.get("sub"):
        raise AuthenticationError("Session not found or expired")

    if not session.user.is_active:
        raise AuthenticationError("User account is deactivated")

    return session


def get_current_user(
    session: Annotated[UserSession, Depends(get_current_session)],
) -> User:
    """The authenticated user behind the current session."""
    return session.user


def require_admin(
    user: Annotated[User, Depends(get_current_user)],
) -> User:
    """Dependency that requires an admin user."""
    if not user.is_admin:
        raise PermissionDeniedError("Admin access required")
    return user


# Type aliases for dependency injection
CurrentSession = Annotated[UserSession, Depends(get_current_session)]
CurrentUser = Annotated[User, Depends(get_current_user)]
AdminUser = Annotated[User, Depends(require_admin)]
