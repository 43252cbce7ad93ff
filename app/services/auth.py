"""Authentication service."""

import logging
from datetime import datetime, timezone

from sqlalchemy import select
from sqlalchemy.orm import Session

from app.core.exceptions import AuthenticationError, ConflictError
from app.core.security import create_session_token, hash_password, verify_password
from app.core.session import SessionStore
from app.models.user import User
from app.schemas.auth import LoginRequest, LoginResponse, UserCreate, UserResponse

logger = logging.getLogger(__name__)


class AuthService:
    """Authentication service."""

    def __init__(self, db: Session):
        self.db = db
        self.sessions = SessionStore(db)

    def login(self, request: LoginRequest) -> LoginResponse:
        """Authenticate user and open a session."""
        result = self.db.execute(
            select(User).where(User.username == request.username)
        )
        user = result.scalar_one_or_none()

        if not user:
            raise AuthenticationError("Invalid username or password")

        if not verify_password(request.password, user.password_hash):
            raise AuthenticationError("Invalid username or password")

        if not user.is_active:
            raise AuthenticationError("User account is deactivated")

        # Update last login
        user.last_login_at = datetime.now(timezone.utc)
        session = self.sessions.create(user)
        logger.info(f"User {user.username} logged in")

        return LoginResponse(
            user=UserResponse.model_validate(user),
            session_token=create_session_token(user.id, session.sid),
            expires_at=session.expires_at,
        )

    def logout(self, sid: str) -> None:
        """Destroy the session."""
        self.sessions.destroy(sid)

    def register_user(self, request: UserCreate) -> UserResponse:
        """Register a new user."""
        # Check if username exists
        result = self.db.execute(
            select(User).where(User.username == request.username)
        )
        existing = result.scalar_one_or_none()

        if existing:
            raise ConflictError("Username already registered", field="username")

        user = User(
            name=request.name,
            username=request.username,
            password_hash=hash_password(request.password),
            is_active=True,
            is_admin=request.is_admin,
        )

        self.db.add(user)
        self.db.flush()
        self.db.refresh(user)

        return UserResponse.model_validate(user)
