"""Database-backed session store."""

import logging
from datetime import datetime, timedelta, timezone
from typing import Any

from sqlalchemy import Engine, delete, select
from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.security import generate_session_id
from app.models.user import User, UserSession

logger = logging.getLogger(__name__)


def ensure_session_table(engine: Engine) -> None:
    """Create the sessions table if it does not exist yet."""
    UserSession.__table__.create(bind=engine, checkfirst=True)


class SessionStore:
    """Server-side sessions keyed by an opaque id carried in the cookie."""

    def __init__(self, db: Session):
        self.db = db

    def create(self, user: User, data: dict[str, Any] | None = None) -> UserSession:
        """Open a new session for the user."""
        session = UserSession(
            sid=generate_session_id(),
            user_id=user.id,
            data=data or {},
            expires_at=datetime.now(timezone.utc) + timedelta(seconds=settings.session_max_age_seconds),
        )
        self.db.add(session)
        self.db.flush()
        return session

    def get(self, sid: str) -> UserSession | None:
        """Return a live session, dropping it if it has expired."""
        result = self.db.execute(select(UserSession).where(UserSession.sid == sid))
        session = result.scalar_one_or_none()
        if session is None:
            return None

        expires_at = session.expires_at
        if expires_at.tzinfo is None:
            expires_at = expires_at.replace(tzinfo=timezone.utc)
        if expires_at <= datetime.now(timezone.utc):
            logger.info(f"Session for user {session.user_id} expired")
            self.db.delete(session)
            self.db.flush()
            return None
        return session

    def get_value(self, session: UserSession, key: str, default: Any = None) -> Any:
        return (session.data or {}).get(key, default)

    def set_value(self, session: UserSession, key: str, value: Any) -> None:
        """Store one key of the session snapshot."""
        # Reassign so the JSON column is marked dirty
        data = dict(session.data or {})
        data[key] = value
        session.data = data
        self.db.flush()

    def destroy(self, sid: str) -> None:
        self.db.execute(delete(UserSession).where(UserSession.sid == sid))
        self.db.flush()

    def purge_expired(self) -> int:
        """Delete every expired session; returns how many were removed."""
        result = self.db.execute(
            delete(UserSession).where(UserSession.expires_at <= datetime.now(timezone.utc))
        )
        self.db.flush()
        return result.rowcount or 0
