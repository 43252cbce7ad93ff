"""Security utilities for authentication."""

import secrets
from datetime import datetime, timedelta, timezone
from typing import Any

from jose import JWTError, jwt
from passlib.context import CryptContext

from app.core.config import settings

# Password hashing context
pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")


def hash_password(password: str) -> str:
    """Hash a password using bcrypt."""
    return pwd_context.hash(password, rounds=settings.BCRYPT_ROUNDS)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Verify a password against its hash."""
    return pwd_context.verify(plain_password, hashed_password)


def generate_session_id() -> str:
    """Generate an opaque, unguessable session identifier."""
    return secrets.token_urlsafe(32)


def create_session_token(
    user_id: int,
    session_id: str,
    expires_delta: timedelta | None = None,
) -> str:
    """Sign a session cookie value binding the user to a stored session."""
    if expires_delta:
        expire = datetime.now(timezone.utc) + expires_delta
    else:
        expire = datetime.now(timezone.utc) + timedelta(
            seconds=settings.session_max_age_seconds
        )

    to_encode: dict[str, Any] = {
        "sub": str(user_id),
        "sid": session_id,
        "exp": expire,
        "type": "session",
    }

    return jwt.encode(
        to_encode,
        settings.SESSION_SECRET,
        algorithm=settings.SESSION_ALGORITHM,
    )


def decode_token(token: str) -> dict[str, Any] | None:
    """Decode and validate a signed token."""
    try:
        payload = jwt.decode(
            token,
            settings.SESSION_SECRET,
            algorithms=[settings.SESSION_ALGORITHM],
        )
        return payload
    except JWTError:
        return None


def verify_session_token(token: str) -> dict[str, Any] | None:
    """Verify a session token and return its payload."""
    payload = decode_token(token)
    if payload and payload.get("type") == "session" and payload.get("sid"):
        return payload
    return None
