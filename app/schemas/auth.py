"""Authentication schemas."""

from datetime import datetime

from pydantic import Field

from app.schemas.common import BaseSchema


class LoginRequest(BaseSchema):
    """Login request schema."""

    username: str = Field(..., min_length=3, max_length=255)
    password: str = Field(..., min_length=6)


class UserCreate(BaseSchema):
    """User creation schema."""

    name: str = Field(..., min_length=2, max_length=255)
    username: str = Field(..., min_length=3, max_length=255)
    password: str = Field(..., min_length=8)
    is_admin: bool = False


class UserResponse(BaseSchema):
    """User response schema."""

    id: int
    name: str
    username: str
    is_active: bool
    is_admin: bool
    last_login_at: datetime | None
    created_at: datetime
    updated_at: datetime


class LoginResponse(BaseSchema):
    """Login response: the authenticated user and the session token.

    The token is also set as an HTTP-only cookie; non-browser clients may send
    it back as a Bearer token instead.
    """

    user: UserResponse
    session_token: str
    expires_at: datetime
