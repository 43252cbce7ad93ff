"""Database models package."""

from app.models.student import NOTE_MAX_LENGTH, Student, StudentNote, StudentStatus
from app.models.user import User, UserSession

__all__ = [
    # User
    "User",
    "UserSession",
    # Student
    "Student",
    "StudentNote",
    "StudentStatus",
    "NOTE_MAX_LENGTH",
]
