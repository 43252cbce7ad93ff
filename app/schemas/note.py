"""Student note schemas."""

from pydantic import Field

from app.models.student import NOTE_MAX_LENGTH
from app.schemas.common import BaseSchema, TimestampSchema


class NoteCreate(BaseSchema):
    """Note creation schema."""

    content: str = Field(..., min_length=1, max_length=NOTE_MAX_LENGTH)


class NoteUpdate(BaseSchema):
    """Note update schema."""

    content: str = Field(..., min_length=1, max_length=NOTE_MAX_LENGTH)


class NoteResponse(TimestampSchema):
    """Note response schema."""

    id: int
    student_id: int
    content: str
    is_system_generated: bool
    created_by: int | None = None
    created_by_name: str | None = None
    is_edited: bool = False
