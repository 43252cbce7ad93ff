"""Student note service."""

import logging

from sqlalchemy import select
from sqlalchemy.orm import Session

from app.core.exceptions import ForbiddenError, NotFoundError
from app.models.base import utcnow
from app.models.student import StudentNote
from app.models.user import User
from app.schemas.note import NoteCreate, NoteResponse, NoteUpdate
from app.services.student import StudentService

logger = logging.getLogger(__name__)


class NoteService:
    """Notes attached to a student; only the author may change them."""

    def __init__(self, db: Session):
        self.db = db

    def list_notes(self, student_id: int) -> list[NoteResponse]:
        """All notes and system log entries for a student, newest first."""
        StudentService(self.db).get_student(student_id)
        result = self.db.execute(
            select(StudentNote)
            .where(StudentNote.student_id == student_id)
            .order_by(StudentNote.created_at.desc(), StudentNote.id.desc())
        )
        return [NoteResponse.model_validate(n) for n in result.scalars().all()]

    def create_note(self, student_id: int, request: NoteCreate, author: User) -> NoteResponse:
        """Add a user-authored note."""
        StudentService(self.db).get_student(student_id)
        now = utcnow()
        note = StudentNote(
            student_id=student_id,
            content=request.content,
            is_system_generated=False,
            created_by=author.id,
            created_by_name=author.name,
            created_at=now,
            updated_at=now,
        )
        self.db.add(note)
        self.db.flush()
        self.db.refresh(note)
        return NoteResponse.model_validate(note)

    def get_note(self, note_id: int) -> StudentNote:
        """Get note by ID."""
        result = self.db.execute(select(StudentNote).where(StudentNote.id == note_id))
        note = result.scalar_one_or_none()
        if not note:
            raise NotFoundError("Note", str(note_id))
        return note

    def update_note(self, note_id: int, request: NoteUpdate, user: User) -> NoteResponse:
        """Edit a note's content."""
        note = self._get_own_note(note_id, user, "edit")
        note.content = request.content
        note.updated_at = utcnow()
        self.db.flush()
        self.db.refresh(note)
        return NoteResponse.model_validate(note)

    def delete_note(self, note_id: int, user: User) -> None:
        """Delete a note; the student is untouched."""
        note = self._get_own_note(note_id, user, "delete")
        self.db.delete(note)
        self.db.flush()

    def _get_own_note(self, note_id: int, user: User, verb: str) -> StudentNote:
        note = self.get_note(note_id)
        if note.is_system_generated or note.created_by != user.id:
            logger.warning(f"User {user.id} tried to {verb} note {note_id} they do not own")
            raise ForbiddenError(f"You can only {verb} your own notes")
        return note
