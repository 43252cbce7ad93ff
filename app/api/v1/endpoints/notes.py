"""Student note endpoints addressed by note ID."""

from typing import Annotated

from fastapi import APIRouter, Depends, Response, status
from sqlalchemy.orm import Session

from app.core.database import get_db
from app.core.dependencies import CurrentUser
from app.schemas.note import NoteResponse, NoteUpdate
from app.services.note import NoteService

router = APIRouter()


@router.put("/{note_id}", response_model=NoteResponse)
def update_note(
    note_id: int,
    request: NoteUpdate,
    user: CurrentUser,
    db: Annotated[Session, Depends(get_db)],
):
    """Edit a note. Only its author may do so."""
    service = NoteService(db)
    return service.update_note(note_id, request, user)


@router.delete("/{note_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_note(
    note_id: int,
    user: CurrentUser,
    db: Annotated[Session, Depends(get_db)],
):
    """Delete a note. Only its author may do so."""
    service = NoteService(db)
    service.delete_note(note_id, user)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
