"""Student management endpoints."""

import logging
from io import BytesIO
from typing import Annotated, Literal

from fastapi import APIRouter, Depends, File, Query, Response, UploadFile, status
from fastapi.responses import StreamingResponse
from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.database import get_db
from app.core.dependencies import CurrentUser
from app.core.exceptions import UploadError
from app.schemas.note import NoteCreate, NoteResponse
from app.schemas.student import (
    ImportResult,
    SortColumn,
    SortDirection,
    StudentCreate,
    StudentFacets,
    StudentFilter,
    StudentListResponse,
    StudentResponse,
    StudentUpdate,
)
from app.services.csv_export import (
    CSV_MEDIA_TYPE,
    XLSX_MEDIA_TYPE,
    StudentExportService,
    export_filename,
)
from app.services.csv_import import CsvImportPipeline, build_sample_csv
from app.services.note import NoteService
from app.services.student import StudentService, split_multi_value

logger = logging.getLogger(__name__)

router = APIRouter()


def get_student_filter(
    name: str | None = None,
    email: str | None = None,
    phone: str | None = None,
    course_interested: Annotated[str | None, Query(alias="courseInterested")] = None,
    location: str | None = None,
    status: str | None = None,
    registration_date_from: Annotated[str | None, Query(alias="registrationDateFrom")] = None,
    registration_date_to: Annotated[str | None, Query(alias="registrationDateTo")] = None,
    sort_column: Annotated[SortColumn | None, Query(alias="sortColumn")] = None,
    sort_direction: Annotated[SortDirection | None, Query(alias="sortDirection")] = None,
) -> StudentFilter:
    """Collect filter query parameters; multi-value fields are comma-joined."""
    return StudentFilter(
        name=name,
        email=email,
        phone=phone,
        course_interested=split_multi_value(course_interested),
        location=location,
        status=split_multi_value(status),
        registration_date_from=registration_date_from,
        registration_date_to=registration_date_to,
        sort_column=sort_column,
        sort_direction=sort_direction,
    )


StudentFilterParams = Annotated[StudentFilter, Depends(get_student_filter)]


@router.get("", response_model=StudentListResponse)
def list_students(
    user: CurrentUser,
    db: Annotated[Session, Depends(get_db)],
    filters: StudentFilterParams,
    limit: int = Query(settings.DEFAULT_PAGE_LIMIT, ge=1, le=settings.MAX_PAGE_LIMIT),
    offset: int = Query(0, ge=0),
):
    """
    List students matching every supplied filter, one page at a time.

    `courseInterested` and `status` accept comma-joined values (any of them
    matches). Name, email and phone are case-insensitive substring matches.
    """
    service = StudentService(db)
    return service.list_students(filters, offset=offset, limit=limit)


@router.post("", response_model=StudentResponse, status_code=status.HTTP_201_CREATED)
def create_student(
    request: StudentCreate,
    user: CurrentUser,
    db: Annotated[Session, Depends(get_db)],
):
    """Create a new student."""
    service = StudentService(db)
    student = service.create_student(request)
    logger.info(f"Student {student.id} created by user {user.id}")
    return student


@router.get("/facets", response_model=StudentFacets)
def get_student_facets(
    user: CurrentUser,
    db: Annotated[Session, Depends(get_db)],
):
    """Distinct courses, locations and statuses for the filter dropdowns."""
    service = StudentService(db)
    return service.get_facets()


@router.get("/export")
def export_students(
    user: CurrentUser,
    db: Annotated[Session, Depends(get_db)],
    filters: StudentFilterParams,
    format: Literal["csv", "xlsx"] = "csv",
):
    """Download every student matching the filters (no paging)."""
    service = StudentExportService(db)
    if format == "xlsx":
        content = service.export_xlsx(filters)
        media_type = XLSX_MEDIA_TYPE
    else:
        content = service.export_csv(filters).encode("utf-8")
        media_type = CSV_MEDIA_TYPE

    return StreamingResponse(
        BytesIO(content),
        media_type=media_type,
        headers={"Content-Disposition": f"attachment; filename={export_filename(format)}"},
    )


@router.get("/import/template")
def download_import_template(user: CurrentUser):
    """Download a sample CSV showing the expected import columns."""
    return StreamingResponse(
        BytesIO(build_sample_csv(5).encode("utf-8")),
        media_type=CSV_MEDIA_TYPE,
        headers={"Content-Disposition": "attachment; filename=students_template.csv"},
    )


@router.post("/import", response_model=ImportResult)
def import_students(
    user: CurrentUser,
    db: Annotated[Session, Depends(get_db)],
    file: UploadFile = File(...),
):
    """
    Bulk import students from a CSV file.

    A malformed file is rejected as a whole. Otherwise every row is created
    independently: rows that fail are reported and the rest are kept.
    """
    # Validate file
    if not file.filename:
        raise UploadError("No file provided")

    if not file.filename.lower().endswith(".csv"):
        raise UploadError("Only .csv files are allowed")

    content = file.file.read()
    if len(content) > settings.MAX_UPLOAD_SIZE_MB * 1024 * 1024:
        raise UploadError(f"File size exceeds {settings.MAX_UPLOAD_SIZE_MB}MB limit")

    try:
        text = content.decode("utf-8-sig")
    except UnicodeDecodeError:
        raise UploadError("CSV file must be UTF-8 encoded")

    service = StudentService(db)

    def submit(payload: dict) -> None:
        request = StudentCreate.model_validate(payload)
        # One savepoint per row so a failed row rolls back alone
        with db.begin_nested():
            service.create_student(request)

    # A database session is not thread-safe: submit rows one at a time
    pipeline = CsvImportPipeline(submit, max_workers=1)
    result = pipeline.run(text)
    logger.info(
        f"User {user.id} imported {file.filename}: "
        f"{result.succeeded}/{result.total} rows"
    )
    return result


@router.get("/{student_id}", response_model=StudentResponse)
def get_student(
    student_id: int,
    user: CurrentUser,
    db: Annotated[Session, Depends(get_db)],
):
    """Get a student by ID."""
    service = StudentService(db)
    student = service.get_student(student_id)
    return StudentResponse.model_validate(student)


@router.put("/{student_id}", response_model=StudentResponse)
def update_student(
    student_id: int,
    request: StudentUpdate,
    user: CurrentUser,
    db: Annotated[Session, Depends(get_db)],
):
    """Update some fields of a student. A status change is logged as a system note."""
    service = StudentService(db)
    return service.update_student(student_id, request, acting_user=user)


@router.delete("/{student_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_student(
    student_id: int,
    user: CurrentUser,
    db: Annotated[Session, Depends(get_db)],
):
    """Delete a student together with its notes."""
    service = StudentService(db)
    service.delete_student(student_id)
    logger.info(f"Student {student_id} deleted by user {user.id}")
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/{student_id}/notes", response_model=list[NoteResponse])
def list_student_notes(
    student_id: int,
    user: CurrentUser,
    db: Annotated[Session, Depends(get_db)],
):
    """Notes and system log entries for a student, newest first."""
    service = NoteService(db)
    return service.list_notes(student_id)


@router.post(
    "/{student_id}/notes",
    response_model=NoteResponse,
    status_code=status.HTTP_201_CREATED,
)
def create_student_note(
    student_id: int,
    request: NoteCreate,
    user: CurrentUser,
    db: Annotated[Session, Depends(get_db)],
):
    """Add a note to a student."""
    service = NoteService(db)
    return service.create_note(student_id, request, author=user)
