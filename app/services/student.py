"""Student record service: CRUD plus the filtered, sorted, paginated listing."""

import logging
import re
from datetime import date

from sqlalchemy import ColumnElement, Select, false, func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.core.exceptions import ConflictError, NotFoundError
from app.models.base import utcnow
from app.models.student import Student, StudentNote, StudentStatus
from app.models.user import User
from app.schemas.student import (
    StudentCreate,
    StudentFacets,
    StudentFilter,
    StudentListResponse,
    StudentResponse,
    StudentUpdate,
)

logger = logging.getLogger(__name__)

ISO_DATE_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")

SORTABLE_COLUMNS = {
    "name": Student.name,
    "email": Student.email,
    "phone": Student.phone,
    "courseInterested": func.coalesce(Student.course_interested, ""),
    "location": func.coalesce(Student.location, ""),
    "status": Student.status,
    "registrationDate": Student.registration_date,
}


def parse_date_bound(value: str) -> date | None:
    """Parse a ``YYYY-MM-DD`` filter bound; None when malformed."""
    value = value.strip()
    if not ISO_DATE_RE.match(value):
        return None
    try:
        return date.fromisoformat(value)
    except ValueError:
        return None


def split_multi_value(raw: str | None) -> list[str]:
    """Split a comma-joined query parameter into its non-empty values."""
    if not raw:
        return []
    return [part.strip() for part in raw.split(",") if part.strip()]


def _contains(column, term: str) -> ColumnElement[bool]:
    escaped = term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    return column.ilike(f"%{escaped}%", escape="\\")


def filter_conditions(filters: StudentFilter) -> list[ColumnElement[bool]]:
    """Translate a filter specification into SQL predicates (ANDed together)."""
    conditions: list[ColumnElement[bool]] = []

    if filters.name:
        conditions.append(_contains(Student.name, filters.name))
    if filters.email:
        conditions.append(_contains(Student.email, filters.email))
    if filters.phone:
        conditions.append(_contains(Student.phone, filters.phone))

    if filters.course_interested:
        conditions.append(Student.course_interested.in_(filters.course_interested))

    if filters.status:
        statuses = [
            StudentStatus(value)
            for value in filters.status
            if value in StudentStatus._value2member_map_
        ]
        conditions.append(Student.status.in_(statuses) if statuses else false())

    # Blank location is the "All locations" sentinel
    if filters.location and filters.location.strip():
        conditions.append(Student.location == filters.location)

    for raw, is_lower in (
        (filters.registration_date_from, True),
        (filters.registration_date_to, False),
    ):
        if not raw:
            continue
        bound = parse_date_bound(raw)
        if bound is None:
            conditions.append(false())
        elif is_lower:
            conditions.append(Student.registration_date >= bound)
        else:
            conditions.append(Student.registration_date <= bound)

    return conditions


def build_student_query(filters: StudentFilter | None = None) -> Select:
    """Build the ordered SELECT for a filter specification."""
    query = select(Student)
    if filters is None:
        return query.order_by(Student.id)

    conditions = filter_conditions(filters)
    if conditions:
        query = query.where(*conditions)

    if filters.sort_column and filters.sort_direction:
        column = SORTABLE_COLUMNS[filters.sort_column]
        ordering = column.asc() if filters.sort_direction == "asc" else column.desc()
        query = query.order_by(ordering, Student.id)
    else:
        query = query.order_by(Student.id)
    return query


class StudentService:
    """Student management service."""

    def __init__(self, db: Session):
        self.db = db

    def create_student(self, request: StudentCreate) -> StudentResponse:
        """Create a new student."""
        self._ensure_email_available(request.email)

        student = Student(
            name=request.name,
            email=request.email,
            phone=request.phone,
            course_interested=request.course_interested,
            location=request.location,
            citizenship_status=request.citizenship_status,
            current_situation=request.current_situation,
            status=request.status,
            registration_date=request.registration_date,
        )
        self.db.add(student)
        try:
            self.db.flush()
        except IntegrityError:
            raise ConflictError(f"Email '{request.email}' is already registered", field="email")
        self.db.refresh(student)
        return StudentResponse.model_validate(student)

    def get_student(self, student_id: int) -> Student:
        """Get student by ID."""
        result = self.db.execute(select(Student).where(Student.id == student_id))
        student = result.scalar_one_or_none()
        if not student:
            raise NotFoundError("Student", str(student_id))
        return student

    def update_student(
        self,
        student_id: int,
        request: StudentUpdate,
        acting_user: User | None = None,
    ) -> StudentResponse:
        """Apply a partial update; a status change appends a system log note."""
        student = self.get_student(student_id)
        update_data = request.model_dump(exclude_unset=True)

        new_email = update_data.get("email")
        if new_email and new_email != student.email:
            self._ensure_email_available(new_email, exclude_id=student.id)

        old_status = student.status
        for field, value in update_data.items():
            setattr(student, field, value)

        new_status = update_data.get("status")
        if new_status is not None and new_status != old_status:
            self._log_status_change(student, old_status, new_status, acting_user)

        try:
            self.db.flush()
        except IntegrityError:
            raise ConflictError(f"Email '{new_email}' is already registered", field="email")
        self.db.refresh(student)
        return StudentResponse.model_validate(student)

    def delete_student(self, student_id: int) -> None:
        """Hard-delete a student; its notes go with it."""
        student = self.get_student(student_id)
        self.db.delete(student)
        self.db.flush()

    def list_students(
        self,
        filters: StudentFilter | None = None,
        offset: int = 0,
        limit: int | None = 300,
    ) -> StudentListResponse:
        """List students matching the filters, one page window at a time.

        ``limit=None`` returns every match.
        """
        query = build_student_query(filters)

        count_query = select(func.count()).select_from(query.order_by(None).subquery())
        total = self.db.execute(count_query).scalar() or 0

        if offset:
            query = query.offset(offset)
        if limit is not None:
            query = query.limit(limit)

        students = self.db.execute(query).scalars().all()
        return StudentListResponse(
            students=[StudentResponse.model_validate(s) for s in students],
            total=total,
        )

    def get_facets(self) -> StudentFacets:
        """Distinct course, location and status values for filter options."""

        def distinct(column) -> list:
            result = self.db.execute(
                select(column).where(column.is_not(None)).distinct().order_by(column)
            )
            return [row[0] for row in result.all() if row[0] != ""]

        return StudentFacets(
            courses=distinct(Student.course_interested),
            locations=distinct(Student.location),
            statuses=sorted(s.value for s in distinct(Student.status)),
        )

    def _ensure_email_available(self, email: str, exclude_id: int | None = None) -> None:
        query = select(Student.id).where(Student.email == email)
        if exclude_id is not None:
            query = query.where(Student.id != exclude_id)
        if self.db.execute(query).first():
            raise ConflictError(f"Email '{email}' is already registered", field="email")

    def _log_status_change(
        self,
        student: Student,
        old_status: StudentStatus,
        new_status: StudentStatus,
        acting_user: User | None,
    ) -> None:
        content = f'Status changed from "{old_status.value}" to "{new_status.value}"'
        if acting_user:
            content += f" by {acting_user.name}"
        now = utcnow()
        self.db.add(
            StudentNote(
                student_id=student.id,
                content=content,
                created_at=now,
                updated_at=now,
                is_system_generated=True,
                created_by=None,
                created_by_name="System",
            )
        )
        logger.info(f"Student {student.id}: {content}")
