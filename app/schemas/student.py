"""Student schemas."""

from datetime import date
from typing import Literal

from pydantic import EmailStr, Field, model_validator

from app.models.student import StudentStatus
from app.schemas.common import BaseSchema, TimestampSchema

SortColumn = Literal[
    "name",
    "email",
    "phone",
    "courseInterested",
    "location",
    "status",
    "registrationDate",
]
SortDirection = Literal["asc", "desc"]


class StudentBase(BaseSchema):
    """Base student schema."""

    name: str = Field(..., min_length=1, max_length=255)
    email: EmailStr = Field(..., max_length=255)
    phone: str = Field(..., min_length=1, max_length=50)
    course_interested: str | None = Field(None, max_length=255)
    location: str | None = Field(None, max_length=255)
    citizenship_status: str | None = Field(None, max_length=255)
    current_situation: str | None = Field(None, max_length=255)
    status: StudentStatus = StudentStatus.PENDING
    registration_date: date = Field(default_factory=date.today)


class StudentCreate(StudentBase):
    """Student creation schema."""

    pass


class StudentUpdate(BaseSchema):
    """Partial student update; only the supplied fields change."""

    name: str | None = Field(None, min_length=1, max_length=255)
    email: EmailStr | None = Field(None, max_length=255)
    phone: str | None = Field(None, min_length=1, max_length=50)
    course_interested: str | None = Field(None, max_length=255)
    location: str | None = Field(None, max_length=255)
    citizenship_status: str | None = Field(None, max_length=255)
    current_situation: str | None = Field(None, max_length=255)
    status: StudentStatus | None = None
    registration_date: date | None = None

    @model_validator(mode="after")
    def required_fields_not_cleared(self) -> "StudentUpdate":
        for field in ("name", "email", "phone", "status", "registration_date"):
            if field in self.model_fields_set and getattr(self, field) is None:
                raise ValueError(f"{field} cannot be cleared")
        return self


class StudentResponse(StudentBase, TimestampSchema):
    """Student response schema."""

    id: int
    email: str


class StudentListResponse(BaseSchema):
    """One page of students plus the total match count."""

    students: list[StudentResponse]
    total: int


class StudentFilter(BaseSchema):
    """Student filter options; every supplied predicate must hold."""

    name: str | None = None
    email: str | None = None
    phone: str | None = None
    course_interested: list[str] = []
    location: str | None = None
    status: list[str] = []
    registration_date_from: str | None = None
    registration_date_to: str | None = None
    sort_column: SortColumn | None = None
    sort_direction: SortDirection | None = None


class StudentFacets(BaseSchema):
    """Distinct values present in the data, for filter dropdowns."""

    courses: list[str] = []
    locations: list[str] = []
    statuses: list[str] = []


class ImportResult(BaseSchema):
    """Outcome of a bulk CSV import; failures never abort the batch."""

    succeeded: int = 0
    failed: int = 0
    total: int = 0
    errors: list[str] = []

    def display_errors(self, limit: int = 10) -> list[str]:
        """Errors truncated for display, with a trailer counting the rest."""
        if len(self.errors) <= limit:
            return list(self.errors)
        hidden = len(self.errors) - limit
        return self.errors[:limit] + [f"... and {hidden} more"]
