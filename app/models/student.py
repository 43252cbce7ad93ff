"""Student and student note models."""

import enum
from datetime import date

from sqlalchemy import BigInteger, Boolean, Date, Enum, ForeignKey, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.core.database import Base
from app.models.base import IDMixin, TimestampMixin

NOTE_MAX_LENGTH = 5000


class StudentStatus(str, enum.Enum):
    """Student registration status."""

    ACTIVE = "active"
    INACTIVE = "inactive"
    ENROLLED = "enrolled"
    PENDING = "pending"
    GRADUATED = "graduated"


class Student(Base, IDMixin, TimestampMixin):
    """Student registration record."""

    __tablename__ = "students"

    name: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    email: Mapped[str] = mapped_column(String(255), nullable=False, unique=True, index=True)
    phone: Mapped[str] = mapped_column(String(50), nullable=False)
    course_interested: Mapped[str | None] = mapped_column(String(255), nullable=True)
    location: Mapped[str | None] = mapped_column(String(255), nullable=True)
    citizenship_status: Mapped[str | None] = mapped_column(String(255), nullable=True)
    current_situation: Mapped[str | None] = mapped_column(String(255), nullable=True)
    status: Mapped[StudentStatus] = mapped_column(
        Enum(
            StudentStatus,
            native_enum=False,
            length=20,
            values_callable=lambda statuses: [s.value for s in statuses],
        ),
        default=StudentStatus.PENDING,
        nullable=False,
        index=True,
    )
    registration_date: Mapped[date] = mapped_column(Date, default=date.today, nullable=False, index=True)

    # Relationships
    notes: Mapped[list["StudentNote"]] = relationship(
        "StudentNote",
        back_populates="student",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="StudentNote.created_at.desc()",
    )

    def __repr__(self) -> str:
        return f"<Student(id={self.id}, name={self.name}, status={self.status})>"


class StudentNote(Base, IDMixin, TimestampMixin):
    """Free-text note or system log entry attached to a student."""

    __tablename__ = "student_notes"

    student_id: Mapped[int] = mapped_column(
        BigInteger,
        ForeignKey("students.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    content: Mapped[str] = mapped_column(Text, nullable=False)
    is_system_generated: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    created_by: Mapped[int | None] = mapped_column(
        BigInteger,
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
    )
    created_by_name: Mapped[str | None] = mapped_column(String(255), nullable=True)

    student: Mapped[Student] = relationship("Student", back_populates="notes")

    @property
    def is_edited(self) -> bool:
        return self.updated_at != self.created_at

    def __repr__(self) -> str:
        return f"<StudentNote(id={self.id}, student_id={self.student_id}, system={self.is_system_generated})>"
