"""Dashboard schemas."""

from pydantic import Field

from app.schemas.common import BaseSchema


class StatusCount(BaseSchema):
    """Number of students in one status."""

    status: str
    count: int = 0


class LocationCount(BaseSchema):
    """Number of students registered from one location."""

    location: str
    count: int = 0


class TrendPoint(BaseSchema):
    """Registrations in one period (``YYYY-MM`` or ``YYYY-Www``)."""

    period: str
    count: int = 0


class DashboardResponse(BaseSchema):
    """Aggregated registration statistics."""

    total_students: int = 0
    registrations_this_month: int = 0
    status_counts: list[StatusCount] = []
    location_counts: list[LocationCount] = []
    monthly_trend: list[TrendPoint] = Field(
        default_factory=list,
        description="Registrations per calendar month, oldest first",
    )
    weekly_trend: list[TrendPoint] = Field(
        default_factory=list,
        description="Registrations per ISO week, oldest first",
    )
