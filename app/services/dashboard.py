"""Dashboard service: registration statistics for the overview page."""

import calendar
import re
from collections import Counter
from datetime import date, timedelta

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from app.core.exceptions import ValidationError
from app.models.student import Student, StudentStatus
from app.schemas.dashboard import DashboardResponse, LocationCount, StatusCount, TrendPoint

MONTH_PERIOD_RE = re.compile(r"^(\d{4})-(\d{2})$")
WEEK_PERIOD_RE = re.compile(r"^(\d{4})-W(\d{2})$")


def month_period(day: date) -> str:
    return f"{day.year:04d}-{day.month:02d}"


def week_period(day: date) -> str:
    year, week, _ = day.isocalendar()
    return f"{year:04d}-W{week:02d}"


def period_date_range(period: str) -> tuple[date, date]:
    """Inclusive date range covered by a ``YYYY-MM`` or ``YYYY-Www`` period.

    Used to drill down from a trend point to the matching student list.
    """
    match = MONTH_PERIOD_RE.match(period)
    if match:
        year, month = int(match.group(1)), int(match.group(2))
        if 1 <= month <= 12:
            last_day = calendar.monthrange(year, month)[1]
            return date(year, month, 1), date(year, month, last_day)

    match = WEEK_PERIOD_RE.match(period)
    if match:
        try:
            start = date.fromisocalendar(int(match.group(1)), int(match.group(2)), 1)
        except ValueError:
            pass
        else:
            return start, start + timedelta(days=6)

    raise ValidationError(f"Invalid period '{period}'", details={"period": period})


class DashboardService:
    """Dashboard data aggregation service."""

    def __init__(self, db: Session):
        self.db = db

    def get_dashboard(
        self,
        today: date | None = None,
        months: int = 12,
        weeks: int = 12,
    ) -> DashboardResponse:
        today = today or date.today()
        per_day = self._registrations_per_day()

        monthly = Counter()
        weekly = Counter()
        for day, count in per_day.items():
            monthly[month_period(day)] += count
            weekly[week_period(day)] += count

        return DashboardResponse(
            total_students=sum(per_day.values()),
            registrations_this_month=monthly[month_period(today)],
            status_counts=self._get_status_counts(),
            location_counts=self._get_location_counts(),
            monthly_trend=[
                TrendPoint(period=p, count=monthly[p]) for p in self._recent_months(today, months)
            ],
            weekly_trend=[
                TrendPoint(period=p, count=weekly[p]) for p in self._recent_weeks(today, weeks)
            ],
        )

    def _registrations_per_day(self) -> dict[date, int]:
        result = self.db.execute(
            select(Student.registration_date, func.count(Student.id))
            .group_by(Student.registration_date)
        )
        return {row[0]: row[1] for row in result.all()}

    def _get_status_counts(self) -> list[StatusCount]:
        result = self.db.execute(
            select(Student.status, func.count(Student.id)).group_by(Student.status)
        )
        counts = {row[0]: row[1] for row in result.all()}
        return [StatusCount(status=s.value, count=counts.get(s, 0)) for s in StudentStatus]

    def _get_location_counts(self) -> list[LocationCount]:
        count = func.count(Student.id)
        result = self.db.execute(
            select(Student.location, count)
            .where(Student.location.is_not(None), Student.location != "")
            .group_by(Student.location)
            .order_by(count.desc(), Student.location)
        )
        return [LocationCount(location=row[0], count=row[1]) for row in result.all()]

    @staticmethod
    def _recent_months(today: date, months: int) -> list[str]:
        periods = []
        year, month = today.year, today.month
        for _ in range(months):
            periods.append(f"{year:04d}-{month:02d}")
            month -= 1
            if month == 0:
                year, month = year - 1, 12
        return list(reversed(periods))

    @staticmethod
    def _recent_weeks(today: date, weeks: int) -> list[str]:
        return [week_period(today - timedelta(weeks=offset)) for offset in range(weeks - 1, -1, -1)]
