"""Dashboard endpoints."""

from typing import Annotated

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from app.core.database import get_db
from app.core.dependencies import CurrentUser
from app.schemas.dashboard import DashboardResponse
from app.services.dashboard import DashboardService, period_date_range

router = APIRouter()


@router.get("", response_model=DashboardResponse)
def get_dashboard(
    user: CurrentUser,
    db: Annotated[Session, Depends(get_db)],
    months: int = Query(12, ge=1, le=60),
    weeks: int = Query(12, ge=1, le=104),
):
    """
    Registration statistics: totals, status and location breakdowns, and
    monthly/weekly registration trends (zero-filled, oldest first).
    """
    service = DashboardService(db)
    return service.get_dashboard(months=months, weeks=weeks)


@router.get("/periods/{period}")
def get_period_range(period: str, user: CurrentUser):
    """
    Translate a trend period (`2024-12` or `2024-W51`) into the
    `registrationDateFrom`/`registrationDateTo` filter that lists its students.
    """
    start, end = period_date_range(period)
    return {
        "registrationDateFrom": start.isoformat(),
        "registrationDateTo": end.isoformat(),
    }
