"""
Dashboard report endpoints. Staff only.
"""

from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.clock import as_utc
from app.core.exceptions import ValidationFailedError
from app.core.security import require_staff
from app.db.session import get_db
from app.models.user import User
from app.schemas.report import BookingOverview, BookingStats, RevenueReport
from app.services import report_service

router = APIRouter(prefix="/reports", tags=["Reports"])


@router.get("/bookings/overview", response_model=BookingOverview)
async def booking_overview_endpoint(
    date_from: Optional[datetime] = None,
    date_to: Optional[datetime] = None,
    staff: User = Depends(require_staff),
    db: AsyncSession = Depends(get_db),
):
    return await report_service.booking_overview(db, date_from, date_to)


@router.get("/bookings/events/{event_id}", response_model=BookingStats)
async def event_booking_stats_endpoint(
    event_id: int,
    staff: User = Depends(require_staff),
    db: AsyncSession = Depends(get_db),
):
    """Booking count and revenue per status for one event."""
    return await report_service.booking_stats(db, event_id)


@router.get("/revenue", response_model=RevenueReport)
async def revenue_endpoint(
    start: datetime,
    end: datetime,
    staff: User = Depends(require_staff),
    db: AsyncSession = Depends(get_db),
):
    if as_utc(end) < as_utc(start):
        raise ValidationFailedError("end must not be before start")
    return await report_service.revenue_by_date_range(db, start, end)
