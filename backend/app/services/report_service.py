"""
Read-side aggregates for dashboards. Nothing here mutates state.

Revenue counts the pricing snapshot (final_price) of bookings that are
confirmed or completed.
"""

from datetime import datetime
from typing import Optional

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.clock import as_utc
from app.models.booking import Booking
from app.models.enums import BookingStatus
from app.services.event_service import get_event
from app.services.pricing import to_money

REVENUE_STATUSES = (BookingStatus.CONFIRMED.value, BookingStatus.COMPLETED.value)


async def booking_stats(db: AsyncSession, event_id: int) -> dict:
    """Count and revenue per booking status for one event."""
    await get_event(db, event_id)

    result = await db.execute(
        select(
            Booking.status,
            func.count(Booking.id).label("total"),
            func.sum(Booking.final_price).label("revenue"),
        )
        .where(Booking.event_id == event_id)
        .group_by(Booking.status)
        .order_by(Booking.status)
    )

    by_status = []
    total_bookings = 0
    total_revenue = to_money(0)
    for row in result:
        revenue = to_money(row.revenue)
        by_status.append({"status": row.status, "count": row.total, "total_revenue": revenue})
        total_bookings += row.total
        if row.status in REVENUE_STATUSES:
            total_revenue += revenue

    return {
        "event_id": event_id,
        "by_status": by_status,
        "total_bookings": total_bookings,
        "total_revenue": total_revenue,
    }


async def event_statistics(db: AsyncSession, event_id: int) -> dict:
    event = await get_event(db, event_id)
    stats = await booking_stats(db, event_id)
    return {
        "event": {
            "id": event.id,
            "title": event.title,
            "current_attendees": event.current_attendees,
            "max_attendees": event.max_attendees,
            "available_spots": event.available_spots,
            "registration_rate": event.registration_rate,
            "views": event.views,
        },
        "booking_stats": stats,
    }


async def booking_overview(
    db: AsyncSession,
    date_from: Optional[datetime] = None,
    date_to: Optional[datetime] = None,
) -> dict:
    """Totals by status plus revenue across all events, optionally bounded by creation date."""
    filters = _created_between(date_from, date_to)

    query = select(Booking.status, func.count(Booking.id).label("total")).group_by(Booking.status)
    if filters:
        query = query.where(*filters)
    result = await db.execute(query)
    by_status = {status.value: 0 for status in BookingStatus}
    for row in result:
        by_status[row.status] = row.total

    revenue_row = (
        await db.execute(
            select(
                func.sum(Booking.final_price).label("revenue"),
                func.avg(Booking.final_price).label("average"),
            ).where(*filters, Booking.status.in_(REVENUE_STATUSES))
        )
    ).one()

    total = sum(by_status.values())
    confirmed = by_status[BookingStatus.CONFIRMED.value]
    cancelled = by_status[BookingStatus.CANCELLED.value]
    return {
        "total_bookings": total,
        "by_status": by_status,
        "pending_bookings": by_status[BookingStatus.PENDING.value],
        "confirmed_bookings": confirmed,
        "cancelled_bookings": cancelled,
        "total_revenue": to_money(revenue_row.revenue),
        "average_booking_value": to_money(revenue_row.average),
        "date_from": date_from,
        "date_to": date_to,
    }


async def revenue_by_date_range(db: AsyncSession, start: datetime, end: datetime) -> dict:
    row = (
        await db.execute(
            select(
                func.sum(Booking.final_price).label("revenue"),
                func.count(Booking.id).label("bookings"),
            ).where(*_created_between(start, end), Booking.status.in_(REVENUE_STATUSES))
        )
    ).one()
    return {
        "start": start,
        "end": end,
        "total_revenue": to_money(row.revenue),
        "total_bookings": row.bookings or 0,
    }


def _created_between(date_from: Optional[datetime], date_to: Optional[datetime]) -> list:
    filters = []
    if date_from is not None:
        filters.append(Booking.created_at >= as_utc(date_from))
    if date_to is not None:
        filters.append(Booking.created_at <= as_utc(date_to))
    return filters
