"""
Pydantic schemas for read-side aggregates used by dashboards.
"""

from datetime import datetime
from typing import Optional
from pydantic import BaseModel

from app.schemas.common import Money


class StatusBreakdown(BaseModel):
    status: str
    count: int
    total_revenue: Money


class BookingStats(BaseModel):
    event_id: int
    by_status: list[StatusBreakdown]
    total_bookings: int
    total_revenue: Money


class EventCounters(BaseModel):
    id: int
    title: str
    current_attendees: int
    max_attendees: int
    available_spots: int
    registration_rate: int
    views: int


class EventStatistics(BaseModel):
    event: EventCounters
    booking_stats: BookingStats


class BookingOverview(BaseModel):
    total_bookings: int
    by_status: dict[str, int]
    pending_bookings: int
    confirmed_bookings: int
    cancelled_bookings: int
    total_revenue: Money
    average_booking_value: Money
    date_from: Optional[datetime] = None
    date_to: Optional[datetime] = None


class RevenueReport(BaseModel):
    start: datetime
    end: datetime
    total_revenue: Money
    total_bookings: int
