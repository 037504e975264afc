"""
Event service handling CRUD operations, listings and dashboard summaries.

`current_attendees` is never written here; it belongs to the booking
lifecycle (see app.services.lifecycle).
"""

import enum
from datetime import datetime
from typing import Optional

from sqlalchemy import asc, delete, desc, func, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.clock import as_utc, utcnow
from app.core.exceptions import (
    EventHasBookingsError,
    NotFoundError,
    PermissionDeniedError,
    ValidationFailedError,
)
from app.core.logging import get_logger
from app.models.booking import Booking
from app.models.enums import BookingStatus, EventCategory, EventStatus
from app.models.event import Event
from app.models.user import User
from app.schemas.event import EventCreate, EventUpdate
from app.services.pagination import paginate

logger = get_logger(__name__)

EVENT_SORT_FIELDS = {
    "date": Event.date,
    "created_at": Event.created_at,
    "title": Event.title,
    "price": Event.price,
    "current_attendees": Event.current_attendees,
    "views": Event.views,
}

DATETIME_FIELDS = (
    "date",
    "end_date",
    "early_bird_end_date",
    "registration_deadline",
    "cancellation_deadline",
)


async def create_event(db: AsyncSession, event_data: EventCreate, organizer_id: Optional[int]) -> Event:
    """Create a new event with an empty attendee counter."""
    if as_utc(event_data.date) <= utcnow():
        raise ValidationFailedError("Event date must be in the future")

    values = event_data.model_dump(exclude={"group_discount"})
    for field in DATETIME_FIELDS:
        values[field] = as_utc(values.get(field))
    values["category"] = event_data.category.value
    values["currency"] = event_data.currency.value
    values["status"] = event_data.status.value

    event = Event(
        **values,
        **_discount_columns(event_data.group_discount),
        current_attendees=0,
        organizer_id=organizer_id,
    )
    db.add(event)
    await db.flush()
    await db.refresh(event)

    logger.info(
        "event_created",
        event_id=event.id,
        title=event.title,
        max_attendees=event.max_attendees,
        organizer_id=organizer_id,
    )
    return event


async def get_event(db: AsyncSession, event_id: int) -> Event:
    """Get a single event by ID."""
    result = await db.execute(select(Event).where(Event.id == event_id))
    event = result.scalar_one_or_none()

    if not event:
        raise NotFoundError(f"Event {event_id} not found")
    return event


async def view_event(db: AsyncSession, event_id: int) -> Event:
    """Get an event for public display, counting the view."""
    await get_event(db, event_id)
    await db.execute(
        update(Event)
        .where(Event.id == event_id)
        .values(views=Event.views + 1)
        .execution_options(synchronize_session=False)
    )
    result = await db.execute(
        select(Event).where(Event.id == event_id).execution_options(populate_existing=True)
    )
    return result.scalar_one()


def ensure_can_manage(event: Event, user: User) -> None:
    if event.organizer_id != user.id and not user.is_staff:
        raise PermissionDeniedError("Not authorized to manage this event")


async def update_event(db: AsyncSession, event_id: int, event_data: EventUpdate, user: User) -> Event:
    event = await get_event(db, event_id)
    ensure_can_manage(event, user)

    changes = event_data.model_dump(exclude_unset=True, exclude={"group_discount"})
    if "max_attendees" in changes and changes["max_attendees"] < event.current_attendees:
        raise ValidationFailedError(
            f"max_attendees cannot be lower than the {event.current_attendees} confirmed attendees"
        )

    for field, value in changes.items():
        if field in DATETIME_FIELDS:
            value = as_utc(value)
        elif isinstance(value, enum.Enum):
            value = value.value
        setattr(event, field, value)

    if event_data.group_discount is not None:
        for column, value in _discount_columns(event_data.group_discount).items():
            setattr(event, column, value)

    await db.flush()
    await db.refresh(event)
    logger.info("event_updated", event_id=event.id, fields=sorted(event_data.model_fields_set))
    return event


async def set_event_status(
    db: AsyncSession,
    event_id: int,
    new_status: EventStatus,
    user: User,
    cancellation_reason: Optional[str] = None,
) -> Event:
    event = await get_event(db, event_id)
    ensure_can_manage(event, user)

    event.status = new_status.value
    if new_status is EventStatus.CANCELLED and cancellation_reason:
        event.cancellation_reason = cancellation_reason
        event.cancellation_date = utcnow()

    await db.flush()
    await db.refresh(event)
    logger.info("event_status_changed", event_id=event.id, status=event.status)
    return event


async def delete_event(db: AsyncSession, event_id: int, user: User) -> None:
    """
    Delete an event.
    Refused while pending or confirmed bookings exist; historical bookings go with it.
    """
    event = await get_event(db, event_id)
    ensure_can_manage(event, user)

    active = (
        await db.execute(
            select(func.count(Booking.id)).where(
                Booking.event_id == event_id,
                Booking.status.in_([BookingStatus.PENDING.value, BookingStatus.CONFIRMED.value]),
            )
        )
    ).scalar() or 0
    if active:
        raise EventHasBookingsError(f"Event has {active} active bookings; cancel them first")

    await db.execute(delete(Booking).where(Booking.event_id == event_id))
    await db.delete(event)
    await db.flush()
    logger.info("event_deleted", event_id=event_id, deleted_by=user.id)


async def list_events(
    db: AsyncSession,
    page: int = 1,
    page_size: int = 10,
    category: Optional[EventCategory] = None,
    status: Optional[EventStatus] = None,
    city: Optional[str] = None,
    date_from: Optional[datetime] = None,
    date_to: Optional[datetime] = None,
    search: Optional[str] = None,
    upcoming_only: bool = False,
    sort_by: str = "date",
    sort_order: str = "asc",
) -> tuple[list[Event], int]:
    """
    List events with filtering, sorting and pagination.
    Uses the ix_events_date_status / ix_events_category_status indexes for the common filters.
    """
    query = select(Event)

    if category is not None:
        query = query.where(Event.category == category.value)
    if status is not None:
        query = query.where(Event.status == status.value)
    if city:
        query = query.where(Event.city.icontains(city, autoescape=True))
    if date_from is not None:
        query = query.where(Event.date >= as_utc(date_from))
    if date_to is not None:
        query = query.where(Event.date <= as_utc(date_to))
    if upcoming_only:
        query = query.where(Event.date >= utcnow())
    if search:
        query = query.where(
            or_(
                Event.title.icontains(search, autoescape=True),
                Event.description.icontains(search, autoescape=True),
            )
        )

    column = EVENT_SORT_FIELDS.get(sort_by, Event.date)
    direction = desc if sort_order == "desc" else asc
    query = query.order_by(direction(column), direction(Event.id))

    return await paginate(db, query, page, page_size)


async def upcoming_events(db: AsyncSession, limit: int = 10) -> list[Event]:
    """Next events by date regardless of status; falls back to the most recent ones."""
    result = await db.execute(
        select(Event).where(Event.date >= utcnow()).order_by(Event.date.asc()).limit(limit)
    )
    events = list(result.scalars().all())
    if events:
        return events

    result = await db.execute(select(Event).order_by(Event.date.desc()).limit(limit))
    return list(result.scalars().all())


async def popular_events(db: AsyncSession, limit: int = 6) -> list[Event]:
    """Active events ranked by views, then by confirmed attendees."""
    result = await db.execute(
        select(Event)
        .where(Event.status == EventStatus.ACTIVE.value)
        .order_by(Event.views.desc(), Event.current_attendees.desc(), Event.id)
        .limit(limit)
    )
    return list(result.scalars().all())


async def category_summary(db: AsyncSession) -> list[dict]:
    """Active events per category, most populated first."""
    total = func.count(Event.id).label("total")
    result = await db.execute(
        select(Event.category, total)
        .where(Event.status == EventStatus.ACTIVE.value)
        .group_by(Event.category)
        .order_by(total.desc(), Event.category)
    )
    return [{"category": row.category, "count": row.total} for row in result]


async def city_summary(db: AsyncSession) -> list[dict]:
    total = func.count(Event.id).label("total")
    result = await db.execute(
        select(Event.city, total)
        .where(Event.city.is_not(None))
        .group_by(Event.city)
        .order_by(total.desc(), Event.city)
    )
    return [{"city": row.city, "count": row.total} for row in result]


def _discount_columns(rule) -> dict:
    return {
        "group_discount_enabled": rule.enabled,
        "group_min_size": rule.min_group_size,
        "group_discount_percentage": rule.discount_percentage,
    }
