"""
Booking state machine and event attendee accounting.

STATE MACHINE
=============

    pending   -> confirmed | cancelled
    confirmed -> cancelled | completed | no-show
    cancelled, completed, no-show: terminal

`transition()` is the only function that changes a booking's status, and it
(plus `release_seats()` for deletions) is the only code that touches
`events.current_attendees`.

SEAT ACCOUNTING
===============

A booking holds seats while it is confirmed, completed or no-show. Entering a
holding status adds `total_attendees` to the event; leaving to cancelled
subtracts it. Completion and no-show do not release seats.

The counter is never read, modified in Python and written back. Each change is
a single conditional UPDATE:

    UPDATE events
       SET current_attendees = current_attendees + :n, version = version + 1
     WHERE id = :event_id AND current_attendees + :n <= max_attendees

If no row matches, the event is at capacity and the transition is refused
before the booking's status is touched. Concurrent confirmations
are applied one after the other by the database, each re-evaluating the
guard. Decrements clamp at zero.

REFUND TIERS
============

days_until_event = ceil((event.date - now) / 1 day)
    >= 7 days: full refund of final_price
    >= 3 days: 50% refund
    otherwise: no refund
"""

import math
from datetime import datetime
from decimal import Decimal
from typing import Optional

from sqlalchemy import case, update
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.clock import as_utc, utcnow
from app.core.exceptions import AlreadyCancelledError, CapacityExceededError, InvalidTransitionError
from app.core.logging import get_logger
from app.core.metrics import (
    attendance_rejections,
    record_attendance_adjustment,
    record_refund_tier,
    record_transition,
)
from app.models.booking import Booking
from app.models.enums import BookingStatus, RefundStatus
from app.models.event import Event
from app.services.pricing import to_money

logger = get_logger(__name__)

ALLOWED_TRANSITIONS: dict[BookingStatus, frozenset[BookingStatus]] = {
    BookingStatus.PENDING: frozenset({BookingStatus.CONFIRMED, BookingStatus.CANCELLED}),
    BookingStatus.CONFIRMED: frozenset(
        {BookingStatus.CANCELLED, BookingStatus.COMPLETED, BookingStatus.NO_SHOW}
    ),
}

SEAT_HOLDING_STATUSES = frozenset(
    {BookingStatus.CONFIRMED, BookingStatus.COMPLETED, BookingStatus.NO_SHOW}
)

FULL_REFUND_DAYS = 7
HALF_REFUND_DAYS = 3
HALF_REFUND_RATE = Decimal("0.5")


def can_transition(current: BookingStatus, new: BookingStatus) -> bool:
    return new in ALLOWED_TRANSITIONS.get(current, frozenset())


def attendance_delta(current: BookingStatus, new: BookingStatus, total_attendees: int) -> int:
    """Change to apply to the event counter when moving from `current` to `new`."""
    was_holding = current in SEAT_HOLDING_STATUSES
    will_hold = new in SEAT_HOLDING_STATUSES
    if will_hold and not was_holding:
        return total_attendees
    if was_holding and not will_hold:
        return -total_attendees
    return 0


def days_until_event(event_date: datetime, now: Optional[datetime] = None) -> int:
    now = now or utcnow()
    seconds = (as_utc(event_date) - now).total_seconds()
    return math.ceil(seconds / 86400)


def refund_for(final_price, event_date: datetime, now: Optional[datetime] = None) -> tuple[Decimal, str]:
    """Return (refund_amount, tier) for a cancellation at `now`."""
    days = days_until_event(event_date, now)
    price = to_money(final_price)
    if days >= FULL_REFUND_DAYS:
        return price, "full"
    if days >= HALF_REFUND_DAYS:
        return to_money(price * HALF_REFUND_RATE), "half"
    return Decimal("0.00"), "none"


async def adjust_attendance(db: AsyncSession, event: Event, delta: int) -> None:
    """Atomically add `delta` to the event's attendee counter."""
    if delta == 0:
        return

    stmt = update(Event).where(Event.id == event.id)
    if delta > 0:
        stmt = stmt.where(Event.current_attendees + delta <= Event.max_attendees)
        new_value = Event.current_attendees + delta
    else:
        new_value = case(
            (Event.current_attendees >= -delta, Event.current_attendees + delta),
            else_=0,
        )
    stmt = stmt.values(current_attendees=new_value, version=Event.version + 1).execution_options(
        synchronize_session=False
    )

    result = await db.execute(stmt)
    await db.refresh(event)

    if result.rowcount == 0:
        attendance_rejections.inc()
        logger.warning(
            "attendance_rejected",
            event_id=event.id,
            requested=delta,
            current=event.current_attendees,
            maximum=event.max_attendees,
        )
        raise CapacityExceededError(
            f"Not enough capacity. Requested: {delta}, available: {event.available_spots}"
        )

    record_attendance_adjustment(delta)
    logger.info(
        "attendance_adjusted",
        event_id=event.id,
        delta=delta,
        current=event.current_attendees,
        version=event.version,
    )


async def transition(
    db: AsyncSession,
    booking: Booking,
    event: Event,
    new_status: BookingStatus,
    *,
    actor_id: Optional[int] = None,
    reason: Optional[str] = None,
    now: Optional[datetime] = None,
) -> Booking:
    """
    Move `booking` to `new_status`, applying the attendee counter side effect.

    Raises AlreadyCancelledError or InvalidTransitionError for illegal moves
    and CapacityExceededError when a confirmation does not fit. On any error
    the booking's status is left unchanged.
    """
    current = BookingStatus(booking.status)
    if current is BookingStatus.CANCELLED and new_status is BookingStatus.CANCELLED:
        raise AlreadyCancelledError()
    if not can_transition(current, new_status):
        raise InvalidTransitionError(current.value, new_status.value)

    now = now or utcnow()
    delta = attendance_delta(current, new_status, booking.total_attendees)
    await adjust_attendance(db, event, delta)

    booking.status = new_status.value
    if new_status is BookingStatus.CANCELLED:
        _record_cancellation(booking, event, actor_id=actor_id, reason=reason, now=now)

    await db.flush()

    record_transition(current.value, new_status.value)
    logger.info(
        "booking_transitioned",
        booking_id=booking.id,
        event_id=event.id,
        from_status=current.value,
        to_status=new_status.value,
        attendee_delta=delta,
        actor_id=actor_id,
    )
    return booking


async def release_seats(db: AsyncSession, booking: Booking, event: Event) -> None:
    """Give back the seats of a booking that is about to be removed."""
    if BookingStatus(booking.status) in SEAT_HOLDING_STATUSES:
        await adjust_attendance(db, event, -booking.total_attendees)


def _record_cancellation(
    booking: Booking,
    event: Event,
    *,
    actor_id: Optional[int],
    reason: Optional[str],
    now: datetime,
) -> None:
    refund, tier = refund_for(booking.final_price, event.date, now)
    booking.cancelled_at = now
    booking.cancelled_by = actor_id
    booking.cancellation_reason = reason
    booking.refund_amount = refund
    # payment_status is left alone; refunds are settled separately
    booking.refund_status = RefundStatus.PENDING.value
    record_refund_tier(tier)
