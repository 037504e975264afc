"""
Booking service: creation, lifecycle operations and listings.

Creation snapshots the price and stores a pending booking without touching
the event's attendee counter. Every status change is delegated to
`app.services.lifecycle.transition`, which owns the counter side effects.
"""

import functools
import time
from datetime import datetime
from typing import Optional

from sqlalchemy import asc, desc, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.clock import as_utc, utcnow
from app.core.config import get_settings
from app.core.exceptions import (
    AlreadyCancelledError,
    AlreadyCheckedInError,
    CancellationNotAllowedError,
    DomainError,
    EventFullError,
    EventPassedError,
    NotFoundError,
    PermissionDeniedError,
    RegistrationClosedError,
    StateConflictError,
)
from app.core.logging import get_logger
from app.core.metrics import booking_latency, record_booking_operation
from app.models.booking import Booking, format_booking_number
from app.models.enums import BookingStatus, EventStatus, PaymentMethod, PaymentStatus, RefundStatus
from app.models.event import Event
from app.models.user import User
from app.schemas.booking import BookingCreate, PaymentStatusUpdate
from app.services import lifecycle
from app.services.event_service import get_event
from app.services.pagination import paginate
from app.services.pricing import compute_price, current_base_price

logger = get_logger(__name__)
settings = get_settings()

BOOKING_SORT_FIELDS = {
    "created_at": Booking.created_at,
    "final_price": Booking.final_price,
    "status": Booking.status,
    "booking_number": Booking.booking_number,
}

CLOSED_EVENT_STATUSES = {EventStatus.CANCELLED.value, EventStatus.COMPLETED.value}


def instrumented(operation: str):
    """Time a booking operation and count it as success or rejected."""

    def decorator(func):
        @functools.wraps(func)
        async def wrapper(*args, **kwargs):
            start = time.perf_counter()
            try:
                result = await func(*args, **kwargs)
            except DomainError as exc:
                record_booking_operation(operation, success=False)
                logger.info(f"{operation}_rejected", kind=exc.kind, reason=exc.message)
                raise
            finally:
                booking_latency.labels(operation=operation).observe(time.perf_counter() - start)
            record_booking_operation(operation, success=True)
            return result

        return wrapper

    return decorator


async def get_booking(db: AsyncSession, booking_id: int) -> Booking:
    result = await db.execute(select(Booking).where(Booking.id == booking_id))
    booking = result.scalar_one_or_none()
    if not booking:
        raise NotFoundError("Booking not found")
    return booking


async def get_booking_for_user(db: AsyncSession, booking_id: int, user: User) -> Booking:
    """Fetch a booking the caller owns (staff may fetch any)."""
    booking = await get_booking(db, booking_id)
    if booking.user_id != user.id and not user.is_staff:
        raise PermissionDeniedError("Not authorized to view this booking")
    return booking


@instrumented("create")
async def create_booking(
    db: AsyncSession,
    user: User,
    booking_data: BookingCreate,
    now: Optional[datetime] = None,
) -> Booking:
    """
    Create a pending booking against an event.

    Rejects missing events, events in the past, closed registration and,
    when ENFORCE_CAPACITY_ON_CREATE is set, groups that no longer fit.
    """
    now = now or utcnow()
    event = await get_event(db, booking_data.event_id)

    event_date = as_utc(event.date)
    if event_date < now:
        raise EventPassedError()

    deadline = as_utc(event.registration_deadline) or event_date
    if now > deadline or event.status in CLOSED_EVENT_STATUSES:
        raise RegistrationClosedError()

    total_attendees = 1 + len(booking_data.additional_attendees)
    if settings.ENFORCE_CAPACITY_ON_CREATE and event.current_attendees + total_attendees > event.max_attendees:
        raise EventFullError(
            f"Not enough spots left. Requested: {total_attendees}, available: {event.available_spots}"
        )

    quote = compute_price(current_base_price(event, now), total_attendees, event.group_discount)

    booking = Booking(
        event_id=event.id,
        user_id=user.id,
        attendee_details=booking_data.attendee_details.model_dump(mode="json"),
        additional_attendees=[a.model_dump(mode="json") for a in booking_data.additional_attendees],
        special_requests=booking_data.special_requests,
        base_price=quote.base_price,
        discount_amount=quote.discount_amount,
        final_price=quote.final_price,
        currency=event.currency or settings.DEFAULT_CURRENCY,
        status=BookingStatus.PENDING.value,
        payment_status=PaymentStatus.PENDING.value,
        refund_status=RefundStatus.NONE.value,
    )
    if quote.final_price == 0:
        booking.payment_status = PaymentStatus.PAID.value
        booking.payment_method = PaymentMethod.FREE.value
        booking.paid_at = now
        booking.amount_paid = quote.final_price
    db.add(booking)
    await db.flush()

    # Display number comes from the id sequence
    booking.booking_number = format_booking_number(booking.id)
    await db.flush()
    await db.refresh(booking)

    logger.info(
        "booking_created",
        booking_id=booking.id,
        booking_number=booking.booking_number,
        user_id=user.id,
        event_id=event.id,
        attendees=total_attendees,
        final_price=str(booking.final_price),
    )
    return booking


@instrumented("set_status")
async def set_booking_status(
    db: AsyncSession,
    booking_id: int,
    new_status: BookingStatus,
    actor: User,
    reason: Optional[str] = None,
) -> Booking:
    """Administrative status change. Cancellation here bypasses the event's cancellation policy."""
    booking = await get_booking(db, booking_id)
    event = await get_event(db, booking.event_id)
    await lifecycle.transition(db, booking, event, new_status, actor_id=actor.id, reason=reason)
    await db.refresh(booking)
    return booking


@instrumented("cancel")
async def cancel_booking(
    db: AsyncSession,
    booking_id: int,
    actor: User,
    reason: Optional[str] = None,
    now: Optional[datetime] = None,
) -> Booking:
    """Self-service cancellation with refund tier; subject to the event's policy."""
    now = now or utcnow()
    booking = await get_booking(db, booking_id)

    if booking.user_id != actor.id and not actor.is_staff:
        raise PermissionDeniedError("Not authorized to cancel this booking")

    if booking.status == BookingStatus.CANCELLED.value:
        raise AlreadyCancelledError()

    event = await get_event(db, booking.event_id)
    if not is_cancellation_allowed(event, now):
        raise CancellationNotAllowedError()

    await lifecycle.transition(
        db, booking, event, BookingStatus.CANCELLED, actor_id=actor.id, reason=reason, now=now
    )
    await db.refresh(booking)

    logger.info(
        "booking_cancelled",
        booking_id=booking.id,
        event_id=event.id,
        refund_amount=str(booking.refund_amount),
        cancelled_by=actor.id,
    )
    return booking


def is_cancellation_allowed(event: Event, now: Optional[datetime] = None) -> bool:
    now = now or utcnow()
    deadline = as_utc(event.cancellation_deadline) or as_utc(event.date)
    return bool(event.allow_cancellation) and now < deadline


@instrumented("checkin")
async def check_in(db: AsyncSession, booking_id: int, actor: User) -> Booking:
    booking = await get_booking(db, booking_id)
    event = await get_event(db, booking.event_id)

    if event.organizer_id != actor.id and not actor.is_staff:
        raise PermissionDeniedError("Not authorized to check in this booking")

    if booking.checked_in:
        raise AlreadyCheckedInError()
    if booking.status == BookingStatus.CANCELLED.value:
        raise StateConflictError("Cancelled bookings cannot be checked in")

    booking.checked_in = True
    booking.checked_in_at = utcnow()
    booking.checked_in_by = actor.id
    await db.flush()
    await db.refresh(booking)

    logger.info("booking_checked_in", booking_id=booking.id, event_id=event.id, checked_in_by=actor.id)
    return booking


@instrumented("delete")
async def delete_booking(db: AsyncSession, booking_id: int, actor: User) -> int:
    """Remove a booking, releasing any seats it holds first."""
    booking = await get_booking(db, booking_id)
    event = await get_event(db, booking.event_id)

    await lifecycle.release_seats(db, booking, event)
    await db.delete(booking)
    await db.flush()

    logger.info("booking_deleted", booking_id=booking_id, event_id=event.id, deleted_by=actor.id)
    return booking_id


@instrumented("payment")
async def update_payment_status(
    db: AsyncSession,
    booking_id: int,
    payment: PaymentStatusUpdate,
    actor: User,
) -> Booking:
    """
    Record a payment outcome. Becoming paid stamps `paid_at` once and defaults
    the amount to the snapshotted final price.
    """
    booking = await get_booking(db, booking_id)
    payment_status = payment.payment_status
    booking.payment_status = payment_status.value

    if payment.payment_method is not None:
        booking.payment_method = payment.payment_method.value
    if payment.transaction_id is not None:
        booking.transaction_id = payment.transaction_id
    if payment.payment_gateway is not None:
        booking.payment_gateway = payment.payment_gateway
    if payment.amount is not None:
        booking.amount_paid = payment.amount

    if payment_status is PaymentStatus.PAID:
        if booking.paid_at is None:
            booking.paid_at = utcnow()
        if booking.amount_paid is None:
            booking.amount_paid = booking.final_price

    settles_refund = payment_status in (PaymentStatus.REFUNDED, PaymentStatus.PARTIALLY_REFUNDED)
    if settles_refund and booking.refund_status == RefundStatus.PENDING.value:
        booking.refund_status = RefundStatus.PROCESSED.value
        booking.refund_processed_at = utcnow()

    await db.flush()
    await db.refresh(booking)
    logger.info(
        "booking_payment_updated",
        booking_id=booking.id,
        payment_status=booking.payment_status,
        payment_method=booking.payment_method,
        refund_status=booking.refund_status,
        updated_by=actor.id,
    )
    return booking


async def list_bookings(
    db: AsyncSession,
    user: User,
    page: int = 1,
    limit: int = 10,
    status: Optional[BookingStatus] = None,
    event_id: Optional[int] = None,
    payment_status: Optional[PaymentStatus] = None,
    sort_by: str = "created_at",
    sort_order: str = "desc",
) -> tuple[list[Booking], int]:
    """
    Paginated booking listing.
    Non-staff callers only ever see their own bookings.
    """
    query = select(Booking)

    if not user.is_staff:
        query = query.where(Booking.user_id == user.id)
    if status is not None:
        query = query.where(Booking.status == status.value)
    if event_id is not None:
        query = query.where(Booking.event_id == event_id)
    if payment_status is not None:
        query = query.where(Booking.payment_status == payment_status.value)

    column = BOOKING_SORT_FIELDS.get(sort_by, Booking.created_at)
    direction = desc if sort_order == "desc" else asc
    query = query.order_by(direction(column), direction(Booking.id))

    return await paginate(db, query, page, limit)


async def list_event_bookings(db: AsyncSession, event_id: int, user: User) -> list[Booking]:
    """All bookings for an event, newest first. Organizer or staff only."""
    event = await get_event(db, event_id)
    if event.organizer_id != user.id and not user.is_staff:
        raise PermissionDeniedError("Not authorized to view bookings for this event")

    result = await db.execute(
        select(Booking)
        .where(Booking.event_id == event_id)
        .order_by(Booking.created_at.desc(), Booking.id.desc())
    )
    return list(result.scalars().all())
