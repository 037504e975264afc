"""
Booking endpoints: creation, lifecycle actions and listings.
"""

from typing import Literal, Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import get_settings
from app.core.security import get_current_user, require_staff
from app.db.session import after_commit, get_db
from app.models.enums import BookingStatus, PaymentStatus
from app.models.user import User
from app.schemas.booking import (
    BookingCancelRequest,
    BookingCreate,
    BookingDeleteResponse,
    BookingListResponse,
    BookingResponse,
    BookingStatusUpdate,
    PaymentStatusUpdate,
)
from app.schemas.common import Pagination
from app.services import booking_service
from app.services.cache_service import invalidate_event_cache

settings = get_settings()
router = APIRouter(prefix="/bookings", tags=["Bookings"])

BookingSortField = Literal["created_at", "final_price", "status", "booking_number"]


@router.get("/", response_model=BookingListResponse)
async def list_bookings_endpoint(
    page: int = Query(1, ge=1),
    limit: int = Query(settings.DEFAULT_PAGE_SIZE, ge=1, le=settings.MAX_PAGE_SIZE),
    status: Optional[BookingStatus] = None,
    event_id: Optional[int] = Query(None, ge=1),
    payment_status: Optional[PaymentStatus] = None,
    sort_by: BookingSortField = "created_at",
    sort_order: Literal["asc", "desc"] = "desc",
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Staff see every booking; everyone else sees only their own."""
    bookings, total = await booking_service.list_bookings(
        db,
        user,
        page=page,
        limit=limit,
        status=status,
        event_id=event_id,
        payment_status=payment_status,
        sort_by=sort_by,
        sort_order=sort_order,
    )
    return BookingListResponse(
        bookings=[BookingResponse.model_validate(b) for b in bookings],
        pagination=Pagination.build(page, limit, total, len(bookings)),
    )


@router.post("/", response_model=BookingResponse, status_code=status.HTTP_201_CREATED)
async def create_booking_endpoint(
    booking_data: BookingCreate,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """
    Request a booking. It is created as pending with its price snapshotted;
    the event's attendee count only changes once staff confirm it.
    """
    return await booking_service.create_booking(db, user, booking_data)


@router.get("/{booking_id}", response_model=BookingResponse)
async def get_booking_endpoint(
    booking_id: int,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await booking_service.get_booking_for_user(db, booking_id, user)


@router.put("/{booking_id}/status", response_model=BookingResponse)
async def update_booking_status_endpoint(
    booking_id: int,
    status_data: BookingStatusUpdate,
    staff: User = Depends(require_staff),
    db: AsyncSession = Depends(get_db),
):
    """Approve, reject, complete or mark no-show. Staff only."""
    booking = await booking_service.set_booking_status(
        db, booking_id, status_data.status, staff, status_data.reason
    )
    after_commit(db, invalidate_event_cache)
    return booking


@router.put("/{booking_id}/cancel", response_model=BookingResponse)
async def cancel_booking_endpoint(
    booking_id: int,
    cancel_data: Optional[BookingCancelRequest] = None,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Cancel a booking; the refund is computed from the days left before the event."""
    reason = cancel_data.reason if cancel_data else None
    booking = await booking_service.cancel_booking(db, booking_id, user, reason)
    after_commit(db, invalidate_event_cache)
    return booking


@router.put("/{booking_id}/checkin", response_model=BookingResponse)
async def check_in_endpoint(
    booking_id: int,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Check in the attendees of a booking. Event organizer or staff only."""
    return await booking_service.check_in(db, booking_id, user)


@router.put("/{booking_id}/payment", response_model=BookingResponse)
async def update_payment_endpoint(
    booking_id: int,
    payment_data: PaymentStatusUpdate,
    staff: User = Depends(require_staff),
    db: AsyncSession = Depends(get_db),
):
    return await booking_service.update_payment_status(db, booking_id, payment_data, staff)


@router.delete("/{booking_id}", response_model=BookingDeleteResponse)
async def delete_booking_endpoint(
    booking_id: int,
    staff: User = Depends(require_staff),
    db: AsyncSession = Depends(get_db),
):
    """Delete a booking. Seats held by it are released first. Staff only."""
    deleted_id = await booking_service.delete_booking(db, booking_id, staff)
    after_commit(db, invalidate_event_cache)
    return BookingDeleteResponse(message="Booking deleted successfully", booking_id=deleted_id)
