"""
Event endpoints with Redis caching on list operations.
"""

from datetime import datetime
from typing import Literal, Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import get_settings
from app.core.logging import get_logger
from app.core.security import get_current_user
from app.db.session import after_commit, get_db
from app.models.enums import EventCategory, EventStatus
from app.models.user import User
from app.schemas.booking import BookingResponse
from app.schemas.common import MessageResponse, Pagination
from app.schemas.event import (
    CategoryCount,
    CityCount,
    EventCreate,
    EventListResponse,
    EventResponse,
    EventStatusUpdate,
    EventUpdate,
)
from app.schemas.report import EventStatistics
from app.services import event_service, report_service
from app.services.booking_service import list_event_bookings
from app.services.cache_service import get_cached_events, set_cached_events, invalidate_event_cache

logger = get_logger(__name__)
settings = get_settings()
router = APIRouter(prefix="/events", tags=["Events"])

EventSortField = Literal["date", "created_at", "title", "price", "current_attendees", "views"]


@router.post("/", response_model=EventResponse, status_code=status.HTTP_201_CREATED)
async def create_event_endpoint(
    event_data: EventCreate,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Create a new event. Requires authentication; the caller becomes the organizer."""
    event = await event_service.create_event(db, event_data, user.id)
    after_commit(db, invalidate_event_cache)
    return event


@router.get("/", response_model=EventListResponse)
async def list_events_endpoint(
    page: int = Query(1, ge=1),
    limit: int = Query(settings.DEFAULT_PAGE_SIZE, ge=1, le=settings.MAX_PAGE_SIZE),
    category: Optional[EventCategory] = None,
    status: Optional[EventStatus] = None,
    city: Optional[str] = Query(None, max_length=100),
    date_from: Optional[datetime] = None,
    date_to: Optional[datetime] = None,
    search: Optional[str] = Query(None, max_length=200),
    upcoming_only: bool = False,
    sort_by: EventSortField = "date",
    sort_order: Literal["asc", "desc"] = "asc",
    db: AsyncSession = Depends(get_db),
):
    """
    List events with filtering, sorting and pagination.
    Results are cached in Redis; the cache is invalidated whenever events or attendee counts change.
    """
    params = {
        "page": page,
        "limit": limit,
        "category": category.value if category else None,
        "status": status.value if status else None,
        "city": city,
        "date_from": date_from.isoformat() if date_from else None,
        "date_to": date_to.isoformat() if date_to else None,
        "search": search,
        "upcoming_only": upcoming_only,
        "sort_by": sort_by,
        "sort_order": sort_order,
    }

    cached = await get_cached_events(params)
    if cached:
        logger.info("events_list_cache_hit", page=page)
        cached["cached"] = True
        return EventListResponse(**cached)

    events, total = await event_service.list_events(
        db,
        page=page,
        page_size=limit,
        category=category,
        status=status,
        city=city,
        date_from=date_from,
        date_to=date_to,
        search=search,
        upcoming_only=upcoming_only,
        sort_by=sort_by,
        sort_order=sort_order,
    )

    response = EventListResponse(
        events=[EventResponse.model_validate(e) for e in events],
        pagination=Pagination.build(page, limit, total, len(events)),
        cached=False,
    )
    await set_cached_events(params, response.model_dump(mode="json"))
    return response


@router.get("/upcoming", response_model=list[EventResponse])
async def upcoming_events_endpoint(
    limit: int = Query(10, ge=1, le=50),
    db: AsyncSession = Depends(get_db),
):
    return await event_service.upcoming_events(db, limit)


@router.get("/featured", response_model=list[EventResponse])
async def featured_events_endpoint(
    limit: int = Query(6, ge=1, le=50),
    db: AsyncSession = Depends(get_db),
):
    """Most viewed active events."""
    return await event_service.popular_events(db, limit)


@router.get("/categories", response_model=list[CategoryCount])
async def categories_endpoint(db: AsyncSession = Depends(get_db)):
    """Active events per category."""
    return await event_service.category_summary(db)


@router.get("/cities", response_model=list[CityCount])
async def cities_endpoint(db: AsyncSession = Depends(get_db)):
    return await event_service.city_summary(db)


@router.get("/{event_id}", response_model=EventResponse)
async def get_event_endpoint(
    event_id: int,
    db: AsyncSession = Depends(get_db),
):
    """Get a single event by ID. Not cached (needs real-time attendee counts)."""
    return await event_service.view_event(db, event_id)


@router.put("/{event_id}", response_model=EventResponse)
async def update_event_endpoint(
    event_id: int,
    event_data: EventUpdate,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Update an event. Organizer or staff only."""
    event = await event_service.update_event(db, event_id, event_data, user)
    after_commit(db, invalidate_event_cache)
    return event


@router.put("/{event_id}/status", response_model=EventResponse)
async def update_event_status_endpoint(
    event_id: int,
    status_data: EventStatusUpdate,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    event = await event_service.set_event_status(
        db, event_id, status_data.status, user, status_data.cancellation_reason
    )
    after_commit(db, invalidate_event_cache)
    return event


@router.delete("/{event_id}", response_model=MessageResponse)
async def delete_event_endpoint(
    event_id: int,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    await event_service.delete_event(db, event_id, user)
    after_commit(db, invalidate_event_cache)
    return MessageResponse(message="Event deleted successfully")


@router.get("/{event_id}/statistics", response_model=EventStatistics)
async def event_statistics_endpoint(
    event_id: int,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Attendee counters and booking stats. Organizer or staff only."""
    event = await event_service.get_event(db, event_id)
    event_service.ensure_can_manage(event, user)
    return await report_service.event_statistics(db, event_id)


@router.get("/{event_id}/bookings", response_model=list[BookingResponse])
async def event_bookings_endpoint(
    event_id: int,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await list_event_bookings(db, event_id, user)
