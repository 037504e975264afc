"""
Pydantic schemas for event-related request/response validation.
"""

from datetime import datetime
from decimal import Decimal
from typing import Optional
from pydantic import BaseModel, Field, model_validator

from app.models.enums import Currency, EventCategory, EventStatus
from app.schemas.common import Money, Pagination


class GroupDiscount(BaseModel):
    enabled: bool = False
    min_group_size: int = Field(5, ge=1)
    discount_percentage: Decimal = Field(Decimal("10"), ge=0, le=100)


class GroupDiscountResponse(GroupDiscount):
    discount_percentage: Money


class EventCreate(BaseModel):
    title: str = Field(..., min_length=1, max_length=200)
    description: str = Field(..., min_length=1, max_length=2000)
    short_description: Optional[str] = Field(None, max_length=300)
    category: EventCategory
    date: datetime
    end_date: Optional[datetime] = None
    time: str = Field(..., min_length=1, max_length=20)
    location: str = Field(..., min_length=1, max_length=255)
    city: Optional[str] = Field(None, max_length=100)
    max_attendees: int = Field(..., ge=1, le=100000)
    price: Decimal = Field(Decimal("0"), ge=0, max_digits=12, decimal_places=2)
    currency: Currency = Currency.LKR
    early_bird_price: Optional[Decimal] = Field(None, ge=0, max_digits=12, decimal_places=2)
    early_bird_end_date: Optional[datetime] = None
    group_discount: GroupDiscount = Field(default_factory=GroupDiscount)
    status: EventStatus = EventStatus.DRAFT
    registration_deadline: Optional[datetime] = None
    cancellation_deadline: Optional[datetime] = None
    allow_cancellation: bool = True


REQUIRED_EVENT_FIELDS = frozenset(
    {
        "title",
        "description",
        "category",
        "date",
        "time",
        "location",
        "max_attendees",
        "price",
        "currency",
        "group_discount",
        "allow_cancellation",
    }
)


class EventUpdate(BaseModel):
    title: Optional[str] = Field(None, min_length=1, max_length=200)
    description: Optional[str] = Field(None, min_length=1, max_length=2000)
    short_description: Optional[str] = Field(None, max_length=300)
    category: Optional[EventCategory] = None
    date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    time: Optional[str] = Field(None, min_length=1, max_length=20)
    location: Optional[str] = Field(None, min_length=1, max_length=255)
    city: Optional[str] = Field(None, max_length=100)
    max_attendees: Optional[int] = Field(None, ge=1, le=100000)
    price: Optional[Decimal] = Field(None, ge=0, max_digits=12, decimal_places=2)
    currency: Optional[Currency] = None
    early_bird_price: Optional[Decimal] = Field(None, ge=0, max_digits=12, decimal_places=2)
    early_bird_end_date: Optional[datetime] = None
    group_discount: Optional[GroupDiscount] = None
    registration_deadline: Optional[datetime] = None
    cancellation_deadline: Optional[datetime] = None
    allow_cancellation: Optional[bool] = None

    @model_validator(mode="after")
    def reject_null_required_fields(self) -> "EventUpdate":
        # Omitting a field leaves it unchanged; sending null for a required column is an error
        nulls = sorted(
            field for field in self.model_fields_set & REQUIRED_EVENT_FIELDS if getattr(self, field) is None
        )
        if nulls:
            raise ValueError(f"{', '.join(nulls)} cannot be null")
        return self


class EventStatusUpdate(BaseModel):
    status: EventStatus
    cancellation_reason: Optional[str] = Field(None, max_length=500)


class EventResponse(BaseModel):
    id: int
    title: str
    description: str
    short_description: Optional[str]
    category: EventCategory
    date: datetime
    end_date: Optional[datetime]
    time: str
    location: str
    city: Optional[str]
    max_attendees: int
    current_attendees: int
    available_spots: int
    is_full: bool
    registration_rate: int
    price: Money
    currency: str
    early_bird_price: Optional[Money]
    early_bird_end_date: Optional[datetime]
    group_discount: GroupDiscountResponse
    status: EventStatus
    registration_deadline: Optional[datetime]
    cancellation_deadline: Optional[datetime]
    allow_cancellation: bool
    cancellation_reason: Optional[str]
    cancellation_date: Optional[datetime]
    views: int
    organizer_id: Optional[int]
    created_at: datetime

    model_config = {"from_attributes": True}


class EventListResponse(BaseModel):
    events: list[EventResponse]
    pagination: Pagination
    cached: bool = False


class CategoryCount(BaseModel):
    category: str
    count: int


class CityCount(BaseModel):
    city: str
    count: int
