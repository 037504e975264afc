"""
Pydantic schemas for booking-related request/response validation.
"""

from datetime import datetime
from decimal import Decimal
from typing import Optional
from pydantic import BaseModel, EmailStr, Field, field_validator

from app.models.enums import BookingStatus, PaymentMethod, PaymentStatus, RefundStatus
from app.schemas.common import Money, Pagination


class EmergencyContact(BaseModel):
    name: Optional[str] = Field(None, max_length=100)
    phone: Optional[str] = Field(None, max_length=30)
    relationship: Optional[str] = Field(None, max_length=50)


class AttendeeBase(BaseModel):
    first_name: str = Field(..., min_length=1, max_length=100)
    last_name: str = Field(..., min_length=1, max_length=100)
    email: EmailStr
    phone: Optional[str] = Field(None, max_length=30)
    dietary_requirements: Optional[str] = Field(None, max_length=255)
    accessibility_needs: Optional[str] = Field(None, max_length=255)

    @field_validator("first_name", "last_name")
    @classmethod
    def strip_names(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("must not be blank")
        return value

    @field_validator("email")
    @classmethod
    def lowercase_email(cls, value: str) -> str:
        return value.lower()


class AdditionalAttendee(AttendeeBase):
    pass


class AttendeeDetails(AttendeeBase):
    emergency_contact: Optional[EmergencyContact] = None


class BookingCreate(BaseModel):
    event_id: int
    attendee_details: AttendeeDetails
    additional_attendees: list[AdditionalAttendee] = Field(default_factory=list, max_length=50)
    special_requests: Optional[str] = Field(None, max_length=500)


class BookingStatusUpdate(BaseModel):
    status: BookingStatus
    reason: Optional[str] = Field(None, max_length=500)


class BookingCancelRequest(BaseModel):
    reason: Optional[str] = Field(None, max_length=500)


class PaymentStatusUpdate(BaseModel):
    payment_status: PaymentStatus
    payment_method: Optional[PaymentMethod] = None
    transaction_id: Optional[str] = Field(None, max_length=100)
    payment_gateway: Optional[str] = Field(None, max_length=50)
    amount: Optional[Decimal] = Field(None, ge=0, max_digits=12, decimal_places=2)

    @field_validator("transaction_id", "payment_gateway")
    @classmethod
    def strip_blank(cls, value: Optional[str]) -> Optional[str]:
        if value is None:
            return None
        return value.strip() or None


class PricingSnapshot(BaseModel):
    base_price: Money
    discount: Money
    final_price: Money
    currency: str


class PaymentDetails(BaseModel):
    transaction_id: Optional[str] = None
    payment_gateway: Optional[str] = None
    paid_at: Optional[datetime] = None
    amount: Optional[Money] = None


class CheckInStatus(BaseModel):
    checked_in: bool
    checked_in_at: Optional[datetime] = None
    checked_in_by: Optional[int] = None


class CancellationDetails(BaseModel):
    cancelled_at: datetime
    cancelled_by: Optional[int]
    reason: Optional[str]
    refund_amount: Money
    refund_status: RefundStatus
    refund_processed_at: Optional[datetime] = None


class BookingResponse(BaseModel):
    id: int
    booking_number: str
    event_id: int
    user_id: int
    status: BookingStatus
    payment_status: PaymentStatus
    payment_method: Optional[PaymentMethod] = None
    payment_details: PaymentDetails
    attendee_details: AttendeeDetails
    additional_attendees: list[AdditionalAttendee]
    total_attendees: int
    pricing: PricingSnapshot
    special_requests: Optional[str]
    check_in_status: CheckInStatus
    cancellation: Optional[CancellationDetails] = None
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class BookingListResponse(BaseModel):
    bookings: list[BookingResponse]
    pagination: Pagination


class BookingDeleteResponse(BaseModel):
    message: str
    booking_id: int
