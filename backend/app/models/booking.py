"""
Booking model: a claim by one or more attendees against an event's capacity.

Key design decisions:
- The pricing snapshot (base_price, discount_amount, final_price, currency) is
  written once at creation and never recomputed from the event
- total_attendees is derived from the attendee lists, never stored
- booking_number is derived from the primary key sequence, so concurrent
  creations cannot collide on it
- Check-in and cancellation sub-records are flat columns exposed as nested values
"""

from typing import Optional

from sqlalchemy import (
    Column, Integer, String, DateTime, Boolean, Numeric, ForeignKey, JSON, Index, CheckConstraint,
)

from app.db.base import Base, TimestampMixin
from app.models.enums import BookingStatus, PaymentMethod, PaymentStatus, RefundStatus, sql_in


def format_booking_number(booking_id: int) -> str:
    return f"BK{booking_id:06d}"


class Booking(Base, TimestampMixin):
    __tablename__ = "bookings"

    id = Column(Integer, primary_key=True, index=True)
    booking_number = Column(String(20), unique=True, nullable=True)
    event_id = Column(Integer, ForeignKey("events.id"), nullable=False, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)

    status = Column(String(20), nullable=False, default=BookingStatus.PENDING.value)
    payment_status = Column(String(20), nullable=False, default=PaymentStatus.PENDING.value)
    payment_method = Column(String(20), nullable=True)
    transaction_id = Column(String(100), nullable=True)
    payment_gateway = Column(String(50), nullable=True)
    paid_at = Column(DateTime(timezone=True), nullable=True)
    amount_paid = Column(Numeric(12, 2), nullable=True)

    attendee_details = Column(JSON, nullable=False)
    additional_attendees = Column(JSON, nullable=False, default=list)

    # Pricing snapshot
    base_price = Column(Numeric(12, 2), nullable=False)
    discount_amount = Column(Numeric(12, 2), nullable=False, default=0)
    final_price = Column(Numeric(12, 2), nullable=False)
    currency = Column(String(3), nullable=False)

    special_requests = Column(String(500), nullable=True)
    notes = Column(String(1000), nullable=True)

    # Check-in
    checked_in = Column(Boolean, nullable=False, default=False)
    checked_in_at = Column(DateTime(timezone=True), nullable=True)
    checked_in_by = Column(Integer, ForeignKey("users.id"), nullable=True)

    # Cancellation
    cancelled_at = Column(DateTime(timezone=True), nullable=True)
    cancelled_by = Column(Integer, ForeignKey("users.id"), nullable=True)
    cancellation_reason = Column(String(500), nullable=True)
    refund_amount = Column(Numeric(12, 2), nullable=False, default=0)
    refund_status = Column(String(20), nullable=False, default=RefundStatus.NONE.value)
    refund_processed_at = Column(DateTime(timezone=True), nullable=True)

    __table_args__ = (
        CheckConstraint("base_price >= 0", name="check_booking_base_price_non_negative"),
        CheckConstraint("final_price >= 0", name="check_booking_final_price_non_negative"),
        CheckConstraint(f"status IN ({sql_in(BookingStatus)})", name="check_booking_status"),
        CheckConstraint(f"payment_status IN ({sql_in(PaymentStatus)})", name="check_booking_payment_status"),
        CheckConstraint(
            f"payment_method IS NULL OR payment_method IN ({sql_in(PaymentMethod)})",
            name="check_booking_payment_method",
        ),
        CheckConstraint(f"refund_status IN ({sql_in(RefundStatus)})", name="check_booking_refund_status"),
        Index("ix_bookings_event_status", "event_id", "status"),
        Index("ix_bookings_user_created", "user_id", "created_at"),
        Index("ix_bookings_status_created", "status", "created_at"),
    )

    @property
    def total_attendees(self) -> int:
        return 1 + len(self.additional_attendees or [])

    @property
    def pricing(self) -> dict:
        return {
            "base_price": self.base_price,
            "discount": self.discount_amount,
            "final_price": self.final_price,
            "currency": self.currency,
        }

    @property
    def payment_details(self) -> dict:
        return {
            "transaction_id": self.transaction_id,
            "payment_gateway": self.payment_gateway,
            "paid_at": self.paid_at,
            "amount": self.amount_paid,
        }

    @property
    def check_in_status(self) -> dict:
        return {
            "checked_in": bool(self.checked_in),
            "checked_in_at": self.checked_in_at,
            "checked_in_by": self.checked_in_by,
        }

    @property
    def cancellation(self) -> Optional[dict]:
        if self.cancelled_at is None:
            return None
        return {
            "cancelled_at": self.cancelled_at,
            "cancelled_by": self.cancelled_by,
            "reason": self.cancellation_reason,
            "refund_amount": self.refund_amount,
            "refund_status": self.refund_status,
            "refund_processed_at": self.refund_processed_at,
        }

    def __repr__(self) -> str:
        return f"<Booking(id={self.id}, number={self.booking_number}, event={self.event_id}, status={self.status})>"
