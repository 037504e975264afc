"""
Event model: the capacity pool bookings are made against.

Key design decisions:
- `current_attendees` is denormalized (avoids aggregating bookings on every read)
  and is only ever changed by atomic UPDATE statements from the booking lifecycle
- CHECK constraints keep 0 <= current_attendees <= max_attendees at the DB level
- `version` is bumped on every counter change so writers can detect concurrent edits
- The group discount rule is stored flat and exposed as a nested value
"""

from sqlalchemy import (
    Column, Integer, String, Text, DateTime, Boolean, Numeric, ForeignKey, Index, CheckConstraint,
)

from app.db.base import Base, TimestampMixin
from app.models.enums import Currency, EventCategory, EventStatus, sql_in


class Event(Base, TimestampMixin):
    __tablename__ = "events"

    id = Column(Integer, primary_key=True, index=True)
    title = Column(String(200), nullable=False)
    description = Column(Text, nullable=False)
    short_description = Column(String(300), nullable=True)
    category = Column(String(30), nullable=False)
    date = Column(DateTime(timezone=True), nullable=False)
    end_date = Column(DateTime(timezone=True), nullable=True)
    time = Column(String(20), nullable=False)
    location = Column(String(255), nullable=False)
    city = Column(String(100), nullable=True)

    max_attendees = Column(Integer, nullable=False)
    current_attendees = Column(Integer, nullable=False, default=0)

    price = Column(Numeric(12, 2), nullable=False, default=0)
    currency = Column(String(3), nullable=False, default=Currency.LKR.value)
    early_bird_price = Column(Numeric(12, 2), nullable=True)
    early_bird_end_date = Column(DateTime(timezone=True), nullable=True)

    group_discount_enabled = Column(Boolean, nullable=False, default=False)
    group_min_size = Column(Integer, nullable=False, default=5)
    group_discount_percentage = Column(Numeric(5, 2), nullable=False, default=10)

    status = Column(String(20), nullable=False, default=EventStatus.DRAFT.value)
    registration_deadline = Column(DateTime(timezone=True), nullable=True)
    cancellation_deadline = Column(DateTime(timezone=True), nullable=True)
    allow_cancellation = Column(Boolean, nullable=False, default=True)
    cancellation_reason = Column(String(500), nullable=True)
    cancellation_date = Column(DateTime(timezone=True), nullable=True)

    views = Column(Integer, nullable=False, default=0)
    organizer_id = Column(Integer, ForeignKey("users.id"), nullable=True, index=True)

    # Bumped by every attendee counter change
    version = Column(Integer, nullable=False, default=1)

    __table_args__ = (
        CheckConstraint("current_attendees >= 0", name="check_current_attendees_non_negative"),
        CheckConstraint("max_attendees > 0", name="check_max_attendees_positive"),
        CheckConstraint("current_attendees <= max_attendees", name="check_current_lte_max"),
        CheckConstraint("price >= 0", name="check_price_non_negative"),
        CheckConstraint(
            "group_discount_percentage >= 0 AND group_discount_percentage <= 100",
            name="check_group_discount_range",
        ),
        CheckConstraint(f"category IN ({sql_in(EventCategory)})", name="check_event_category"),
        CheckConstraint(f"status IN ({sql_in(EventStatus)})", name="check_event_status"),
        Index("ix_events_date_status", "date", "status"),
        Index("ix_events_category_status", "category", "status"),
        Index("ix_events_city", "city"),
    )

    @property
    def group_discount(self) -> dict:
        return {
            "enabled": bool(self.group_discount_enabled),
            "min_group_size": self.group_min_size,
            "discount_percentage": self.group_discount_percentage,
        }

    @property
    def available_spots(self) -> int:
        return max(self.max_attendees - self.current_attendees, 0)

    @property
    def is_full(self) -> bool:
        return self.current_attendees >= self.max_attendees

    @property
    def registration_rate(self) -> int:
        if not self.max_attendees:
            return 0
        return round(self.current_attendees / self.max_attendees * 100)

    def __repr__(self) -> str:
        return (
            f"<Event(id={self.id}, title={self.title}, "
            f"attendees={self.current_attendees}/{self.max_attendees})>"
        )
