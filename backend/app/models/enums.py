"""
Enumerated values shared by models, schemas and services.
"""

import enum


class EventCategory(str, enum.Enum):
    CONFERENCE = "conference"
    WORKSHOP = "workshop"
    SEMINAR = "seminar"
    MEETING = "meeting"
    PARTY = "party"
    NETWORKING = "networking"
    TRAINING = "training"
    EXHIBITION = "exhibition"
    CONCERT = "concert"
    SPORTS = "sports"
    WASTE_MANAGEMENT = "waste-management"
    ENVIRONMENTAL = "environmental"
    COMMUNITY = "community"
    OTHER = "other"


class EventStatus(str, enum.Enum):
    DRAFT = "draft"
    ACTIVE = "active"
    CANCELLED = "cancelled"
    COMPLETED = "completed"
    POSTPONED = "postponed"


class Currency(str, enum.Enum):
    LKR = "LKR"
    USD = "USD"
    EUR = "EUR"
    GBP = "GBP"
    CAD = "CAD"
    AUD = "AUD"


class BookingStatus(str, enum.Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    CANCELLED = "cancelled"
    COMPLETED = "completed"
    NO_SHOW = "no-show"


class PaymentStatus(str, enum.Enum):
    PENDING = "pending"
    PAID = "paid"
    FAILED = "failed"
    REFUNDED = "refunded"
    PARTIALLY_REFUNDED = "partially-refunded"


class PaymentMethod(str, enum.Enum):
    CASH = "cash"
    CARD = "card"
    BANK_TRANSFER = "bank-transfer"
    ONLINE = "online"
    FREE = "free"


class RefundStatus(str, enum.Enum):
    NONE = "none"
    PENDING = "pending"
    PROCESSED = "processed"
    FAILED = "failed"


class UserRole(str, enum.Enum):
    USER = "user"
    MODERATOR = "moderator"
    EVENT_ADMIN = "event_admin"
    ADMIN = "admin"


STAFF_ROLES = frozenset({UserRole.MODERATOR.value, UserRole.EVENT_ADMIN.value, UserRole.ADMIN.value})


def sql_in(enum_cls: type[enum.Enum]) -> str:
    """Render enum values for a CHECK constraint: ``'a', 'b'``."""
    return ", ".join(f"'{member.value}'" for member in enum_cls)
