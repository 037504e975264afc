"""Initial schema: users, events, bookings with indexes and constraints.

Revision ID: 001
Revises: None
Create Date: 2026-10-18
"""
from typing import Sequence, Union
from alembic import op
import sqlalchemy as sa

revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

EVENT_CATEGORIES = (
    "'conference', 'workshop', 'seminar', 'meeting', 'party', 'networking', 'training', "
    "'exhibition', 'concert', 'sports', 'waste-management', 'environmental', 'community', 'other'"
)


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    ]


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("email", sa.String(255), nullable=False),
        sa.Column("username", sa.String(100), nullable=False),
        sa.Column("first_name", sa.String(100), nullable=True),
        sa.Column("last_name", sa.String(100), nullable=True),
        sa.Column("hashed_password", sa.String(255), nullable=False),
        sa.Column("role", sa.String(20), nullable=False, server_default=sa.text("'user'")),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        *_timestamps(),
        sa.CheckConstraint("role IN ('user', 'moderator', 'event_admin', 'admin')", name="check_user_role"),
    )
    op.create_index("ix_users_id", "users", ["id"])
    op.create_index("ix_users_email", "users", ["email"], unique=True)
    op.create_index("ix_users_username", "users", ["username"], unique=True)

    op.create_table(
        "events",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("title", sa.String(200), nullable=False),
        sa.Column("description", sa.Text(), nullable=False),
        sa.Column("short_description", sa.String(300), nullable=True),
        sa.Column("category", sa.String(30), nullable=False),
        sa.Column("date", sa.DateTime(timezone=True), nullable=False),
        sa.Column("end_date", sa.DateTime(timezone=True), nullable=True),
        sa.Column("time", sa.String(20), nullable=False),
        sa.Column("location", sa.String(255), nullable=False),
        sa.Column("city", sa.String(100), nullable=True),
        sa.Column("max_attendees", sa.Integer(), nullable=False),
        sa.Column("current_attendees", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("price", sa.Numeric(12, 2), nullable=False, server_default=sa.text("0")),
        sa.Column("currency", sa.String(3), nullable=False, server_default=sa.text("'LKR'")),
        sa.Column("early_bird_price", sa.Numeric(12, 2), nullable=True),
        sa.Column("early_bird_end_date", sa.DateTime(timezone=True), nullable=True),
        sa.Column("group_discount_enabled", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("group_min_size", sa.Integer(), nullable=False, server_default=sa.text("5")),
        sa.Column("group_discount_percentage", sa.Numeric(5, 2), nullable=False, server_default=sa.text("10")),
        sa.Column("status", sa.String(20), nullable=False, server_default=sa.text("'draft'")),
        sa.Column("registration_deadline", sa.DateTime(timezone=True), nullable=True),
        sa.Column("cancellation_deadline", sa.DateTime(timezone=True), nullable=True),
        sa.Column("allow_cancellation", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        sa.Column("cancellation_reason", sa.String(500), nullable=True),
        sa.Column("cancellation_date", sa.DateTime(timezone=True), nullable=True),
        sa.Column("views", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("organizer_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=True),
        sa.Column("version", sa.Integer(), nullable=False, server_default=sa.text("1")),
        *_timestamps(),
        sa.CheckConstraint("current_attendees >= 0", name="check_current_attendees_non_negative"),
        sa.CheckConstraint("max_attendees > 0", name="check_max_attendees_positive"),
        sa.CheckConstraint("current_attendees <= max_attendees", name="check_current_lte_max"),
        sa.CheckConstraint("price >= 0", name="check_price_non_negative"),
        sa.CheckConstraint(
            "group_discount_percentage >= 0 AND group_discount_percentage <= 100",
            name="check_group_discount_range",
        ),
        sa.CheckConstraint(f"category IN ({EVENT_CATEGORIES})", name="check_event_category"),
        sa.CheckConstraint(
            "status IN ('draft', 'active', 'cancelled', 'completed', 'postponed')",
            name="check_event_status",
        ),
    )
    op.create_index("ix_events_id", "events", ["id"])
    op.create_index("ix_events_organizer_id", "events", ["organizer_id"])
    # Listings filter by upcoming date and status far more than anything else
    op.create_index("ix_events_date_status", "events", ["date", "status"])
    op.create_index("ix_events_category_status", "events", ["category", "status"])
    op.create_index("ix_events_city", "events", ["city"])

    op.create_table(
        "bookings",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("booking_number", sa.String(20), nullable=True, unique=True),
        sa.Column("event_id", sa.Integer(), sa.ForeignKey("events.id"), nullable=False),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("status", sa.String(20), nullable=False, server_default=sa.text("'pending'")),
        sa.Column("payment_status", sa.String(20), nullable=False, server_default=sa.text("'pending'")),
        sa.Column("payment_method", sa.String(20), nullable=True),
        sa.Column("transaction_id", sa.String(100), nullable=True),
        sa.Column("payment_gateway", sa.String(50), nullable=True),
        sa.Column("paid_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("amount_paid", sa.Numeric(12, 2), nullable=True),
        sa.Column("attendee_details", sa.JSON(), nullable=False),
        sa.Column("additional_attendees", sa.JSON(), nullable=False),
        sa.Column("base_price", sa.Numeric(12, 2), nullable=False),
        sa.Column("discount_amount", sa.Numeric(12, 2), nullable=False, server_default=sa.text("0")),
        sa.Column("final_price", sa.Numeric(12, 2), nullable=False),
        sa.Column("currency", sa.String(3), nullable=False),
        sa.Column("special_requests", sa.String(500), nullable=True),
        sa.Column("notes", sa.String(1000), nullable=True),
        sa.Column("checked_in", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("checked_in_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("checked_in_by", sa.Integer(), sa.ForeignKey("users.id"), nullable=True),
        sa.Column("cancelled_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("cancelled_by", sa.Integer(), sa.ForeignKey("users.id"), nullable=True),
        sa.Column("cancellation_reason", sa.String(500), nullable=True),
        sa.Column("refund_amount", sa.Numeric(12, 2), nullable=False, server_default=sa.text("0")),
        sa.Column("refund_status", sa.String(20), nullable=False, server_default=sa.text("'none'")),
        sa.Column("refund_processed_at", sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
        sa.CheckConstraint("base_price >= 0", name="check_booking_base_price_non_negative"),
        sa.CheckConstraint("final_price >= 0", name="check_booking_final_price_non_negative"),
        sa.CheckConstraint(
            "status IN ('pending', 'confirmed', 'cancelled', 'completed', 'no-show')",
            name="check_booking_status",
        ),
        sa.CheckConstraint(
            "payment_status IN ('pending', 'paid', 'failed', 'refunded', 'partially-refunded')",
            name="check_booking_payment_status",
        ),
        sa.CheckConstraint(
            "payment_method IS NULL OR payment_method IN ('cash', 'card', 'bank-transfer', 'online', 'free')",
            name="check_booking_payment_method",
        ),
        sa.CheckConstraint(
            "refund_status IN ('none', 'pending', 'processed', 'failed')",
            name="check_booking_refund_status",
        ),
    )
    op.create_index("ix_bookings_id", "bookings", ["id"])
    op.create_index("ix_bookings_event_id", "bookings", ["event_id"])
    op.create_index("ix_bookings_user_id", "bookings", ["user_id"])
    # Per-event stats group by status; "my bookings" sorts by creation time
    op.create_index("ix_bookings_event_status", "bookings", ["event_id", "status"])
    op.create_index("ix_bookings_user_created", "bookings", ["user_id", "created_at"])
    op.create_index("ix_bookings_status_created", "bookings", ["status", "created_at"])


def downgrade() -> None:
    op.drop_table("bookings")
    op.drop_table("events")
    op.drop_table("users")
