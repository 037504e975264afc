"""
Booking price calculation.

Pure functions: no I/O, no session. The result is snapshotted onto the
booking at creation time and never recomputed, so later price edits on the
event do not touch existing bookings.

Rounding: Decimal arithmetic, ROUND_HALF_UP to two places, applied to the
discount and to the final price.
"""

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal, ROUND_HALF_UP
from typing import Any, Optional

from app.core.clock import as_utc, utcnow

CENT = Decimal("0.01")


def to_money(value: Any) -> Decimal:
    """Coerce an int/float/str/Decimal/None to a two-place Decimal."""
    if value is None:
        return Decimal("0.00")
    if not isinstance(value, Decimal):
        value = Decimal(str(value))
    return value.quantize(CENT, rounding=ROUND_HALF_UP)


@dataclass(frozen=True)
class PriceQuote:
    base_price: Decimal
    attendee_count: int
    subtotal: Decimal
    discount_amount: Decimal
    final_price: Decimal


def compute_price(base_price: Any, attendee_count: int, discount_rule: Optional[Any] = None) -> PriceQuote:
    """
    Price a booking of ``attendee_count`` seats at ``base_price`` each.

    ``discount_rule`` is anything exposing ``enabled``, ``min_group_size`` and
    ``discount_percentage`` (a GroupDiscount schema, or a plain dict). The
    discount applies when the rule is enabled and the group is large enough.
    """
    base = to_money(base_price)
    if base < 0:
        raise ValueError("base_price must not be negative")
    if attendee_count < 1:
        raise ValueError("attendee_count must be at least 1")

    subtotal = base * attendee_count
    discount = Decimal("0.00")

    rule = _rule_values(discount_rule)
    if rule is not None:
        enabled, min_group_size, percentage = rule
        if enabled and attendee_count >= (min_group_size or 0):
            discount = to_money(subtotal * percentage / Decimal(100))

    return PriceQuote(
        base_price=base,
        attendee_count=attendee_count,
        subtotal=to_money(subtotal),
        discount_amount=discount,
        final_price=to_money(subtotal - discount),
    )


def current_base_price(event: Any, now: Optional[datetime] = None) -> Decimal:
    """Early-bird price while the early-bird window is open, regular price otherwise."""
    now = now or utcnow()
    early_end = as_utc(event.early_bird_end_date)
    if event.early_bird_price is not None and early_end is not None and now < early_end:
        return to_money(event.early_bird_price)
    return to_money(event.price)


def _rule_values(rule: Any) -> Optional[tuple[bool, int, Decimal]]:
    if rule is None:
        return None
    if isinstance(rule, dict):
        enabled = rule.get("enabled", False)
        min_group_size = rule.get("min_group_size", 0)
        percentage = rule.get("discount_percentage", 0)
    else:
        enabled = getattr(rule, "enabled", False)
        min_group_size = getattr(rule, "min_group_size", 0)
        percentage = getattr(rule, "discount_percentage", 0)
    return bool(enabled), int(min_group_size or 0), Decimal(str(percentage or 0))
