"""
Metrics instrumentation for observability.
Exposes Prometheus-compatible metrics at /metrics endpoint.
"""

from prometheus_client import Counter, Histogram, generate_latest, CONTENT_TYPE_LATEST
from fastapi import Response

# Booking metrics
booking_operations = Counter(
    'booking_operations_total',
    'Booking operations by outcome',
    ['operation', 'result']  # create/cancel/checkin/..., success/rejected
)

booking_transitions = Counter(
    'booking_status_transitions_total',
    'Booking status transitions',
    ['from_status', 'to_status']
)

booking_latency = Histogram(
    'booking_operation_latency_seconds',
    'Booking operation latency',
    ['operation'],
    buckets=[0.001, 0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0]
)

# Attendee counter metrics
attendance_adjustments = Counter(
    'event_attendance_adjustments_total',
    'Atomic changes applied to event attendee counters',
    ['direction']  # increment, decrement
)

attendance_rejections = Counter(
    'event_attendance_rejections_total',
    'Counter increments refused because the event was at capacity'
)

refunds_issued = Counter(
    'booking_refund_tiers_total',
    'Cancellations by refund tier',
    ['tier']  # full, half, none
)

# Cache metrics
cache_operations = Counter(
    'cache_operations_total',
    'Cache operations',
    ['operation', 'result']  # get/set, hit/miss
)


def metrics_endpoint() -> Response:
    """Prometheus metrics endpoint."""
    return Response(
        content=generate_latest(),
        media_type=CONTENT_TYPE_LATEST
    )


def record_booking_operation(operation: str, success: bool):
    """Record a booking operation outcome."""
    result = "success" if success else "rejected"
    booking_operations.labels(operation=operation, result=result).inc()


def record_transition(from_status: str, to_status: str):
    booking_transitions.labels(from_status=from_status, to_status=to_status).inc()


def record_attendance_adjustment(delta: int):
    direction = "increment" if delta > 0 else "decrement"
    attendance_adjustments.labels(direction=direction).inc()


def record_refund_tier(tier: str):
    refunds_issued.labels(tier=tier).inc()


def record_cache_operation(operation: str, hit: bool):
    """Record cache operation."""
    result = "hit" if hit else "miss"
    cache_operations.labels(operation=operation, result=result).inc()
