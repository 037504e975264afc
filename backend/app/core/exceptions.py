"""
Domain error taxonomy.

Every business-rule rejection carries a machine-readable ``kind`` and an HTTP
status so the API layer can render it without knowing the rule that fired.
None of these are retried: they are rejections, not infrastructure faults.
"""

from typing import Optional


class DomainError(Exception):
    kind = "domain_error"
    status_code = 400

    def __init__(self, message: str, *, kind: Optional[str] = None, status_code: Optional[int] = None):
        self.message = message
        if kind is not None:
            self.kind = kind
        if status_code is not None:
            self.status_code = status_code
        super().__init__(message)


# Validation

class ValidationFailedError(DomainError):
    kind = "validation_error"
    status_code = 400


# Lookup

class NotFoundError(DomainError):
    kind = "not_found"
    status_code = 404


# State conflicts

class StateConflictError(DomainError):
    kind = "state_conflict"
    status_code = 409


class InvalidTransitionError(StateConflictError):
    kind = "invalid_transition"

    def __init__(self, current: str, requested: str):
        super().__init__(f"Cannot change booking status from '{current}' to '{requested}'")
        self.current = current
        self.requested = requested


class AlreadyCancelledError(StateConflictError):
    kind = "already_cancelled"

    def __init__(self, message: str = "Booking is already cancelled"):
        super().__init__(message)


class AlreadyCheckedInError(StateConflictError):
    kind = "already_checked_in"

    def __init__(self, message: str = "Attendee is already checked in"):
        super().__init__(message)


class CapacityExceededError(StateConflictError):
    kind = "capacity_exceeded"


class EventHasBookingsError(StateConflictError):
    kind = "event_has_bookings"


# Policy

class PolicyError(DomainError):
    kind = "policy_violation"
    status_code = 400


class EventPassedError(PolicyError):
    kind = "event_passed"

    def __init__(self, message: str = "This event has already passed"):
        super().__init__(message)


class RegistrationClosedError(PolicyError):
    kind = "registration_closed"

    def __init__(self, message: str = "Registration is closed for this event"):
        super().__init__(message)


class EventFullError(PolicyError):
    kind = "event_full"


class CancellationNotAllowedError(PolicyError):
    kind = "cancellation_not_allowed"

    def __init__(self, message: str = "Cancellation is not allowed for this event"):
        super().__init__(message)


# Auth

class AuthenticationError(DomainError):
    kind = "not_authenticated"
    status_code = 401


class PermissionDeniedError(DomainError):
    kind = "forbidden"
    status_code = 403


# Infrastructure

class StorageUnavailableError(DomainError):
    kind = "storage_unavailable"
    status_code = 503

    def __init__(self, message: str = "Storage is temporarily unavailable"):
        super().__init__(message)
