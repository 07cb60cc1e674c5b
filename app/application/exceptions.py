from __future__ import annotations


class BookingError(RuntimeError):
    """Base class for failures surfaced by the booking core."""
    pass


class FetchError(BookingError):
    """Raised when the booking store or change feed is unreachable (network, auth, 5xx)."""
    pass


class BookingNotFound(BookingError):
    """Raised when a booking id has no row in the store."""

    def __init__(self, booking_id: str) -> None:
        super().__init__(f"Booking not found: {booking_id}")
        self.booking_id = booking_id


class PropertyNotFound(BookingError):
    """Raised when a booking is requested for a property that does not exist."""

    def __init__(self, property_id: str) -> None:
        super().__init__(f"Property not found: {property_id}")
        self.property_id = property_id


class IllegalTransition(BookingError):
    """Raised when a status change is not an edge of the booking lifecycle. Never retried."""

    def __init__(self, current: str, target: str) -> None:
        current = getattr(current, "value", current)
        target = getattr(target, "value", target)
        super().__init__(f"Invalid booking transition: {current} -> {target}")
        self.current = current
        self.target = target


class Unauthorized(BookingError):
    """Raised when the actor does not hold the role required for a transition. Never retried."""

    def __init__(self, actor_id: str, booking_id: str, action: str) -> None:
        super().__init__(f"Actor {actor_id} may not {action} booking {booking_id}")
        self.actor_id = actor_id
        self.booking_id = booking_id
        self.action = action


class ConflictError(BookingError):
    """
    Raised when a conditional store update finds the booking no longer in the expected status.
    The caller must re-fetch and re-decide instead of retrying the same transition.
    """

    def __init__(self, booking_id: str, expected_status: str, actual_status: str | None = None) -> None:
        expected_status = getattr(expected_status, "value", expected_status)
        actual_status = getattr(actual_status, "value", actual_status)
        super().__init__(
            f"Booking {booking_id} changed concurrently (expected {expected_status}, found {actual_status})"
        )
        self.booking_id = booking_id
        self.expected_status = expected_status
        self.actual_status = actual_status
