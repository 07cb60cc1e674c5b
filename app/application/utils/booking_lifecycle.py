from __future__ import annotations

from app.application.exceptions import IllegalTransition
from app.domain.entities.booking import BookingStatus


# completed is entered only by an external job once the visit date has passed.
ALLOWED_TRANSITIONS: dict[BookingStatus, frozenset[BookingStatus]] = {
    BookingStatus.PENDING: frozenset({BookingStatus.CONFIRMED, BookingStatus.CANCELLED}),
    BookingStatus.CONFIRMED: frozenset({BookingStatus.CANCELLED, BookingStatus.COMPLETED}),
    BookingStatus.CANCELLED: frozenset(),
    BookingStatus.COMPLETED: frozenset(),
}

TERMINAL_STATUSES = frozenset(status for status, targets in ALLOWED_TRANSITIONS.items() if not targets)


def can_transition(current: BookingStatus, target: BookingStatus) -> bool:
    return target in ALLOWED_TRANSITIONS.get(current, frozenset())


def assert_transition(current: BookingStatus, target: BookingStatus) -> None:
    """Raise IllegalTransition unless current -> target is an edge of the lifecycle graph."""
    if not can_transition(current, target):
        raise IllegalTransition(current=current, target=target)
