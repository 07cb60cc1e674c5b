from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from enum import Enum


class BookingStatus(str, Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    CANCELLED = "cancelled"
    COMPLETED = "completed"


# Set once at creation; stores reject updates that touch them.
IMMUTABLE_FIELDS = frozenset({"id", "property_id", "agent_id", "client_id", "created_at"})


@dataclass(frozen=True)
class Booking:
    id: str
    property_id: str
    property_title: str
    property_image: str
    client_id: str
    client_name: str
    client_email: str
    client_phone: str
    agent_id: str
    visit_date: date
    visit_time: str
    status: BookingStatus
    created_at: datetime
    updated_at: datetime
    agent_name: str = ""
    notes: str | None = None

    @property
    def is_upcoming(self) -> bool:
        return self.status in (BookingStatus.PENDING, BookingStatus.CONFIRMED)

    def involves(self, actor_id: str) -> bool:
        return actor_id in (self.client_id, self.agent_id)


@dataclass(frozen=True)
class BookingDraft:
    """Everything the client submits; the store assigns id, status and timestamps."""

    property_id: str
    property_title: str
    property_image: str
    client_id: str
    client_name: str
    client_email: str
    client_phone: str
    agent_id: str
    visit_date: date
    visit_time: str
    agent_name: str = ""
    notes: str | None = None


@dataclass(frozen=True)
class BookingRequest:
    property_id: str
    visit_date: date
    visit_time: str
    notes: str | None = None
    client_name: str | None = None
    client_email: str | None = None
    client_phone: str | None = None


def ensure_mutable(changes: dict[str, object]) -> None:
    touched = IMMUTABLE_FIELDS.intersection(changes)
    if touched:
        raise ValueError(f"Immutable booking fields cannot be updated: {', '.join(sorted(touched))}")
