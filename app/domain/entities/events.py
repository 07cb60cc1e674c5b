from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

from app.domain.entities.booking import Booking, BookingStatus


@dataclass(frozen=True)
class ChangeEvent:
    kind: str  # "insert" | "update" | "delete"
    table: str
    record_id: str | None = None


@dataclass(frozen=True)
class TransitionEvent:
    booking: Booking
    previous_status: BookingStatus
    actor_id: str
    occurred_at: datetime
    replacement: Booking | None = None  # set on reschedule


@dataclass(frozen=True)
class NotificationIntent:
    kind: str  # "confirmed" | "cancelled"
    booking_id: str
    recipient_id: str
    event: TransitionEvent
    channels: tuple[str, ...] = ("email", "in_app")


@dataclass(frozen=True)
class Notification:
    id: str
    user_id: str
    type: str
    title: str
    message: str
    created_at: datetime
    read: bool = False
    data: dict[str, str] | None = None
