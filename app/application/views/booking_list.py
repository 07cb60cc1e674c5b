from __future__ import annotations

from dataclasses import dataclass
from datetime import date

from app.application.use_cases.booking_cache import BookingSnapshot
from app.application.views.status_labels import status_label
from app.domain.entities.booking import Booking, BookingStatus


@dataclass(frozen=True)
class BookingListItem:
    id: str
    property_id: str
    property_title: str
    property_image: str
    client_name: str
    agent_name: str
    visit_date: date
    visit_time: str
    status: BookingStatus
    status_label: str

    @staticmethod
    def from_booking(booking: Booking) -> "BookingListItem":
        return BookingListItem(
            id=booking.id,
            property_id=booking.property_id,
            property_title=booking.property_title,
            property_image=booking.property_image,
            client_name=booking.client_name,
            agent_name=booking.agent_name,
            visit_date=booking.visit_date,
            visit_time=booking.visit_time,
            status=booking.status,
            status_label=status_label(booking.status),
        )


@dataclass(frozen=True)
class BookingListView:
    upcoming: tuple[BookingListItem, ...]
    past: tuple[BookingListItem, ...]
    generation: int
    is_stale: bool


def _slot_key(booking: Booking) -> tuple[date, str, str]:
    return (booking.visit_date, booking.visit_time, booking.id)


def build_booking_list(snapshot: BookingSnapshot, status: BookingStatus | None = None) -> BookingListView:
    """Split the snapshot into upcoming (soonest first) and past (latest first)."""
    bookings = [b for b in snapshot.bookings if status is None or b.status == status]
    upcoming = sorted((b for b in bookings if b.is_upcoming), key=_slot_key)
    past = sorted((b for b in bookings if not b.is_upcoming), key=_slot_key, reverse=True)
    return BookingListView(
        upcoming=tuple(BookingListItem.from_booking(b) for b in upcoming),
        past=tuple(BookingListItem.from_booking(b) for b in past),
        generation=snapshot.generation,
        is_stale=snapshot.is_stale,
    )
