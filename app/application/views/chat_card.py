from __future__ import annotations

from dataclasses import dataclass
from datetime import date

from app.application.use_cases.booking_cache import BookingSnapshot
from app.application.utils.booking_lifecycle import can_transition
from app.application.views.status_labels import LOADING_LABEL, UNAVAILABLE_LABEL, status_label
from app.domain.entities.actor import Actor
from app.domain.entities.booking import BookingStatus


@dataclass(frozen=True)
class ChatCardView:
    booking_id: str
    state: str  # a BookingStatus value, "unavailable" or "loading"
    status_label: str
    property_title: str | None = None
    property_image: str | None = None
    client_name: str | None = None
    visit_date: date | None = None
    visit_time: str | None = None
    can_confirm: bool = False
    can_cancel: bool = False


def resolve_chat_card(snapshot: BookingSnapshot, booking_id: str, viewer: Actor) -> ChatCardView:
    """
    Render the card for a booking referenced by an (immutable) chat message.

    The booking is looked up in the snapshot at render time, so the card tracks the live
    status. An id the loaded snapshot does not know renders as unavailable, never as the
    data the message was sent with.
    """
    if not snapshot.is_loaded:
        return ChatCardView(booking_id=booking_id, state="loading", status_label=LOADING_LABEL)

    booking = snapshot.find(booking_id)
    if booking is None:
        return ChatCardView(booking_id=booking_id, state="unavailable", status_label=UNAVAILABLE_LABEL)

    is_agent = viewer.id == booking.agent_id
    return ChatCardView(
        booking_id=booking.id,
        state=booking.status.value,
        status_label=status_label(booking.status),
        property_title=booking.property_title,
        property_image=booking.property_image,
        client_name=booking.client_name,
        visit_date=booking.visit_date,
        visit_time=booking.visit_time,
        can_confirm=is_agent and can_transition(booking.status, BookingStatus.CONFIRMED),
        can_cancel=booking.involves(viewer.id) and can_transition(booking.status, BookingStatus.CANCELLED),
    )
