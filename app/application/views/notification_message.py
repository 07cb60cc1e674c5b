from __future__ import annotations

from dataclasses import dataclass

from app.domain.entities.booking import Booking, BookingStatus
from app.domain.entities.events import TransitionEvent


@dataclass(frozen=True)
class NotificationView:
    kind: str
    title: str
    message: str
    booking_id: str


def _slot(booking: Booking) -> str:
    return f"{booking.visit_date.strftime('%A, %B %d')} at {booking.visit_time}"


def describe_transition(event: TransitionEvent) -> NotificationView:
    booking = event.booking

    if event.replacement is not None:
        return NotificationView(
            kind="rescheduled",
            title="Booking Rescheduled",
            message=(
                f"Your viewing for {booking.property_title} has moved from {_slot(booking)} "
                f"to {_slot(event.replacement)}."
            ),
            booking_id=event.replacement.id,
        )

    if booking.status == BookingStatus.CONFIRMED:
        return NotificationView(
            kind="confirmed",
            title="Booking Confirmed",
            message=f"Your viewing for {booking.property_title} is scheduled for {_slot(booking)}.",
            booking_id=booking.id,
        )

    if booking.status == BookingStatus.CANCELLED:
        return NotificationView(
            kind="cancelled",
            title="Booking Cancelled",
            message=f"The viewing for {booking.property_title} on {_slot(booking)} has been cancelled.",
            booking_id=booking.id,
        )

    if booking.status == BookingStatus.COMPLETED:
        return NotificationView(
            kind="completed",
            title="Viewing Completed",
            message=f"Your viewing for {booking.property_title} is complete.",
            booking_id=booking.id,
        )

    return NotificationView(
        kind="pending",
        title="Booking Requested",
        message=f"A viewing for {booking.property_title} was requested for {_slot(booking)}.",
        booking_id=booking.id,
    )
