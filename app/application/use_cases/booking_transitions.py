from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, datetime, timezone
from typing import Callable

from app.application.exceptions import PropertyNotFound, Unauthorized
from app.application.ports.booking_store import BookingStorePort
from app.application.ports.notification_dispatch import NotificationDispatchPort
from app.application.ports.property_catalog import PropertyCatalogPort
from app.application.utils.booking_lifecycle import assert_transition
from app.domain.entities.actor import Actor
from app.domain.entities.booking import Booking, BookingDraft, BookingRequest, BookingStatus
from app.domain.entities.events import NotificationIntent, TransitionEvent


@dataclass(frozen=True)
class TransitionResult:
    booking: Booking
    event: TransitionEvent
    intent: NotificationIntent | None


@dataclass(frozen=True)
class RescheduleResult:
    cancelled: Booking
    replacement: Booking
    event: TransitionEvent
    intent: NotificationIntent | None


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class StatusTransitionEngine:
    """
    The only writer of booking rows.

    Every status change is one conditional store update guarded by the status that was read,
    so two actors racing on the same booking resolve at the store: the loser gets ConflictError.
    The engine never patches a cache; callers invalidate after a successful write.
    """

    def __init__(
        self,
        store: BookingStorePort,
        properties: PropertyCatalogPort,
        dispatcher: NotificationDispatchPort,
        clock: Callable[[], datetime] = _utc_now,
    ) -> None:
        self._store = store
        self._properties = properties
        self._dispatcher = dispatcher
        self._clock = clock
        self._logger = logging.getLogger(__name__)

    async def create(self, actor: Actor, request: BookingRequest) -> Booking:
        prop = await self._properties.get_property(request.property_id)
        if prop is None:
            raise PropertyNotFound(request.property_id)

        draft = BookingDraft(
            property_id=prop.id,
            property_title=prop.title,
            property_image=prop.image,
            client_id=actor.id,
            client_name=request.client_name or actor.name or "",
            client_email=request.client_email or actor.email or "",
            client_phone=request.client_phone or actor.phone or "",
            agent_id=prop.agent_id,
            agent_name=prop.agent_name,
            visit_date=request.visit_date,
            visit_time=request.visit_time.strip(),
            notes=request.notes,
        )
        booking = await self._store.insert(draft)
        self._logger.info(
            "Booking created",
            extra={"booking_id": booking.id, "actor_id": actor.id, "status": booking.status.value},
        )
        return booking

    async def confirm(self, actor: Actor, booking_id: str) -> TransitionResult:
        booking = await self._store.get(booking_id)
        if actor.id != booking.agent_id:
            raise Unauthorized(actor.id, booking_id, "confirm")
        assert_transition(booking.status, BookingStatus.CONFIRMED)

        updated = await self._write_status(booking, BookingStatus.CONFIRMED)
        event = TransitionEvent(
            booking=updated,
            previous_status=booking.status,
            actor_id=actor.id,
            occurred_at=updated.updated_at,
        )
        intent = await self._notify("confirmed", event, recipient_id=updated.client_id)
        return TransitionResult(booking=updated, event=event, intent=intent)

    async def cancel(self, actor: Actor, booking_id: str) -> TransitionResult:
        booking = await self._store.get(booking_id)
        self._authorize_party(actor, booking, "cancel")
        assert_transition(booking.status, BookingStatus.CANCELLED)

        updated = await self._write_status(booking, BookingStatus.CANCELLED)
        event = TransitionEvent(
            booking=updated,
            previous_status=booking.status,
            actor_id=actor.id,
            occurred_at=updated.updated_at,
        )
        intent = await self._notify("cancelled", event, recipient_id=_other_party(actor, updated))
        return TransitionResult(booking=updated, event=event, intent=intent)

    async def reschedule(self, actor: Actor, booking_id: str, new_date: date, new_time: str) -> RescheduleResult:
        """
        Cancel the booking and create a fresh pending one for the new slot.

        The old row is never edited in place, so any surface still showing it sees a
        cancelled booking rather than a slot that silently moved.
        """
        booking = await self._store.get(booking_id)
        self._authorize_party(actor, booking, "reschedule")
        assert_transition(booking.status, BookingStatus.CANCELLED)

        cancelled = await self._write_status(booking, BookingStatus.CANCELLED)
        draft = BookingDraft(
            property_id=booking.property_id,
            property_title=booking.property_title,
            property_image=booking.property_image,
            client_id=booking.client_id,
            client_name=booking.client_name,
            client_email=booking.client_email,
            client_phone=booking.client_phone,
            agent_id=booking.agent_id,
            agent_name=booking.agent_name,
            visit_date=new_date,
            visit_time=new_time.strip(),
            notes=booking.notes,
        )
        try:
            replacement = await self._store.insert(draft)
        except Exception as e:
            self._logger.error(
                "Reschedule left booking cancelled without a replacement",
                extra={"booking_id": booking_id, "actor_id": actor.id, "error": str(e)},
            )
            raise

        event = TransitionEvent(
            booking=cancelled,
            previous_status=booking.status,
            actor_id=actor.id,
            occurred_at=cancelled.updated_at,
            replacement=replacement,
        )
        intent = await self._notify("cancelled", event, recipient_id=_other_party(actor, cancelled))
        self._logger.info(
            "Booking rescheduled",
            extra={"booking_id": booking_id, "actor_id": actor.id, "reason": f"replaced_by={replacement.id}"},
        )
        return RescheduleResult(cancelled=cancelled, replacement=replacement, event=event, intent=intent)

    async def _write_status(self, booking: Booking, target: BookingStatus) -> Booking:
        updated = await self._store.update(
            booking.id,
            {"status": target, "updated_at": self._clock()},
            expected_status=booking.status,
        )
        self._logger.info(
            "Booking status changed",
            extra={"booking_id": booking.id, "status": f"{booking.status.value}->{target.value}"},
        )
        return updated

    def _authorize_party(self, actor: Actor, booking: Booking, action: str) -> None:
        if not booking.involves(actor.id):
            raise Unauthorized(actor.id, booking.id, action)

    async def _notify(self, kind: str, event: TransitionEvent, recipient_id: str) -> NotificationIntent | None:
        intent = NotificationIntent(kind=kind, booking_id=event.booking.id, recipient_id=recipient_id, event=event)
        try:
            await self._dispatcher.enqueue(intent)
        except Exception as e:
            # The transition is already committed; a lost notification must not undo it.
            self._logger.error(
                "Failed to enqueue booking notification",
                extra={"booking_id": event.booking.id, "reason": kind, "error": str(e)},
            )
            return None
        return intent


def _other_party(actor: Actor, booking: Booking) -> str:
    return booking.agent_id if actor.id == booking.client_id else booking.client_id
