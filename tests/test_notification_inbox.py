"""
Tests for the in-app notification inbox fed by booking transitions.
"""

from __future__ import annotations

from dataclasses import replace
from datetime import date

from app.application.use_cases.booking_transitions import StatusTransitionEngine
from app.domain.entities.booking import BookingRequest
from app.infrastructure.notifications.in_app_dispatcher import InAppNotificationDispatcher


async def test_confirmation_lands_in_client_inbox(engine, dispatcher, client_actor, agent_actor, p1_request):
    booking = await engine.create(client_actor, p1_request)
    assert dispatcher.list_for("client-1") == []

    await engine.confirm(agent_actor, booking.id)

    inbox = dispatcher.list_for("client-1")
    assert len(inbox) == 1
    assert inbox[0].type == "booking"
    assert inbox[0].title == "Booking Confirmed"
    assert inbox[0].data == {"booking_id": booking.id, "kind": "confirmed"}
    assert not inbox[0].read
    assert dispatcher.unread_count("client-1") == 1
    assert dispatcher.list_for("agent-1") == []


async def test_reschedule_notifies_other_party_with_replacement(engine, dispatcher, client_actor, p1_request):
    booking = await engine.create(client_actor, p1_request)

    result = await engine.reschedule(client_actor, booking.id, date(2025, 3, 8), "15:00")

    (notification,) = dispatcher.list_for("agent-1")
    assert notification.title == "Booking Rescheduled"
    assert notification.data["booking_id"] == result.replacement.id


async def test_inbox_is_newest_first_and_capped(store, catalog, clock, client_actor, agent_actor):
    small = InAppNotificationDispatcher(limit=2, clock=clock)
    capped_engine = StatusTransitionEngine(store=store, properties=catalog, dispatcher=small, clock=clock)
    ids = []
    for day in (1, 2, 3):
        booking = await capped_engine.create(
            client_actor, BookingRequest(property_id="P1", visit_date=date(2025, 3, day), visit_time="10:00")
        )
        await capped_engine.confirm(agent_actor, booking.id)
        ids.append(booking.id)

    inbox = small.list_for("client-1")
    assert [n.data["booking_id"] for n in inbox] == [ids[2], ids[1]]
    assert inbox[0].created_at > inbox[1].created_at


async def test_mark_read_mark_all_and_delete(engine, dispatcher, client_actor, agent_actor):
    for day in (1, 2, 3):
        booking = await engine.create(
            client_actor, BookingRequest(property_id="P1", visit_date=date(2025, 3, day), visit_time="10:00")
        )
        await engine.confirm(agent_actor, booking.id)
    first, second, third = dispatcher.list_for("client-1")

    assert dispatcher.mark_read("client-1", second.id)
    assert dispatcher.unread_count("client-1") == 2
    assert not dispatcher.mark_read("client-2", second.id)
    assert not dispatcher.mark_read("client-1", "missing")

    assert dispatcher.mark_all_read("client-1") == 2
    assert dispatcher.unread_count("client-1") == 0
    assert dispatcher.mark_all_read("client-1") == 0

    assert dispatcher.delete("client-1", first.id)
    assert not dispatcher.delete("client-1", first.id)
    assert [n.id for n in dispatcher.list_for("client-1")] == [second.id, third.id]


async def test_email_only_intent_skips_inbox(engine, dispatcher, client_actor, agent_actor, p1_request):
    booking = await engine.create(client_actor, p1_request)
    result = await engine.confirm(agent_actor, booking.id)
    inbox = InAppNotificationDispatcher()

    await inbox.enqueue(replace(result.intent, channels=("email",)))

    assert inbox.list_for("client-1") == []
