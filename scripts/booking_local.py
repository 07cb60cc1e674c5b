#!/usr/bin/env python3
"""
Interactive local booking harness (no HTTP, in-memory store and change feed).

Usage:
  python3 scripts/booking_local.py

What it does:
- Signs in as one actor at a time (client-1 by default) through the same SessionRegistry the API uses
- Runs create/confirm/cancel/reschedule through the transition engine
- Prints the booking list, chat cards and the in-app inbox so you can watch other actors' writes arrive
"""

import asyncio
import sys
from datetime import date
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from app.application.exceptions import BookingError
from app.domain.entities.actor import Actor
from app.domain.entities.booking import BookingRequest
from app.wiring.dependencies import get_notification_dispatcher, get_session_registry


HELP = """Commands:
  /as <actor_id> <client|agent>            -> switch actor (starts their session)
  book <property_id> <YYYY-MM-DD> <HH:MM>   -> request a viewing (client)
  confirm <booking_id>                      -> confirm (agent)
  cancel <booking_id>                       -> cancel (either party)
  reschedule <booking_id> <YYYY-MM-DD> <HH:MM>
  list                                      -> upcoming and past bookings
  card <booking_id>                         -> chat card for a booking
  inbox                                     -> in-app notifications
  /quit"""


def _print_header(actor: Actor) -> None:
    print("\nLocal Booking Harness")
    print("-" * 60)
    print(f"actor: {actor.id} ({actor.role.value})")
    print("Demo properties: P1, P2 (agent-1), P3 (agent-2). Type /help for commands.")
    print("-" * 60)


def _print_list(session) -> None:
    view = session.booking_list()
    stale = " (stale)" if view.is_stale else ""
    print(f"--- Upcoming{stale} ---")
    for item in view.upcoming:
        print(f"  {item.id[:8]}  {item.visit_date} {item.visit_time}  {item.property_title}  [{item.status_label}]")
    print("--- Past ---")
    for item in view.past:
        print(f"  {item.id[:8]}  {item.visit_date} {item.visit_time}  {item.property_title}  [{item.status_label}]")


def _resolve_id(session, prefix: str) -> str:
    """Accept the 8-char prefix printed by `list`."""
    for booking in session.snapshot().bookings:
        if booking.id.startswith(prefix):
            return booking.id
    return prefix


async def _handle(session, inbox, actor: Actor, parts: list[str]) -> None:
    cmd, args = parts[0].lower(), parts[1:]

    if cmd == "list":
        _print_list(session)
    elif cmd == "inbox":
        for n in inbox.list_for(actor.id):
            flag = " " if n.read else "*"
            print(f" {flag} {n.title}: {n.message}")
        print(f"({inbox.unread_count(actor.id)} unread)")
    elif cmd == "card" and len(args) == 1:
        card = session.chat_card(_resolve_id(session, args[0]))
        print(f"[{card.status_label}] {card.property_title or ''} {card.visit_date or ''} {card.visit_time or ''}")
        print(f"can_confirm={card.can_confirm} can_cancel={card.can_cancel}")
    elif cmd == "book" and len(args) == 3:
        booking = await session.create(
            BookingRequest(property_id=args[0], visit_date=date.fromisoformat(args[1]), visit_time=args[2])
        )
        print(f"Requested {booking.id[:8]} for {booking.property_title} ({booking.status.value})")
    elif cmd in ("confirm", "cancel") and len(args) == 1:
        booking_id = _resolve_id(session, args[0])
        result = await (session.confirm(booking_id) if cmd == "confirm" else session.cancel(booking_id))
        print(f"{result.event.previous_status.value} -> {result.booking.status.value}")
    elif cmd == "reschedule" and len(args) == 3:
        result = await session.reschedule(_resolve_id(session, args[0]), date.fromisoformat(args[1]), args[2])
        print(f"Cancelled {result.cancelled.id[:8]}, new request {result.replacement.id[:8]}")
    else:
        print("Unknown command. Type /help.")


async def main() -> None:
    registry = get_session_registry()
    inbox = get_notification_dispatcher()
    loop = asyncio.get_running_loop()

    actor = Actor.from_headers("client-1", "client", "Demo Client", "client@example.com")
    session = await registry.get_or_start(actor)
    _print_header(actor)

    while True:
        try:
            text = (await loop.run_in_executor(None, input, f"\n{actor.id}> ")).strip()
        except (EOFError, KeyboardInterrupt):
            print("\nBye!")
            break

        if not text:
            continue
        parts = text.split()
        cmd = parts[0].lower()
        if cmd in ("/quit", "/exit"):
            print("Bye!")
            break
        if cmd == "/help":
            print(HELP)
            continue
        if cmd == "/as" and len(parts) == 3:
            try:
                actor = Actor.from_headers(parts[1], parts[2])
            except ValueError:
                print(f"Unknown role: {parts[2]}")
                continue
            session = await registry.get_or_start(actor)
            _print_header(actor)
            continue

        try:
            await _handle(session, inbox, actor, parts)
        except BookingError as e:
            print(f"ERROR ({type(e).__name__}): {e}")
        except ValueError as e:
            print(f"ERROR: {e}")

    await registry.close_all()


if __name__ == "__main__":
    asyncio.run(main())
