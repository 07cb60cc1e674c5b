from __future__ import annotations

import asyncio
import uuid
from dataclasses import replace
from datetime import datetime, timezone
from typing import Any, Callable

from app.application.exceptions import BookingNotFound, ConflictError
from app.application.ports.booking_store import BookingStorePort
from app.application.ports.property_catalog import PropertyCatalogPort
from app.domain.entities.actor import ActorFilter
from app.domain.entities.booking import Booking, BookingDraft, BookingStatus, ensure_mutable
from app.domain.entities.events import ChangeEvent
from app.domain.entities.property import PropertySnapshot
from app.infrastructure.realtime.memory_feed import MemoryChangeFeed


class MemoryBookingStore(BookingStorePort):
    """
    Process-local booking table.

    Every call yields to the event loop once before touching the table, the way a network
    round trip would, so concurrent callers interleave. The status check and the write in
    `update` happen with no suspension in between, which makes it a compare-and-set.
    """

    def __init__(
        self,
        feed: MemoryChangeFeed | None = None,
        table: str = "bookings",
        latency: float = 0.0,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self._rows: dict[str, Booking] = {}
        self._feed = feed
        self._table = table
        self._latency = latency
        self._clock = clock or (lambda: datetime.now(timezone.utc))

    async def query(self, actor_filter: ActorFilter) -> list[Booking]:
        await asyncio.sleep(self._latency)
        rows = [row for row in self._rows.values() if actor_filter.matches(row)]
        return sorted(rows, key=lambda b: (b.visit_date, b.created_at))

    async def get(self, booking_id: str) -> Booking:
        await asyncio.sleep(self._latency)
        row = self._rows.get(booking_id)
        if row is None:
            raise BookingNotFound(booking_id)
        return row

    async def insert(self, draft: BookingDraft) -> Booking:
        await asyncio.sleep(self._latency)
        now = self._clock()
        booking = Booking(
            id=str(uuid.uuid4()),
            property_id=draft.property_id,
            property_title=draft.property_title,
            property_image=draft.property_image,
            client_id=draft.client_id,
            client_name=draft.client_name,
            client_email=draft.client_email,
            client_phone=draft.client_phone,
            agent_id=draft.agent_id,
            agent_name=draft.agent_name,
            visit_date=draft.visit_date,
            visit_time=draft.visit_time,
            status=BookingStatus.PENDING,
            notes=draft.notes,
            created_at=now,
            updated_at=now,
        )
        self._rows[booking.id] = booking
        self._publish("insert", booking)
        return booking

    async def update(self, booking_id: str, changes: dict[str, Any], expected_status: BookingStatus) -> Booking:
        ensure_mutable(changes)
        await asyncio.sleep(self._latency)
        current = self._rows.get(booking_id)
        if current is None:
            raise BookingNotFound(booking_id)
        if current.status != expected_status:
            raise ConflictError(booking_id, expected_status, current.status)

        values = dict(changes)
        if "status" in values:
            values["status"] = BookingStatus(values["status"])
        updated = replace(current, **values)
        self._rows[booking_id] = updated
        self._publish("update", updated)
        return updated

    def delete(self, booking_id: str) -> None:
        """Remove a row outright, as an admin tool would; the booking core never deletes."""
        row = self._rows.pop(booking_id, None)
        if row is not None:
            self._publish("delete", row)

    def rows(self) -> list[Booking]:
        return list(self._rows.values())

    def _publish(self, kind: str, booking: Booking) -> None:
        if self._feed is not None:
            self._feed.publish(ChangeEvent(kind=kind, table=self._table, record_id=booking.id), booking)


class MemoryPropertyCatalog(PropertyCatalogPort):
    def __init__(self, properties: list[PropertySnapshot] | None = None) -> None:
        self._properties = {p.id: p for p in properties or []}

    def add(self, prop: PropertySnapshot) -> None:
        self._properties[prop.id] = prop

    async def get_property(self, property_id: str) -> PropertySnapshot | None:
        return self._properties.get(property_id)


DEMO_PROPERTIES = [
    PropertySnapshot(id="P1", title="Luxury Penthouse", agent_id="agent-1", image="penthouse.jpg", agent_name="Skyline Realty"),
    PropertySnapshot(id="P2", title="Modern Villa", agent_id="agent-1", image="villa.jpg", agent_name="Skyline Realty"),
    PropertySnapshot(id="P3", title="Garden Cottage", agent_id="agent-2", image="cottage.jpg", agent_name="Greenfield Homes"),
]
