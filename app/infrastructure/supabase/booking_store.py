from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Callable

from app.application.exceptions import BookingNotFound, ConflictError
from app.application.ports.booking_store import BookingStorePort
from app.domain.entities.actor import ActorFilter
from app.domain.entities.booking import Booking, BookingDraft, BookingStatus, ensure_mutable
from app.infrastructure.supabase.postgrest_client import PostgrestClient
from app.infrastructure.supabase.rows import booking_from_row, changes_to_row, draft_to_row


class SupabaseBookingStore(BookingStorePort):
    def __init__(
        self,
        client: PostgrestClient,
        table: str = "bookings",
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self._client = client
        self._table = table
        self._clock = clock or (lambda: datetime.now(timezone.utc))

    async def query(self, actor_filter: ActorFilter) -> list[Booking]:
        rows = await self._client.select(
            self._table,
            {
                "select": "*",
                actor_filter.column: actor_filter.to_postgrest(),
                "order": "visit_date.asc,created_at.asc",
            },
        )
        return [booking_from_row(row) for row in rows]

    async def get(self, booking_id: str) -> Booking:
        rows = await self._client.select(self._table, {"select": "*", "id": f"eq.{booking_id}", "limit": "1"})
        if not rows:
            raise BookingNotFound(booking_id)
        return booking_from_row(rows[0])

    async def insert(self, draft: BookingDraft) -> Booking:
        rows = await self._client.insert(self._table, draft_to_row(draft, self._clock()))
        return booking_from_row(rows[0])

    async def update(self, booking_id: str, changes: dict[str, Any], expected_status: BookingStatus) -> Booking:
        ensure_mutable(changes)
        # The status filter turns the PATCH into a compare-and-set on the server.
        rows = await self._client.update(
            self._table,
            {"id": f"eq.{booking_id}", "status": f"eq.{BookingStatus(expected_status).value}"},
            changes_to_row(changes),
        )
        if rows:
            return booking_from_row(rows[0])

        current = await self.get(booking_id)
        raise ConflictError(booking_id, expected_status, current.status)
