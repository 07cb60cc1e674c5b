from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any

from app.domain.entities.actor import ActorFilter
from app.domain.entities.booking import Booking, BookingDraft, BookingStatus


class BookingStorePort(ABC):
    @abstractmethod
    async def query(self, actor_filter: ActorFilter) -> list[Booking]:
        """Return every booking matching the filter, ordered by visit_date ascending."""
        raise NotImplementedError

    @abstractmethod
    async def get(self, booking_id: str) -> Booking:
        """Return the stored row. Raises BookingNotFound."""
        raise NotImplementedError

    @abstractmethod
    async def insert(self, draft: BookingDraft) -> Booking:
        """Persist a new pending booking. The store assigns id and timestamps."""
        raise NotImplementedError

    @abstractmethod
    async def update(
        self,
        booking_id: str,
        changes: dict[str, Any],
        expected_status: BookingStatus,
    ) -> Booking:
        """
        Apply `changes` in a single write, only while the stored status equals `expected_status`.

        Raises:
            ConflictError: the row exists but its status moved on
            BookingNotFound: no such row
            ValueError: `changes` touches an immutable field
            FetchError: the store is unreachable
        """
        raise NotImplementedError
