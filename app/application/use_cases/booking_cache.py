from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Callable

from app.application.exceptions import FetchError
from app.application.ports.booking_store import BookingStorePort
from app.domain.entities.actor import ActorFilter
from app.domain.entities.booking import Booking


@dataclass(frozen=True)
class BookingSnapshot:
    """Immutable view of the cache handed to every surface."""

    bookings: tuple[Booking, ...] = ()
    generation: int = 0  # 0 until the first load is applied
    is_stale: bool = True
    loaded_at: datetime | None = None
    _index: dict[str, Booking] = field(default_factory=dict, repr=False, compare=False)

    @property
    def is_loaded(self) -> bool:
        return self.generation > 0

    def find(self, booking_id: str) -> Booking | None:
        if not self._index and self.bookings:
            return next((b for b in self.bookings if b.id == booking_id), None)
        return self._index.get(booking_id)

    def for_property(self, property_id: str) -> tuple[Booking, ...]:
        return tuple(b for b in self.bookings if b.property_id == property_id)


SnapshotListener = Callable[[BookingSnapshot], None]


class BookingCache:
    """
    In-memory projection of the bookings visible to one actor.

    The cache is only ever replaced wholesale. Each load takes a generation number when it
    starts; a result is applied only if no load with a higher generation has been applied
    already, so a slow response can never overwrite a newer one.
    """

    def __init__(self, store: BookingStorePort, actor_filter: ActorFilter) -> None:
        self._store = store
        self._actor_filter = actor_filter
        self._snapshot = BookingSnapshot()
        self._generation = 0
        self._applied_generation = 0
        self._refresh_task: asyncio.Task | None = None
        self._dirty = False
        self._listeners: list[SnapshotListener] = []
        self._logger = logging.getLogger(__name__)

    @property
    def actor_filter(self) -> ActorFilter:
        return self._actor_filter

    @property
    def is_refreshing(self) -> bool:
        return self._refresh_task is not None and not self._refresh_task.done()

    def get(self) -> BookingSnapshot:
        return self._snapshot

    async def load(self, actor_filter: ActorFilter | None = None) -> BookingSnapshot:
        """
        Fetch the full set for the filter and replace the cache.

        On FetchError the previous snapshot is kept and the error propagates.
        """
        if actor_filter is not None and actor_filter != self._actor_filter:
            self._actor_filter = actor_filter
            # Results fetched for the old filter must not land after this point.
            self._applied_generation = self._generation
            self._snapshot = BookingSnapshot()
        self._generation += 1
        generation = self._generation
        query_filter = self._actor_filter

        try:
            bookings = await self._store.query(query_filter)
        except FetchError as e:
            self._logger.warning(
                "Booking fetch failed, keeping previous snapshot",
                extra={"actor_filter": str(query_filter), "generation": generation, "error": str(e)},
            )
            raise

        if generation <= self._applied_generation or query_filter != self._actor_filter:
            self._logger.info(
                "Discarding superseded booking fetch",
                extra={"actor_filter": str(query_filter), "generation": generation},
            )
            return self._snapshot

        self._apply(generation, bookings)
        return self._snapshot

    async def invalidate(self) -> BookingSnapshot:
        """
        Mark the cache stale and wait for the shared refresh to finish.

        Overlapping calls join the same refresh. The wait is shielded: abandoning it does not
        cancel the refresh other callers depend on. Raises FetchError if the last attempt failed.
        """
        task = self._ensure_refresh()
        return await asyncio.shield(task)

    def schedule_invalidate(self) -> asyncio.Task:
        """Passive variant for change-feed callbacks; fetch failures are logged by load(), not raised."""
        return self._ensure_refresh()

    def add_listener(self, listener: SnapshotListener) -> Callable[[], None]:
        self._listeners.append(listener)

        def remove() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return remove

    def _ensure_refresh(self) -> asyncio.Task:
        self._mark_stale()
        if self._refresh_task is None or self._refresh_task.done():
            self._dirty = False
            self._refresh_task = asyncio.ensure_future(self._refresh())
            self._refresh_task.add_done_callback(self._consume_result)
        else:
            self._dirty = True
        return self._refresh_task

    async def _refresh(self) -> BookingSnapshot:
        while True:
            self._dirty = False
            try:
                snapshot = await self.load()
            except FetchError:
                if not self._dirty:
                    raise
                continue
            if not self._dirty:
                return snapshot

    def _apply(self, generation: int, bookings: list[Booking]) -> None:
        ordered = tuple(bookings)
        self._snapshot = BookingSnapshot(
            bookings=ordered,
            generation=generation,
            is_stale=False,
            loaded_at=datetime.now(timezone.utc),
            _index={b.id: b for b in ordered},
        )
        self._applied_generation = generation
        self._logger.debug(
            "Booking cache replaced",
            extra={"actor_filter": str(self._actor_filter), "generation": generation},
        )
        for listener in list(self._listeners):
            try:
                listener(self._snapshot)
            except Exception as e:
                self._logger.exception("Snapshot listener failed", extra={"error": str(e)})

    def _mark_stale(self) -> None:
        if not self._snapshot.is_stale:
            self._snapshot = BookingSnapshot(
                bookings=self._snapshot.bookings,
                generation=self._snapshot.generation,
                is_stale=True,
                loaded_at=self._snapshot.loaded_at,
                _index=self._snapshot._index,
            )

    def _consume_result(self, task: asyncio.Task) -> None:
        # Nobody may be awaiting a passive refresh. FetchError was logged by load().
        if task.cancelled():
            return
        error = task.exception()
        if error is not None and not isinstance(error, FetchError):
            self._logger.error(
                "Booking refresh failed unexpectedly",
                exc_info=error,
                extra={"actor_filter": str(self._actor_filter), "error": repr(error)},
            )
