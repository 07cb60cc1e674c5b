from __future__ import annotations

import asyncio
from typing import Any

from app.application.exceptions import FetchError
from app.application.ports.booking_store import BookingStorePort
from app.application.ports.change_feed import ChangeFeedPort, ChannelHandle
from app.application.ports.notification_dispatch import NotificationDispatchPort
from app.domain.entities.actor import ActorFilter
from app.domain.entities.booking import Booking, BookingDraft, BookingStatus


class GatedBookingStore(BookingStorePort):
    """
    Wraps a real store; each query parks on a gate the test releases explicitly,
    so responses can be made to arrive in any order.
    """

    def __init__(self, inner: BookingStorePort) -> None:
        self._inner = inner
        self.query_calls = 0
        self.gates: list[asyncio.Future] = []

    async def query(self, actor_filter: ActorFilter) -> list[Booking]:
        self.query_calls += 1
        result = await self._inner.query(actor_filter)
        gate = asyncio.get_running_loop().create_future()
        self.gates.append(gate)
        outcome = await gate
        if isinstance(outcome, Exception):
            raise outcome
        return result if outcome is None else outcome

    def release(self, index: int, outcome: Any = None) -> None:
        self.gates[index].set_result(outcome)

    async def get(self, booking_id: str) -> Booking:
        return await self._inner.get(booking_id)

    async def insert(self, draft: BookingDraft) -> Booking:
        return await self._inner.insert(draft)

    async def update(self, booking_id: str, changes: dict[str, Any], expected_status: BookingStatus) -> Booking:
        return await self._inner.update(booking_id, changes, expected_status)


class FlakyBookingStore(BookingStorePort):
    """Fails queries with FetchError while `failing` is set; counts every write attempt."""

    def __init__(self, inner: BookingStorePort) -> None:
        self._inner = inner
        self.failing = False
        self.query_calls = 0
        self.update_calls = 0

    async def query(self, actor_filter: ActorFilter) -> list[Booking]:
        self.query_calls += 1
        await asyncio.sleep(0)
        if self.failing:
            raise FetchError("network unreachable")
        return await self._inner.query(actor_filter)

    async def get(self, booking_id: str) -> Booking:
        return await self._inner.get(booking_id)

    async def insert(self, draft: BookingDraft) -> Booking:
        return await self._inner.insert(draft)

    async def update(self, booking_id: str, changes: dict[str, Any], expected_status: BookingStatus) -> Booking:
        self.update_calls += 1
        return await self._inner.update(booking_id, changes, expected_status)


class WriteBeforeOpenFeed(ChangeFeedPort):
    """Runs `before_open` once, right before the inner feed opens its first channel."""

    def __init__(self, inner: ChangeFeedPort, before_open) -> None:
        self._inner = inner
        self._before_open = before_open

    async def open_channel(self, actor_filter: ActorFilter, on_event, on_disconnect) -> ChannelHandle:
        hook, self._before_open = self._before_open, None
        if hook is not None:
            await hook()
        return await self._inner.open_channel(actor_filter, on_event, on_disconnect)


class BrokenQueryStore(BookingStorePort):
    """Raises `error` from every query; everything else goes to the inner store."""

    def __init__(self, inner: BookingStorePort, error: Exception) -> None:
        self._inner = inner
        self.error = error
        self.broken = False

    async def query(self, actor_filter: ActorFilter) -> list[Booking]:
        if self.broken:
            raise self.error
        return await self._inner.query(actor_filter)

    async def get(self, booking_id: str) -> Booking:
        return await self._inner.get(booking_id)

    async def insert(self, draft: BookingDraft) -> Booking:
        return await self._inner.insert(draft)

    async def update(self, booking_id: str, changes: dict[str, Any], expected_status: BookingStatus) -> Booking:
        return await self._inner.update(booking_id, changes, expected_status)


class RecordingDispatcher(NotificationDispatchPort):
    def __init__(self, fail: bool = False) -> None:
        self.intents = []
        self._fail = fail

    async def enqueue(self, intent) -> None:
        if self._fail:
            raise RuntimeError("queue down")
        self.intents.append(intent)


async def eventually(predicate, timeout: float = 2.0) -> None:
    """Yield to the loop until `predicate()` holds or `timeout` seconds pass."""
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while not predicate():
        if loop.time() > deadline:
            raise AssertionError("condition not met in time")
        await asyncio.sleep(0.005)
