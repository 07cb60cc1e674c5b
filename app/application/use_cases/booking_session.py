from __future__ import annotations

import asyncio
import logging
from datetime import date

from app.application.exceptions import FetchError
from app.application.ports.booking_store import BookingStorePort
from app.application.use_cases.booking_cache import BookingCache, BookingSnapshot
from app.application.use_cases.booking_transitions import (
    RescheduleResult,
    StatusTransitionEngine,
    TransitionResult,
)
from app.application.use_cases.change_feed_subscriber import ChangeFeedSubscriber, SubscriptionHandle
from app.application.views.booking_list import BookingListView, build_booking_list
from app.application.views.chat_card import ChatCardView, resolve_chat_card
from app.domain.entities.actor import Actor
from app.domain.entities.booking import Booking, BookingRequest, BookingStatus


class BookingSession:
    """
    Booking state for one signed-in actor, from session start to logout.

    Reads go through the cache; writes go through the transition engine and are followed by
    a local invalidation so the writer does not wait on feed latency.
    """

    def __init__(
        self,
        actor: Actor,
        store: BookingStorePort,
        engine: StatusTransitionEngine,
        subscriber: ChangeFeedSubscriber,
    ) -> None:
        self.actor = actor
        self.cache = BookingCache(store, actor.booking_filter())
        self._engine = engine
        self._subscriber = subscriber
        self._subscription: SubscriptionHandle | None = None
        self._retry_task: asyncio.Task | None = None
        self._closed = False
        self._logger = logging.getLogger(__name__)

    @property
    def subscription(self) -> SubscriptionHandle | None:
        return self._subscription

    async def start(self) -> None:
        """
        Open the change feed, then load.

        The channel is open before the fetch starts, so a write landing in between is either
        in the fetched rows or arrives as an event.
        """
        if not await self._subscribe():
            self._schedule_subscribe_retry()
        try:
            await self.cache.load()
        except FetchError:
            # Already logged by the cache; the feed or the next refresh will fill it in.
            pass

    async def resume(self) -> None:
        if self._subscription is None or not self._subscription.is_active:
            self._cancel_subscribe_retry()
            if not await self._subscribe():
                self._schedule_subscribe_retry()
        else:
            await self._subscription.resume()
        self.cache.schedule_invalidate()

    async def close(self) -> None:
        self._closed = True
        self._cancel_subscribe_retry()
        if self._subscription is not None:
            await self._subscription.close()
            self._subscription = None
        self._logger.info("Booking session closed", extra={"actor_id": self.actor.id})

    async def _subscribe(self) -> bool:
        try:
            self._subscription = await self._subscriber.subscribe(
                self.cache.actor_filter, self.cache.schedule_invalidate
            )
        except FetchError as e:
            self._logger.warning(
                "Could not open change feed; retrying in background",
                extra={"actor_id": self.actor.id, "error": str(e)},
            )
            return False
        return True

    def _schedule_subscribe_retry(self) -> None:
        if self._closed or (self._retry_task is not None and not self._retry_task.done()):
            return
        self._retry_task = asyncio.ensure_future(self._subscribe_retry_loop())

    async def _subscribe_retry_loop(self) -> None:
        delay = self._subscriber.reconnect_initial_delay
        while not self._closed:
            await asyncio.sleep(delay)
            if self._closed:
                return
            if await self._subscribe():
                # Nothing was delivered while the feed was down.
                self.cache.schedule_invalidate()
                return
            delay = min(delay * 2, self._subscriber.reconnect_max_delay)

    def _cancel_subscribe_retry(self) -> None:
        task, self._retry_task = self._retry_task, None
        if task is not None and not task.done() and task is not asyncio.current_task():
            task.cancel()

    def snapshot(self) -> BookingSnapshot:
        return self.cache.get()

    def booking_list(self, status: BookingStatus | None = None) -> BookingListView:
        return build_booking_list(self.cache.get(), status=status)

    def chat_card(self, booking_id: str) -> ChatCardView:
        return resolve_chat_card(self.cache.get(), booking_id, self.actor)

    async def refresh(self) -> BookingSnapshot:
        """User-initiated refresh; FetchError propagates so the UI can show it."""
        return await self.cache.invalidate()

    async def create(self, request: BookingRequest) -> Booking:
        booking = await self._engine.create(self.actor, request)
        await self._refresh_after_write()
        return booking

    async def confirm(self, booking_id: str) -> TransitionResult:
        result = await self._engine.confirm(self.actor, booking_id)
        await self._refresh_after_write()
        return result

    async def cancel(self, booking_id: str) -> TransitionResult:
        result = await self._engine.cancel(self.actor, booking_id)
        await self._refresh_after_write()
        return result

    async def reschedule(self, booking_id: str, new_date: date, new_time: str) -> RescheduleResult:
        result = await self._engine.reschedule(self.actor, booking_id, new_date, new_time)
        await self._refresh_after_write()
        return result

    async def _refresh_after_write(self) -> None:
        try:
            await self.cache.invalidate()
        except FetchError as e:
            self._logger.warning(
                "Refresh after write failed; waiting for change feed",
                extra={"actor_id": self.actor.id, "error": str(e)},
            )


class SessionRegistry:
    """
    One BookingSession per actor id.

    Starting a session waits on the store and the feed, so locking is per actor: a slow
    start for one actor never holds up requests from another.
    """

    def __init__(
        self,
        store: BookingStorePort,
        engine: StatusTransitionEngine,
        subscriber: ChangeFeedSubscriber,
    ) -> None:
        self._store = store
        self._engine = engine
        self._subscriber = subscriber
        self._sessions: dict[str, BookingSession] = {}
        self._locks: dict[str, asyncio.Lock] = {}

    def get(self, actor_id: str) -> BookingSession | None:
        return self._sessions.get(actor_id)

    async def get_or_start(self, actor: Actor) -> BookingSession:
        async with self._lock_for(actor.id):
            session = self._sessions.get(actor.id)
            if session is not None and session.actor.role != actor.role:
                del self._sessions[actor.id]
                await session.close()
                session = None
            if session is None:
                session = BookingSession(actor, self._store, self._engine, self._subscriber)
                await session.start()
                self._sessions[actor.id] = session
            return session

    async def end(self, actor_id: str) -> bool:
        async with self._lock_for(actor_id):
            session = self._sessions.pop(actor_id, None)
            if session is None:
                return False
            await session.close()
        return True

    async def close_all(self) -> None:
        sessions = list(self._sessions.values())
        self._sessions.clear()
        for session in sessions:
            await session.close()

    def _lock_for(self, actor_id: str) -> asyncio.Lock:
        lock = self._locks.get(actor_id)
        if lock is None:
            lock = self._locks[actor_id] = asyncio.Lock()
        return lock
