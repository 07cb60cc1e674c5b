from __future__ import annotations

import asyncio
import logging
from typing import Callable

from app.application.exceptions import FetchError
from app.application.ports.change_feed import ChangeFeedPort, ChannelHandle
from app.domain.entities.actor import ActorFilter
from app.domain.entities.events import ChangeEvent


ChangeCallback = Callable[[], object]


class SubscriptionHandle:
    """One logical subscription. Survives transport drops by reopening its channel."""

    def __init__(
        self,
        subscriber: "ChangeFeedSubscriber",
        actor_filter: ActorFilter,
        on_change: ChangeCallback,
    ) -> None:
        self._subscriber = subscriber
        self._actor_filter = actor_filter
        self._on_change = on_change
        self._channel: ChannelHandle | None = None
        self._connection_id = 0
        self._reconnect_task: asyncio.Task | None = None
        self._closed = False
        self._logger = logging.getLogger(__name__)

    @property
    def actor_filter(self) -> ActorFilter:
        return self._actor_filter

    @property
    def is_active(self) -> bool:
        return not self._closed

    @property
    def is_connected(self) -> bool:
        return self._channel is not None and self._channel.is_open

    async def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        self._cancel_reconnect()
        channel, self._channel = self._channel, None
        if channel is not None:
            await channel.close()
        self._subscriber._forget(self)
        self._logger.info("Change feed subscription closed", extra={"actor_filter": str(self._actor_filter)})

    async def _connect(self) -> None:
        self._connection_id += 1
        connection_id = self._connection_id
        self._channel = await self._subscriber._feed.open_channel(
            self._actor_filter,
            on_event=self._handle_event,
            on_disconnect=lambda error: self._handle_disconnect(connection_id, error),
        )

    async def resume(self) -> None:
        if self._closed or self.is_connected:
            return
        self._cancel_reconnect()
        try:
            await self._connect()
        except FetchError as e:
            self._logger.warning(
                "Resubscribe on resume failed",
                extra={"actor_filter": str(self._actor_filter), "error": str(e)},
            )
            self._schedule_reconnect()
            return
        self._notify()

    def _handle_event(self, event: ChangeEvent) -> None:
        if self._closed:
            return
        self._logger.debug(
            "Booking change received",
            extra={"actor_filter": str(self._actor_filter), "booking_id": event.record_id, "reason": event.kind},
        )
        self._notify()

    def _handle_disconnect(self, connection_id: int, error: Exception | None) -> None:
        if self._closed or connection_id != self._connection_id:
            return
        self._channel = None
        self._logger.warning(
            "Change feed disconnected; serving last known snapshot until reconnect",
            extra={"actor_filter": str(self._actor_filter), "error": str(error) if error else None},
        )
        self._schedule_reconnect()

    def _schedule_reconnect(self) -> None:
        if self._closed or (self._reconnect_task is not None and not self._reconnect_task.done()):
            return
        self._reconnect_task = asyncio.ensure_future(self._reconnect_loop())

    async def _reconnect_loop(self) -> None:
        delay = self._subscriber.reconnect_initial_delay
        while not self._closed:
            await asyncio.sleep(delay)
            if self._closed or self.is_connected:
                return
            try:
                await self._connect()
            except FetchError as e:
                self._logger.warning(
                    "Change feed reconnect failed",
                    extra={"actor_filter": str(self._actor_filter), "error": str(e), "reason": f"retry_in={delay}"},
                )
                delay = min(delay * 2, self._subscriber.reconnect_max_delay)
                continue
            self._logger.info("Change feed reconnected", extra={"actor_filter": str(self._actor_filter)})
            # Anything that changed while disconnected was never delivered.
            self._notify()
            return

    def _cancel_reconnect(self) -> None:
        if self._reconnect_task is not None and not self._reconnect_task.done():
            self._reconnect_task.cancel()
        self._reconnect_task = None

    def _notify(self) -> None:
        try:
            self._on_change()
        except Exception as e:
            self._logger.exception(
                "Change callback failed", extra={"actor_filter": str(self._actor_filter), "error": str(e)}
            )


class ChangeFeedSubscriber:
    """
    Keeps at most one live subscription per actor filter and turns every change event,
    whatever its kind, into a call of the subscriber's `on_change`.
    """

    def __init__(
        self,
        feed: ChangeFeedPort,
        reconnect_initial_delay: float = 1.0,
        reconnect_max_delay: float = 30.0,
    ) -> None:
        self._feed = feed
        self.reconnect_initial_delay = reconnect_initial_delay
        self.reconnect_max_delay = reconnect_max_delay
        self._subscriptions: dict[ActorFilter, SubscriptionHandle] = {}
        self._logger = logging.getLogger(__name__)

    def active_filters(self) -> list[ActorFilter]:
        return list(self._subscriptions)

    def get(self, actor_filter: ActorFilter) -> SubscriptionHandle | None:
        return self._subscriptions.get(actor_filter)

    async def subscribe(self, actor_filter: ActorFilter, on_change: ChangeCallback) -> SubscriptionHandle:
        """
        Open the subscription for `actor_filter`, replacing any active one for the same filter.

        Raises FetchError if the initial channel cannot be opened.
        """
        existing = self._subscriptions.get(actor_filter)
        if existing is not None:
            self._logger.info("Replacing existing subscription", extra={"actor_filter": str(actor_filter)})
            await existing.close()

        handle = SubscriptionHandle(self, actor_filter, on_change)
        await handle._connect()
        self._subscriptions[actor_filter] = handle
        self._logger.info("Change feed subscription opened", extra={"actor_filter": str(actor_filter)})
        return handle

    async def resume(self) -> None:
        """Foreground hook: reopen every dropped subscription with its original filter."""
        for handle in list(self._subscriptions.values()):
            await handle.resume()

    async def close_all(self) -> None:
        for handle in list(self._subscriptions.values()):
            await handle.close()

    def _forget(self, handle: SubscriptionHandle) -> None:
        if self._subscriptions.get(handle.actor_filter) is handle:
            del self._subscriptions[handle.actor_filter]
