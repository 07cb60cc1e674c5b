from __future__ import annotations

import asyncio

from app.application.exceptions import FetchError
from app.application.ports.change_feed import ChangeFeedPort, ChannelHandle, DisconnectCallback, EventCallback
from app.domain.entities.actor import ActorFilter
from app.domain.entities.booking import Booking
from app.domain.entities.events import ChangeEvent


class MemoryChannel(ChannelHandle):
    def __init__(
        self,
        feed: "MemoryChangeFeed",
        actor_filter: ActorFilter,
        on_event: EventCallback,
        on_disconnect: DisconnectCallback,
    ) -> None:
        self._feed = feed
        self.actor_filter = actor_filter
        self._on_event = on_event
        self._on_disconnect = on_disconnect
        self._open = True

    @property
    def is_open(self) -> bool:
        return self._open

    async def close(self) -> None:
        self._open = False
        self._feed._channels.discard(self)

    def deliver(self, event: ChangeEvent) -> None:
        if self._open:
            self._on_event(event)

    def drop(self, error: Exception | None) -> None:
        if not self._open:
            return
        self._open = False
        self._feed._channels.discard(self)
        self._on_disconnect(error)


class MemoryChangeFeed(ChangeFeedPort):
    """
    In-process push channel. Events are delivered on the next loop iteration, never inline
    with the write that produced them. `disconnect_all` and `available` simulate transport loss.
    """

    def __init__(self) -> None:
        self._channels: set[MemoryChannel] = set()
        self.available = True

    @property
    def open_channel_count(self) -> int:
        return len(self._channels)

    async def open_channel(
        self,
        actor_filter: ActorFilter,
        on_event: EventCallback,
        on_disconnect: DisconnectCallback,
    ) -> ChannelHandle:
        await asyncio.sleep(0)
        if not self.available:
            raise FetchError("Change feed unavailable")
        channel = MemoryChannel(self, actor_filter, on_event, on_disconnect)
        self._channels.add(channel)
        return channel

    def publish(self, event: ChangeEvent, booking: Booking) -> None:
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            return
        for channel in list(self._channels):
            if channel.actor_filter.matches(booking):
                loop.call_soon(channel.deliver, event)

    def disconnect_all(self, error: Exception | None = None) -> None:
        for channel in list(self._channels):
            channel.drop(error or ConnectionError("transport closed"))
