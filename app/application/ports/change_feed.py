from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Callable

from app.domain.entities.actor import ActorFilter
from app.domain.entities.events import ChangeEvent


EventCallback = Callable[[ChangeEvent], None]
DisconnectCallback = Callable[[Exception | None], None]


class ChannelHandle(ABC):
    @property
    @abstractmethod
    def is_open(self) -> bool:
        raise NotImplementedError

    @abstractmethod
    async def close(self) -> None:
        raise NotImplementedError


class ChangeFeedPort(ABC):
    @abstractmethod
    async def open_channel(
        self,
        actor_filter: ActorFilter,
        on_event: EventCallback,
        on_disconnect: DisconnectCallback,
    ) -> ChannelHandle:
        """
        Open a push channel for booking rows matching `actor_filter`.

        Delivery is at-least-once and may duplicate or reorder events.
        `on_disconnect` is called once when the transport drops; the handle is closed afterwards.
        Raises FetchError if the channel cannot be opened.
        """
        raise NotImplementedError
