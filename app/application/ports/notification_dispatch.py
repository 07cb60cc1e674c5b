from abc import ABC, abstractmethod

from app.domain.entities.events import NotificationIntent


class NotificationDispatchPort(ABC):
    @abstractmethod
    async def enqueue(self, intent: NotificationIntent) -> None:
        raise NotImplementedError
