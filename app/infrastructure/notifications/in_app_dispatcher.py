from __future__ import annotations

import logging
import uuid
from dataclasses import replace
from datetime import datetime, timezone
from typing import Callable

from app.application.ports.notification_dispatch import NotificationDispatchPort
from app.application.views.notification_message import describe_transition
from app.domain.entities.events import Notification, NotificationIntent


class InAppNotificationDispatcher(NotificationDispatchPort):
    """
    Keeps each user's in-app notification inbox, newest first and capped at `limit`.

    The email channel only logs the intent; rendering and sending mail belong to another service.
    """

    def __init__(self, limit: int = 50, clock: Callable[[], datetime] | None = None) -> None:
        self._inboxes: dict[str, list[Notification]] = {}
        self._limit = limit
        self._clock = clock or (lambda: datetime.now(timezone.utc))
        self._logger = logging.getLogger(__name__)

    async def enqueue(self, intent: NotificationIntent) -> None:
        view = describe_transition(intent.event)
        if "email" in intent.channels:
            self._logger.info(
                "Email notification queued",
                extra={"booking_id": intent.booking_id, "actor_id": intent.recipient_id, "reason": view.kind},
            )
        if "in_app" not in intent.channels:
            return

        notification = Notification(
            id=str(uuid.uuid4()),
            user_id=intent.recipient_id,
            type="booking",
            title=view.title,
            message=view.message,
            created_at=self._clock(),
            data={"booking_id": view.booking_id, "kind": view.kind},
        )
        inbox = self._inboxes.setdefault(intent.recipient_id, [])
        inbox.insert(0, notification)
        del inbox[self._limit :]

    def list_for(self, user_id: str) -> list[Notification]:
        return list(self._inboxes.get(user_id, []))

    def unread_count(self, user_id: str) -> int:
        return sum(1 for n in self._inboxes.get(user_id, []) if not n.read)

    def mark_read(self, user_id: str, notification_id: str) -> bool:
        inbox = self._inboxes.get(user_id, [])
        for i, notification in enumerate(inbox):
            if notification.id == notification_id:
                inbox[i] = replace(notification, read=True)
                return True
        return False

    def mark_all_read(self, user_id: str) -> int:
        inbox = self._inboxes.get(user_id, [])
        changed = 0
        for i, notification in enumerate(inbox):
            if not notification.read:
                inbox[i] = replace(notification, read=True)
                changed += 1
        return changed

    def delete(self, user_id: str, notification_id: str) -> bool:
        inbox = self._inboxes.get(user_id, [])
        for i, notification in enumerate(inbox):
            if notification.id == notification_id:
                del inbox[i]
                return True
        return False
