from __future__ import annotations

import asyncio

from app.application.exceptions import FetchError
from app.application.ports.change_feed import ChangeFeedPort, ChannelHandle, DisconnectCallback, EventCallback
from app.domain.entities.actor import ActorFilter
from app.domain.entities.events import ChangeEvent
from app.infrastructure.supabase.postgrest_client import PostgrestClient


RowVersions = dict[str, str | None]


def diff_versions(table: str, previous: RowVersions, current: RowVersions) -> list[ChangeEvent]:
    """Turn two (id -> updated_at) maps into insert/update/delete events."""
    events: list[ChangeEvent] = []
    for record_id, version in current.items():
        if record_id not in previous:
            events.append(ChangeEvent(kind="insert", table=table, record_id=record_id))
        elif previous[record_id] != version:
            events.append(ChangeEvent(kind="update", table=table, record_id=record_id))
    for record_id in previous:
        if record_id not in current:
            events.append(ChangeEvent(kind="delete", table=table, record_id=record_id))
    return events


class PollingChannel(ChannelHandle):
    def __init__(
        self,
        feed: "PollingChangeFeed",
        actor_filter: ActorFilter,
        baseline: RowVersions,
        on_event: EventCallback,
        on_disconnect: DisconnectCallback,
    ) -> None:
        self._feed = feed
        self._actor_filter = actor_filter
        self._versions = baseline
        self._on_event = on_event
        self._on_disconnect = on_disconnect
        self._open = True
        self._task = asyncio.ensure_future(self._run())

    @property
    def is_open(self) -> bool:
        return self._open

    async def close(self) -> None:
        self._open = False
        if self._task is asyncio.current_task() or self._task.done():
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass

    async def _run(self) -> None:
        while self._open:
            await asyncio.sleep(self._feed.interval)
            try:
                current = await self._feed.fetch_versions(self._actor_filter)
            except Exception as e:
                # Any failed poll ends the channel; the subscriber reopens it.
                self._open = False
                self._on_disconnect(e)
                return
            events = diff_versions(self._feed.table, self._versions, current)
            self._versions = current
            for event in events:
                if not self._open:
                    return
                self._on_event(event)


class PollingChangeFeed(ChangeFeedPort):
    """
    Change feed built on periodic REST reads of (id, updated_at) for the actor's rows.

    Any failed poll is reported as a disconnect; the subscriber decides when to reopen.
    """

    def __init__(self, client: PostgrestClient, table: str = "bookings", interval: float = 5.0) -> None:
        self._client = client
        self.table = table
        self.interval = interval

    async def open_channel(
        self,
        actor_filter: ActorFilter,
        on_event: EventCallback,
        on_disconnect: DisconnectCallback,
    ) -> ChannelHandle:
        baseline = await self.fetch_versions(actor_filter)
        return PollingChannel(self, actor_filter, baseline, on_event, on_disconnect)

    async def fetch_versions(self, actor_filter: ActorFilter) -> RowVersions:
        rows = await self._client.select(
            self.table,
            {"select": "id,updated_at", actor_filter.column: actor_filter.to_postgrest()},
        )
        try:
            return {str(row["id"]): row.get("updated_at") for row in rows}
        except (KeyError, TypeError, AttributeError) as e:
            raise FetchError(f"Unexpected row shape from {self.table}: {e!r}") from e
