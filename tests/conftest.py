from __future__ import annotations

from datetime import date, datetime, timedelta, timezone

import pytest

from app.application.use_cases.booking_transitions import StatusTransitionEngine
from app.domain.entities.actor import Actor, ActorRole
from app.domain.entities.booking import BookingRequest
from app.domain.entities.property import PropertySnapshot
from app.infrastructure.notifications.in_app_dispatcher import InAppNotificationDispatcher
from app.infrastructure.realtime.memory_feed import MemoryChangeFeed
from app.infrastructure.store.memory_store import MemoryBookingStore, MemoryPropertyCatalog


class TickingClock:
    """Returns a strictly increasing UTC timestamp on every call."""

    def __init__(self, start: datetime | None = None) -> None:
        self._now = start or datetime(2025, 2, 20, 9, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        self._now += timedelta(seconds=1)
        return self._now


@pytest.fixture
def clock() -> TickingClock:
    return TickingClock()


@pytest.fixture
def feed() -> MemoryChangeFeed:
    return MemoryChangeFeed()


@pytest.fixture
def store(feed, clock) -> MemoryBookingStore:
    return MemoryBookingStore(feed=feed, clock=clock)


@pytest.fixture
def catalog() -> MemoryPropertyCatalog:
    return MemoryPropertyCatalog(
        [
            PropertySnapshot(id="P1", title="Luxury Penthouse", agent_id="agent-1", image="p1.jpg", agent_name="Skyline Realty"),
            PropertySnapshot(id="P2", title="Modern Villa", agent_id="agent-1", image="p2.jpg", agent_name="Skyline Realty"),
            PropertySnapshot(id="P3", title="Garden Cottage", agent_id="agent-2", image="p3.jpg"),
        ]
    )


@pytest.fixture
def dispatcher(clock) -> InAppNotificationDispatcher:
    return InAppNotificationDispatcher(limit=50, clock=clock)


@pytest.fixture
def engine(store, catalog, dispatcher, clock) -> StatusTransitionEngine:
    return StatusTransitionEngine(store=store, properties=catalog, dispatcher=dispatcher, clock=clock)


@pytest.fixture
def client_actor() -> Actor:
    return Actor(id="client-1", role=ActorRole.CLIENT, name="Tariro Moyo", email="tariro@example.com", phone="+263771000000")


@pytest.fixture
def other_client() -> Actor:
    return Actor(id="client-2", role=ActorRole.CLIENT, name="Farai Ncube")


@pytest.fixture
def agent_actor() -> Actor:
    return Actor(id="agent-1", role=ActorRole.AGENT, name="Skyline Realty")


@pytest.fixture
def other_agent() -> Actor:
    return Actor(id="agent-2", role=ActorRole.AGENT)


@pytest.fixture
def p1_request() -> BookingRequest:
    return BookingRequest(property_id="P1", visit_date=date(2025, 3, 1), visit_time="10:00", notes="Ground floor parking?")
