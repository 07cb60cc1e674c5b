"""
Tests for the booking cache: wholesale replacement, stale-write rejection and refresh collapsing.
"""

from __future__ import annotations

import asyncio
import logging
from datetime import date

import pytest

from app.application.exceptions import FetchError
from app.application.use_cases.booking_cache import BookingCache
from app.domain.entities.actor import ActorFilter
from app.domain.entities.booking import BookingRequest, BookingStatus
from fakes import BrokenQueryStore, FlakyBookingStore, GatedBookingStore


async def _seed(engine, client_actor, count=2):
    bookings = []
    for day in range(1, count + 1):
        bookings.append(
            await engine.create(client_actor, BookingRequest(property_id="P1", visit_date=date(2025, 3, day), visit_time="10:00"))
        )
    return bookings


async def test_get_before_load_is_empty_and_stale(store, client_actor):
    cache = BookingCache(store, client_actor.booking_filter())

    snapshot = cache.get()

    assert snapshot.bookings == ()
    assert snapshot.is_stale
    assert not snapshot.is_loaded


async def test_load_matches_store_rows_exactly(engine, store, client_actor, agent_actor):
    await _seed(engine, client_actor, count=3)
    await engine.confirm(agent_actor, store.rows()[0].id)
    cache = BookingCache(store, client_actor.booking_filter())

    snapshot = await cache.load()

    assert list(snapshot.bookings) == await store.query(client_actor.booking_filter())
    assert snapshot.generation == 1
    assert not snapshot.is_stale


async def test_load_only_includes_actor_rows(engine, store, client_actor, other_client, agent_actor):
    await _seed(engine, client_actor, count=1)
    await engine.create(other_client, BookingRequest(property_id="P3", visit_date=date(2025, 3, 2), visit_time="09:00"))

    client_view = await BookingCache(store, client_actor.booking_filter()).load()
    agent_view = await BookingCache(store, agent_actor.booking_filter()).load()

    assert {b.client_id for b in client_view.bookings} == {"client-1"}
    assert len(agent_view.bookings) == 1
    assert agent_view.bookings[0].agent_id == "agent-1"


async def test_fetch_error_preserves_previous_snapshot(engine, store, client_actor):
    await _seed(engine, client_actor)
    flaky = FlakyBookingStore(store)
    cache = BookingCache(flaky, client_actor.booking_filter())
    loaded = await cache.load()

    flaky.failing = True
    with pytest.raises(FetchError):
        await cache.load()

    assert cache.get().bookings == loaded.bookings
    assert cache.get().generation == loaded.generation


async def test_slow_older_load_does_not_overwrite_newer(engine, store, client_actor):
    await _seed(engine, client_actor, count=1)
    gated = GatedBookingStore(store)
    cache = BookingCache(gated, client_actor.booking_filter())

    older = asyncio.ensure_future(cache.load())
    newer = asyncio.ensure_future(cache.load())
    while len(gated.gates) < 2:
        await asyncio.sleep(0)

    gated.release(1)
    await newer
    assert cache.get().generation == 2

    gated.release(0, outcome=[])
    await older
    assert cache.get().generation == 2
    assert len(cache.get().bookings) == 1


async def test_cancelled_load_applies_nothing(engine, store, client_actor):
    await _seed(engine, client_actor, count=1)
    gated = GatedBookingStore(store)
    cache = BookingCache(gated, client_actor.booking_filter())

    task = asyncio.ensure_future(cache.load())
    while not gated.gates:
        await asyncio.sleep(0)
    task.cancel()
    with pytest.raises(asyncio.CancelledError):
        await task

    assert not cache.get().is_loaded


async def test_overlapping_invalidations_collapse(engine, store, client_actor):
    await _seed(engine, client_actor, count=1)
    gated = GatedBookingStore(store)
    cache = BookingCache(gated, client_actor.booking_filter())

    first = asyncio.ensure_future(cache.invalidate())
    while not gated.gates:
        await asyncio.sleep(0)
    # these arrive while the first fetch is in flight
    others = [asyncio.ensure_future(cache.invalidate()) for _ in range(5)]
    cache.schedule_invalidate()
    await asyncio.sleep(0)

    gated.release(0)
    while len(gated.gates) < 2:
        await asyncio.sleep(0)
    gated.release(1)

    results = await asyncio.gather(first, *others)
    assert gated.query_calls == 2
    assert all(r.generation == 2 for r in results)


async def test_invalidate_reflects_latest_store_state(engine, store, client_actor, agent_actor):
    bookings = await _seed(engine, client_actor, count=2)
    cache = BookingCache(store, client_actor.booking_filter())
    await cache.load()

    await engine.confirm(agent_actor, bookings[0].id)
    assert cache.get().find(bookings[0].id).status == BookingStatus.PENDING

    snapshot = await cache.invalidate()

    assert snapshot.find(bookings[0].id) == await store.get(bookings[0].id)
    assert list(snapshot.bookings) == await store.query(client_actor.booking_filter())


async def test_user_invalidate_raises_but_keeps_stale_data(engine, store, client_actor):
    await _seed(engine, client_actor)
    flaky = FlakyBookingStore(store)
    cache = BookingCache(flaky, client_actor.booking_filter())
    await cache.load()

    flaky.failing = True
    with pytest.raises(FetchError):
        await cache.invalidate()

    assert len(cache.get().bookings) == 2
    assert cache.get().is_stale


async def test_passive_invalidate_swallows_fetch_error(engine, store, client_actor):
    await _seed(engine, client_actor)
    flaky = FlakyBookingStore(store)
    cache = BookingCache(flaky, client_actor.booking_filter())
    await cache.load()

    flaky.failing = True
    task = cache.schedule_invalidate()
    await asyncio.wait([task])

    assert isinstance(task.exception(), FetchError)
    assert len(cache.get().bookings) == 2


async def test_passive_invalidate_logs_unexpected_errors(engine, store, client_actor, caplog):
    await _seed(engine, client_actor)
    broken = BrokenQueryStore(store, ValueError("bad row"))
    cache = BookingCache(broken, client_actor.booking_filter())
    await cache.load()
    caplog.set_level(logging.ERROR, logger="app.application.use_cases.booking_cache")

    broken.broken = True
    task = cache.schedule_invalidate()
    await asyncio.wait([task])
    await asyncio.sleep(0)

    errors = [r for r in caplog.records if r.getMessage() == "Booking refresh failed unexpectedly"]
    assert len(errors) == 1
    assert errors[0].levelno == logging.ERROR
    assert isinstance(errors[0].exc_info[1], ValueError)
    assert len(cache.get().bookings) == 2


async def test_passive_fetch_error_is_not_logged_twice(engine, store, client_actor, caplog):
    await _seed(engine, client_actor)
    flaky = FlakyBookingStore(store)
    cache = BookingCache(flaky, client_actor.booking_filter())
    await cache.load()
    caplog.set_level(logging.ERROR, logger="app.application.use_cases.booking_cache")

    flaky.failing = True
    await asyncio.wait([cache.schedule_invalidate()])
    await asyncio.sleep(0)

    assert not [r for r in caplog.records if r.getMessage() == "Booking refresh failed unexpectedly"]


async def test_abandoned_invalidate_still_refreshes(engine, store, client_actor):
    await _seed(engine, client_actor, count=1)
    gated = GatedBookingStore(store)
    cache = BookingCache(gated, client_actor.booking_filter())

    waiter = asyncio.ensure_future(cache.invalidate())
    while not gated.gates:
        await asyncio.sleep(0)
    waiter.cancel()
    await asyncio.sleep(0)

    gated.release(0)
    while cache.is_refreshing:
        await asyncio.sleep(0)
    assert cache.get().is_loaded
    assert len(cache.get().bookings) == 1


async def test_listeners_receive_each_applied_snapshot(engine, store, client_actor):
    await _seed(engine, client_actor, count=1)
    cache = BookingCache(store, client_actor.booking_filter())
    seen = []
    remove = cache.add_listener(seen.append)

    await cache.load()
    await cache.invalidate()
    remove()
    await cache.invalidate()

    assert [s.generation for s in seen] == [1, 2]


async def test_load_with_new_filter_rebinds(engine, store, client_actor, agent_actor):
    await _seed(engine, client_actor, count=1)
    cache = BookingCache(store, ActorFilter(column="client_id", value="nobody"))
    assert (await cache.load()).bookings == ()

    snapshot = await cache.load(agent_actor.booking_filter())

    assert cache.actor_filter == agent_actor.booking_filter()
    assert len(snapshot.bookings) == 1


async def test_snapshot_is_immutable_view(engine, store, client_actor):
    await _seed(engine, client_actor, count=1)
    cache = BookingCache(store, client_actor.booking_filter())
    snapshot = await cache.load()

    with pytest.raises(Exception):
        snapshot.bookings[0].status = BookingStatus.CANCELLED  # type: ignore[misc]
    assert isinstance(snapshot.bookings, tuple)
    assert snapshot.for_property("P1") == snapshot.bookings
