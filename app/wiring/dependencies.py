from functools import lru_cache
import logging

from app.core.config import settings
from app.application.ports.booking_store import BookingStorePort
from app.application.ports.change_feed import ChangeFeedPort
from app.application.ports.property_catalog import PropertyCatalogPort
from app.application.use_cases.booking_session import SessionRegistry
from app.application.use_cases.booking_transitions import StatusTransitionEngine
from app.application.use_cases.change_feed_subscriber import ChangeFeedSubscriber
from app.infrastructure.notifications.in_app_dispatcher import InAppNotificationDispatcher
from app.infrastructure.realtime.memory_feed import MemoryChangeFeed
from app.infrastructure.realtime.polling_feed import PollingChangeFeed
from app.infrastructure.store.memory_store import DEMO_PROPERTIES, MemoryBookingStore, MemoryPropertyCatalog
from app.infrastructure.supabase.booking_store import SupabaseBookingStore
from app.infrastructure.supabase.postgrest_client import PostgrestClient
from app.infrastructure.supabase.property_catalog import SupabasePropertyCatalog


_session_registry: SessionRegistry | None = None


def use_supabase() -> bool:
    if settings.STORE_PROVIDER.lower() != "supabase":
        return False
    if not (settings.SUPABASE_URL and settings.SUPABASE_API_KEY):
        if settings.ENV.lower() in {"dev", "local"}:
            logging.getLogger(__name__).info("Supabase credentials missing, using in-memory store (ENV=dev/local)")
            return False
        raise ValueError("SUPABASE_URL and SUPABASE_API_KEY are required when STORE_PROVIDER=supabase.")
    return True


@lru_cache
def get_postgrest_client() -> PostgrestClient:
    return PostgrestClient(
        base_url=settings.SUPABASE_URL or "",
        api_key=settings.SUPABASE_API_KEY or "",
        timeout=settings.HTTP_TIMEOUT_SECONDS,
    )


@lru_cache
def get_memory_feed() -> MemoryChangeFeed:
    return MemoryChangeFeed()


@lru_cache
def get_change_feed() -> ChangeFeedPort:
    if use_supabase():
        return PollingChangeFeed(
            client=get_postgrest_client(),
            table=settings.SUPABASE_BOOKINGS_TABLE,
            interval=settings.FEED_POLL_INTERVAL_SECONDS,
        )
    return get_memory_feed()


@lru_cache
def get_booking_store() -> BookingStorePort:
    if use_supabase():
        return SupabaseBookingStore(client=get_postgrest_client(), table=settings.SUPABASE_BOOKINGS_TABLE)
    return MemoryBookingStore(feed=get_memory_feed())


@lru_cache
def get_property_catalog() -> PropertyCatalogPort:
    if use_supabase():
        return SupabasePropertyCatalog(client=get_postgrest_client(), table=settings.SUPABASE_PROPERTIES_TABLE)
    return MemoryPropertyCatalog(DEMO_PROPERTIES if settings.SEED_DEMO_PROPERTIES else None)


@lru_cache
def get_notification_dispatcher() -> InAppNotificationDispatcher:
    return InAppNotificationDispatcher(limit=settings.NOTIFICATION_INBOX_LIMIT)


def get_transition_engine() -> StatusTransitionEngine:
    return StatusTransitionEngine(
        store=get_booking_store(),
        properties=get_property_catalog(),
        dispatcher=get_notification_dispatcher(),
    )


def get_change_feed_subscriber() -> ChangeFeedSubscriber:
    return ChangeFeedSubscriber(
        feed=get_change_feed(),
        reconnect_initial_delay=settings.FEED_RECONNECT_INITIAL_DELAY_SECONDS,
        reconnect_max_delay=settings.FEED_RECONNECT_MAX_DELAY_SECONDS,
    )


def get_session_registry() -> SessionRegistry:
    global _session_registry
    if _session_registry is None:
        _session_registry = SessionRegistry(
            store=get_booking_store(),
            engine=get_transition_engine(),
            subscriber=get_change_feed_subscriber(),
        )
    return _session_registry


async def close_clients() -> None:
    """Close the shared PostgREST client if one was created."""
    if get_postgrest_client.cache_info().currsize:
        await get_postgrest_client().aclose()
        get_postgrest_client.cache_clear()
