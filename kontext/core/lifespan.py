"""Application lifespan: startup and shutdown.

Single place for all startup/shutdown logic (SRP). Used by main.py;
no business logic here, only wiring of infrastructure (backend HTTP client,
cache store, realtime subscriptions, WebSocket manager, telemetry) onto
app.state. startup()/shutdown() are public so tests can wire a fake backend
without running the ASGI lifespan.
"""

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

import httpx
from fastapi import FastAPI

from kontext.api.websocket import ConnectionManager
from kontext.application.services.cache_invalidator import CacheInvalidator
from kontext.application.services.response_cache import ResponseCache
from kontext.application.services.subscriptions import SubscriptionManager
from kontext.core.config import Settings, get_settings
from kontext.infrastructure.backend.client import BackendClient
from kontext.infrastructure.backend.realtime import RealtimeChannel, SSERealtimeChannel
from kontext.infrastructure.cache import CacheService, MemoryCache

logger = logging.getLogger(__name__)


async def startup(
    app: FastAPI,
    settings: Settings,
    *,
    http_client: httpx.AsyncClient | None = None,
    channel: RealtimeChannel | None = None,
) -> None:
    """Create shared services and put them on app.state.

    Args:
        app: The FastAPI application.
        settings: Loaded settings.
        http_client: Backend HTTP client; created (and later closed) when omitted.
        channel: Realtime channel; defaults to the backend's SSE channel.
    """
    # Shared HTTP client for every backend call (connection reuse).
    app.state.owns_http_client = http_client is None
    app.state.http_client = http_client or httpx.AsyncClient(timeout=settings.backend_timeout_seconds)
    backend = BackendClient(
        settings.backend_url,
        http_client=app.state.http_client,
        max_per_page=settings.backend_max_per_page,
    )
    app.state.backend = backend

    if settings.cache_backend == "redis":
        cache = CacheService()
        await cache.connect()
    else:
        cache = MemoryCache()
    app.state.cache = cache
    app.state.response_cache = ResponseCache(cache, settings.cache_key_prefix)
    app.state.cache_invalidator = CacheInvalidator(
        cache, settings.cache_key_prefix, generations=app.state.response_cache.generations
    )

    # Server-side subscriptions run anonymously: they see public records only.
    app.state.subscriptions = SubscriptionManager(
        channel or SSERealtimeChannel(backend),
        backend,
        seed=settings.realtime_seed_lists,
        unsubscribe_timeout=settings.realtime_unsubscribe_timeout_seconds,
    )
    app.state.ws_manager = ConnectionManager()

    if settings.telemetry_enabled:
        from kontext.shared.telemetry.telemetry import TelemetryConfig, set_telemetry

        telemetry = TelemetryConfig.from_settings(settings)
        if telemetry.setup() is not None:
            set_telemetry(telemetry)
            telemetry.instrument(app)
    logger.info("Backend: %s, cache: %s", settings.backend_url, settings.cache_backend)


async def shutdown(app: FastAPI) -> None:
    """Release everything startup() created, in reverse order."""
    subscriptions = getattr(app.state, "subscriptions", None)
    if subscriptions is not None:
        await subscriptions.close()
        logger.info("Realtime subscriptions closed")

    cache = getattr(app.state, "cache", None)
    if isinstance(cache, CacheService):
        await cache.disconnect()
        logger.info("Cache disconnected")

    http_client = getattr(app.state, "http_client", None)
    if http_client is not None and getattr(app.state, "owns_http_client", False):
        await http_client.aclose()
        logger.info("Backend HTTP client closed")
    app.state.http_client = None

    from kontext.shared.telemetry.telemetry import get_telemetry, set_telemetry

    telemetry_instance = get_telemetry()
    if telemetry_instance is not None:
        telemetry_instance.shutdown()
        set_telemetry(None)


@asynccontextmanager
async def create_lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Run startup then yield; on exit run shutdown."""
    await startup(app, get_settings())
    yield
    await shutdown(app)
