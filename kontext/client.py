"""Client context: one backend connection, session and subscription set.

Everything a consumer needs is reached through an explicit KontextClient
instead of module-level instances, so two contexts (e.g. two users in one
process, or tests) never share state.

Usage:
    async with KontextClient(get_settings()) as kontext:
        await kontext.session.login("me@example.com", "secret")
        async with kontext.subscriptions.watch("Portfolio_Projects") as sub:
            sub.mirror.observe(on_change)
"""

from __future__ import annotations

import logging
from typing import Any

import httpx

from kontext.application.services.auth_session import AuthSession
from kontext.application.services.file_proxy import file_url
from kontext.application.services.subscriptions import SubscriptionManager
from kontext.core.config import Settings
from kontext.domain.collections import CollectionRegistry, default_registry
from kontext.domain.entities.record import Record
from kontext.infrastructure.backend.client import BackendClient, RecordService
from kontext.infrastructure.backend.realtime import RealtimeChannel, SSERealtimeChannel

logger = logging.getLogger(__name__)


class KontextClient:
    """Per-context owner of the backend client, auth session and subscriptions."""

    def __init__(
        self,
        settings: Settings,
        http_client: httpx.AsyncClient | None = None,
        *,
        channel: RealtimeChannel | None = None,
        registry: CollectionRegistry | None = None,
    ) -> None:
        """Wire the context.

        Args:
            settings: Loaded settings (backend URL, paging, realtime options).
            http_client: Optional shared httpx client; not closed by aclose().
            channel: Optional realtime channel; defaults to the SSE channel.
            registry: Collection schema registry; defaults to the site's collections.
        """
        self.settings = settings
        self.backend = BackendClient(
            settings.backend_url,
            http_client=http_client,
            timeout=settings.backend_timeout_seconds,
            token_provider=lambda: self.session.token,
            max_per_page=settings.backend_max_per_page,
        )
        self.session = AuthSession(self.backend, settings.auth_collection)
        self.registry = registry or default_registry()
        self.subscriptions = SubscriptionManager(
            channel or SSERealtimeChannel(self.backend),
            self.backend,
            seed=settings.realtime_seed_lists,
            unsubscribe_timeout=settings.realtime_unsubscribe_timeout_seconds,
        )

    def collection(self, name: str) -> RecordService:
        return self.backend.collection(name)

    def file_url(self, record: Record | dict[str, Any] | None, filename: str | None, thumb: str | None = None) -> str:
        """Direct backend URL of a record's file."""
        return file_url(record, filename, thumb, base=f"{self.settings.backend_url}/api/files")

    async def aclose(self) -> None:
        await self.subscriptions.close()
        await self.backend.aclose()

    async def __aenter__(self) -> KontextClient:
        return self

    async def __aexit__(self, *exc: object) -> None:
        await self.aclose()
