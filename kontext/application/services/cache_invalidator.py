"""Drop cached handler responses when authoritative data changes."""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping, Sequence

from kontext.application.dtos.cache import InvalidationResult
from kontext.application.services.response_cache import CacheGenerations
from kontext.infrastructure.cache.cache_protocol import CacheProtocol
from kontext.infrastructure.cache.keys import handler_key
from kontext.shared.telemetry.tracing import traced

logger = logging.getLogger(__name__)


def namespaces_for_collection(
    collection: str, aliases: Mapping[str, Sequence[str]] | None = None
) -> list[str]:
    """Cache namespaces that hold data read from collection.

    The collection's own name (used by the generic collection reader) comes
    first, then any configured handler aliases, without duplicates.
    """
    names = [collection, *(aliases or {}).get(collection, ())]
    return list(dict.fromkeys(names))


class CacheInvalidator:
    """Removes handler entries from the shared cache store.

    Missing keys and an unavailable store are not errors: the next read
    recomputes either way, so invalidate() always reports success.
    """

    def __init__(self, cache: CacheProtocol, prefix: str, generations: CacheGenerations | None = None) -> None:
        self._cache = cache
        self._prefix = prefix
        self._generations = generations

    def key_for(self, namespace: str | Sequence[str]) -> str:
        return handler_key(self._prefix, namespace)

    @traced("cache.invalidate")
    async def invalidate(self, namespace: str | Sequence[str]) -> InvalidationResult:
        """Remove the entry for namespace (sanitized before use).

        Args:
            namespace: Handler name or route identifier, e.g. "portfolio".

        Returns:
            InvalidationResult with the key that was targeted.
        """
        key = self.key_for(namespace)
        if self._generations is not None:
            self._generations.bump(key)
        removed = await self._cache.delete(key)
        logger.info("Cache invalidated: %s (removed=%s)", key, removed)
        return InvalidationResult(success=True, key=key, removed=removed)

    async def invalidate_many(self, namespaces: Iterable[str]) -> list[InvalidationResult]:
        return [await self.invalidate(ns) for ns in namespaces]
