"""Read-through cache for named content handlers.

One store entry per namespace (see keys.handler_key); inside it, one member
per request shape, so a single delete drops every cached variant.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Awaitable, Callable, Mapping, Sequence
from typing import Any

from kontext.infrastructure.cache.cache_protocol import CacheProtocol
from kontext.infrastructure.cache.keys import handler_key

logger = logging.getLogger(__name__)


def request_shape(params: Mapping[str, Any]) -> str:
    """Stable member name for a request's parameters (None values ignored)."""
    cleaned = {k: v for k, v in params.items() if v is not None}
    return json.dumps(cleaned, sort_keys=True, separators=(",", ":"), default=str)


class CacheGenerations:
    """Per-key invalidation counters shared by ResponseCache and CacheInvalidator."""

    def __init__(self) -> None:
        self._counts: dict[str, int] = {}

    def current(self, key: str) -> int:
        return self._counts.get(key, 0)

    def bump(self, key: str) -> None:
        self._counts[key] = self.current(key) + 1


class ResponseCache:
    """Caches JSON-serializable handler results until invalidated.

    A value whose computation overlapped an invalidation of its entry is
    returned to the caller but not stored, so a pre-write read never
    outlives the write.
    """

    def __init__(self, cache: CacheProtocol, prefix: str, generations: CacheGenerations | None = None) -> None:
        self._cache = cache
        self._prefix = prefix
        self.generations = generations if generations is not None else CacheGenerations()

    async def get_or_compute(
        self,
        namespace: str | Sequence[str],
        shape: str,
        compute: Callable[[], Awaitable[Any]],
    ) -> Any:
        """Return the cached value for (namespace, shape), computing it on a miss.

        Errors from compute propagate and nothing is stored. A None result is
        not cached so an empty collection is re-read next time.
        """
        key = handler_key(self._prefix, namespace)
        cached = await self._cache.get_member(key, shape)
        if cached is not None:
            return cached
        generation = self.generations.current(key)
        value = await compute()
        if value is None:
            return value
        if self.generations.current(key) != generation:
            # Invalidated while computing: return the value but do not store it.
            logger.debug("Entry %s invalidated during compute; not storing", key)
            return value
        await self._cache.set_member(key, shape, value)
        return value
