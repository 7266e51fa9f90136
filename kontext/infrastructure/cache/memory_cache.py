"""In-process response cache store.

Same contract as CacheService, kept in a dict. Suitable for a single worker
and for tests; values are stored JSON-encoded so callers get copies.
"""

from __future__ import annotations

import json
import logging
from typing import Any

logger = logging.getLogger(__name__)


class MemoryCache:
    """Dict-backed cache store: key -> {member -> JSON string}."""

    def __init__(self) -> None:
        self._entries: dict[str, dict[str, str]] = {}

    def is_available(self) -> bool:
        return True

    async def get_member(self, key: str, member: str) -> Any | None:
        raw = self._entries.get(key, {}).get(member)
        return json.loads(raw) if raw is not None else None

    async def set_member(self, key: str, member: str, value: Any) -> bool:
        self._entries.setdefault(key, {})[member] = json.dumps(value)
        return True

    async def delete(self, key: str) -> bool:
        return self._entries.pop(key, None) is not None

    def keys(self) -> list[str]:
        return list(self._entries)
