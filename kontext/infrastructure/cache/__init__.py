"""Cache: Redis and in-memory response stores and cache key utilities.

CacheService (Redis) is used in deployments; MemoryCache for a single
process and tests. Key format is in keys.py (DRY).
"""

from kontext.infrastructure.cache.cache_protocol import CacheProtocol
from kontext.infrastructure.cache.keys import escape_key, handler_key
from kontext.infrastructure.cache.memory_cache import MemoryCache
from kontext.infrastructure.cache.redis_cache import CacheService

__all__ = [
    "CacheProtocol",
    "CacheService",
    "MemoryCache",
    "escape_key",
    "handler_key",
]
