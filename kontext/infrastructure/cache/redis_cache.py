"""Redis-based response cache store.

Each handler namespace is one Redis hash: request shape -> JSON response.
Entries carry no TTL; they live until invalidated or the database is
flushed. Integrates with kontext.infrastructure.cache.keys for key format.
"""

from __future__ import annotations

import json
import logging
from typing import Any

import redis.asyncio as redis

from kontext.core.config import get_settings

logger = logging.getLogger(__name__)


class CacheService:
    """Async Redis cache store.

    Uses kontext.core.config for connection settings. Call connect() at
    startup and disconnect() at shutdown. When Redis is unreachable the
    store reports itself unavailable and every call is a miss.
    """

    def __init__(self, redis_client: redis.Redis | None = None) -> None:
        """Initialize cache service.

        Args:
            redis_client: Optional Redis client for testing or DI.
        """
        self.redis = redis_client
        self.settings = get_settings()
        self._connected = redis_client is not None

    async def connect(self) -> None:
        """Establish Redis connection. Call on app startup."""
        if self._connected:
            return
        try:
            self.redis = redis.Redis(
                host=self.settings.redis_host,
                port=self.settings.redis_port,
                db=self.settings.redis_db,
                password=self.settings.redis_password.get_secret_value() if self.settings.redis_password else None,
                decode_responses=True,
                socket_connect_timeout=5,
                socket_keepalive=True,
            )
            await self.redis.ping()
            self._connected = True
            logger.info(
                "Redis cache connected: %s:%s",
                self.settings.redis_host,
                self.settings.redis_port,
            )
        except (redis.ConnectionError, redis.TimeoutError) as e:
            logger.warning("Redis connection failed: %s. Cache disabled.", e)
            self._connected = False
            self.redis = None

    async def disconnect(self) -> None:
        """Close Redis connection. Call on app shutdown."""
        if self.redis:
            await self.redis.aclose()
            self.redis = None
            self._connected = False
            logger.info("Redis cache disconnected")

    def is_available(self) -> bool:
        """Return True if Redis is connected and usable."""
        return self._connected and self.redis is not None

    async def get_member(self, key: str, member: str) -> Any | None:
        """Return cached value (JSON-deserialized) or None if missing/unavailable."""
        if not self.is_available() or self.redis is None:
            return None
        try:
            value = await self.redis.hget(key, member)
        except redis.RedisError:
            logger.exception("Cache get error for key %s", key)
            return None
        if value is None:
            logger.debug("Cache MISS: %s[%s]", key, member)
            return None
        logger.debug("Cache HIT: %s[%s]", key, member)
        try:
            return json.loads(value)
        except ValueError:
            logger.warning("Dropping undecodable cache entry %s[%s]", key, member)
            return None

    async def set_member(self, key: str, member: str, value: Any) -> bool:
        """Store value (JSON-serializable) without TTL. Returns True on success."""
        if not self.is_available() or self.redis is None:
            return False
        try:
            await self.redis.hset(key, member, json.dumps(value))
        except redis.RedisError:
            logger.exception("Cache set error for key %s", key)
            return False
        logger.debug("Cache SET: %s[%s]", key, member)
        return True

    async def delete(self, key: str) -> bool:
        """Remove key. Returns True if a key was deleted."""
        if not self.is_available() or self.redis is None:
            return False
        try:
            removed = await self.redis.delete(key)
        except redis.RedisError:
            logger.exception("Cache delete error for key %s", key)
            return False
        return bool(removed)
