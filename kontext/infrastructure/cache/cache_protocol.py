"""Cache protocol shared by the Redis and in-memory stores."""

from typing import Any, Protocol


class CacheProtocol(Protocol):
    """Protocol for the response cache store.

    An entry is a hash: key -> {member -> JSON value}. Implementations
    never raise for a missing key or an unavailable backend.
    """

    def is_available(self) -> bool:
        """Return True if the store is connected and usable."""
        ...

    async def get_member(self, key: str, member: str) -> Any:
        """Return the cached value for member of key, or None."""
        ...

    async def set_member(self, key: str, member: str, value: Any) -> bool:
        """Store value under member of key (no TTL). Returns True if stored."""
        ...

    async def delete(self, key: str) -> bool:
        """Remove key with all its members. Returns True if something was removed."""
        ...
