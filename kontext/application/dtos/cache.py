"""DTOs for cache invalidation."""

from dataclasses import dataclass


@dataclass(frozen=True)
class InvalidationResult:
    """Result of dropping one handler namespace.

    success is True whether or not the key existed; removed tells which.
    """

    success: bool
    key: str
    removed: bool = False
