"""DTOs for proxied backend responses."""

from collections.abc import AsyncIterator, Awaitable, Callable
from dataclasses import dataclass, field


@dataclass(frozen=True)
class ProxiedResponse:
    """A successful backend answer reduced to what the caller may see."""

    status_code: int
    content: bytes
    headers: dict[str, str] = field(default_factory=dict)

    @property
    def media_type(self) -> str | None:
        return self.headers.get("content-type")


@dataclass
class FileStream:
    """An open streamed file body; the consumer must call aclose()."""

    status_code: int
    content_type: str
    content_length: int | None
    headers: dict[str, str]
    body: AsyncIterator[bytes]
    aclose: Callable[[], Awaitable[None]]
