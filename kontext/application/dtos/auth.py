"""DTOs for the auth session (no dependency on HTTP types)."""

from dataclasses import dataclass

from kontext.domain.entities.record import Record


@dataclass(frozen=True)
class AuthResult:
    """Outcome of a session operation. On failure, error carries the message."""

    success: bool
    user: Record | None = None
    token: str | None = None
    error: str | None = None
