"""Request context management using contextvars.

Provides async-safe storage for request-scoped data. The request ID set by
RequestIDMiddleware is read by the log filter and forwarded to the backend.

Usage:
    token = set_request_id("abc123")
    request_id = get_request_id()
    reset_request_id(token)
"""

from contextvars import ContextVar, Token

_current_request_id: ContextVar[str | None] = ContextVar("current_request_id", default=None)


def set_request_id(request_id: str | None) -> Token:
    """Set the request ID for the current task; returns a token for reset."""
    return _current_request_id.set(request_id)


def reset_request_id(token: Token) -> None:
    """Restore the request ID that was current before set_request_id()."""
    _current_request_id.reset(token)


def get_request_id() -> str | None:
    """Return the current request ID, or None outside a request."""
    return _current_request_id.get()
