"""Span helpers for backend-facing operations.

Every call that reaches the record backend (reads, proxied writes, file
streams, realtime control requests) runs inside a span named after the
operation. Only shape arguments (collection, paging, mode) become span
attributes; filters, bodies and tokens never leave the process this way.
"""

from collections.abc import Awaitable, Callable
from functools import wraps
from typing import Any, TypeVar

from opentelemetry import trace
from opentelemetry.trace import Status, StatusCode

from kontext.domain.exceptions import BackendError, ProxyError

R = TypeVar("R")

_tracer = trace.get_tracer("kontext")

# Keyword arguments recorded as `kontext.<name>` span attributes.
_RECORDED_KWARGS = frozenset(
    {"page", "per_page", "batch", "sort", "expand", "fields", "skip_total", "record_id", "mode", "thumb"}
)


def _status_code_of(error: Exception) -> int | None:
    if isinstance(error, ProxyError | BackendError):
        return error.status_code
    return None


def set_span_error(span: trace.Span, error: Exception) -> None:
    """Mark span failed; backend statuses are kept as `http.status_code`."""
    status_code = _status_code_of(error)
    if status_code is not None:
        span.set_attribute("http.status_code", status_code)
    span.set_status(Status(StatusCode.ERROR, str(error)))
    span.record_exception(error)


def traced(operation: str) -> Callable[[Callable[..., Awaitable[R]]], Callable[..., Awaitable[R]]]:
    """Run a coroutine function inside a span called operation.

    Usage:
        @traced("backend.get_list")
        async def get_list(self, page=1, per_page=30): ...
    """

    def decorator(func: Callable[..., Awaitable[R]]) -> Callable[..., Awaitable[R]]:
        @wraps(func)
        async def wrapper(*args: Any, **kwargs: Any) -> R:
            with _tracer.start_as_current_span(operation, record_exception=False, set_status_on_exception=False) as span:
                collection = getattr(args[0], "collection", None) if args else None
                if isinstance(collection, str):
                    span.set_attribute("kontext.collection", collection)
                for key, value in kwargs.items():
                    if value is not None and key in _RECORDED_KWARGS:
                        span.set_attribute(f"kontext.{key}", str(value))
                try:
                    return await func(*args, **kwargs)
                except Exception as e:
                    set_span_error(span, e)
                    raise

        return wrapper

    return decorator


def add_span_attributes(**attributes: str | int | float | bool) -> None:
    """Add attributes to the current span, if one is recording."""
    span = trace.get_current_span()
    if span.is_recording():
        for key, value in attributes.items():
            span.set_attribute(key, value)
