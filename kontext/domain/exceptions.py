"""Domain exceptions for the kontext sync and proxy layer.

Defines the error kinds the layer distinguishes (transport, backend,
not-found, query validation) plus the normalized
ProxyError envelope handed back to HTTP callers. Presentation layer maps
them to HTTP responses in exception handlers.
"""

from typing import Any


class KontextException(Exception):
    """Base exception for all kontext errors.

    Attributes:
        message: Human-readable error description.
        error_code: Machine-readable error code.
        details: Additional error context (e.g. status, backend payload).
    """

    def __init__(
        self,
        message: str,
        error_code: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize the exception.

        Args:
            message: Human-readable error description.
            error_code: Optional machine-readable code; defaults to class name.
            details: Optional dict of extra context.
        """
        self.message = message
        self.error_code = error_code or self.__class__.__name__
        self.details = details or {}
        super().__init__(self.message)

    def to_dict(self) -> dict[str, Any]:
        """Serialize for a JSON error response."""
        return {
            "error": self.error_code,
            "message": self.message,
            "details": self.details,
        }


class ProxyError(KontextException):
    """Normalized error envelope re-signalled to proxy callers.

    Carries the backend's original status so UI layers can branch on it.
    """

    def __init__(
        self,
        status_code: int,
        status_message: str,
        data: Any = None,
    ) -> None:
        """Initialize with status, message and optional structured payload.

        Args:
            status_code: HTTP status to return (the backend's, when there was one).
            status_message: Human-readable reason.
            data: Structured error payload from the backend, if any.
        """
        self.status_code = status_code
        self.status_message = status_message
        self.data = data
        super().__init__(status_message, "PROXY_ERROR", {"status_code": status_code})

    def to_dict(self) -> dict[str, Any]:
        """Return the `{statusCode, statusMessage, data}` envelope."""
        return {
            "statusCode": self.status_code,
            "statusMessage": self.status_message,
            "data": self.data,
        }


class TransportError(KontextException):
    """Raised when the backend cannot be reached (connect, read, timeout)."""

    def __init__(self, message: str = "Backend unreachable", url: str | None = None) -> None:
        details = {"url": url} if url else {}
        super().__init__(message, "TRANSPORT_ERROR", details)

    def to_proxy_error(self) -> ProxyError:
        """Map to a 502 envelope; the backend URL is not exposed."""
        return ProxyError(502, self.message)


class BackendError(KontextException):
    """Raised when the backend answers with a non-2xx status."""

    def __init__(
        self,
        status_code: int,
        message: str,
        data: Any = None,
        error_code: str = "BACKEND_ERROR",
    ) -> None:
        """Initialize with the backend's status, message and error payload.

        Args:
            status_code: Backend HTTP status.
            message: Backend message (or a generic one when absent).
            data: Structured payload from the backend (e.g. field errors).
            error_code: Machine-readable code for subclasses.
        """
        self.status_code = status_code
        self.data = data
        super().__init__(message, error_code, {"status_code": status_code})

    def to_proxy_error(self) -> ProxyError:
        """Map to the normalized envelope, preserving the original status."""
        return ProxyError(self.status_code, self.message, self.data)


class NotFoundError(BackendError):
    """Raised when no record matches (backend 404 or an empty first-item query)."""

    def __init__(self, message: str = "The requested resource wasn't found.", data: Any = None) -> None:
        super().__init__(404, message, data, "RESOURCE_NOT_FOUND")


class QueryValidationError(BackendError):
    """Raised when the backend rejects a filter/sort expression or a payload (400)."""

    def __init__(self, message: str, data: Any = None) -> None:
        super().__init__(400, message, data, "VALIDATION_ERROR")


def backend_error_from_response(status_code: int, payload: Any) -> BackendError:
    """Build the most specific BackendError for a backend error payload.

    PocketBase answers errors as `{"code", "message", "data"}`; anything else
    is kept whole in `data`.

    Args:
        status_code: Backend HTTP status (non-2xx).
        payload: Decoded JSON body, raw text, or None.

    Returns:
        NotFoundError for 404, QueryValidationError for 400, BackendError otherwise.
    """
    message = "Backend request failed"
    data: Any = payload
    if isinstance(payload, dict):
        message = str(payload.get("message") or message)
        data = payload.get("data", payload)
    if status_code == 404:
        return NotFoundError(message, data)
    if status_code == 400:
        return QueryValidationError(message, data)
    return BackendError(status_code, message, data)
