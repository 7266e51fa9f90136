"""Forward client calls to the record backend.

The caller's credentials pass through untouched; the proxy never adds its
own. Backend failures are inspected and re-signalled exactly once as a
ProxyError carrying the backend's status, message and data. After a write
the backend confirmed, cached handler responses built from the written
collection are dropped.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence
from typing import Any

from kontext.application.dtos.proxy import ProxiedResponse
from kontext.application.services.cache_invalidator import CacheInvalidator, namespaces_for_collection
from kontext.core.constants import BACKEND_API_PREFIX, PROXYABLE_ROOTS
from kontext.domain.exceptions import ProxyError, TransportError, backend_error_from_response
from kontext.infrastructure.backend.client import BackendClient, decode_body
from kontext.infrastructure.backend.encoding import QueryItems, quote_segment
from kontext.shared.telemetry.tracing import add_span_attributes, traced

logger = logging.getLogger(__name__)

_BODYLESS_METHODS = frozenset({"GET", "HEAD"})

# Request headers taken from the caller; everything else (cookies, host,
# forwarding headers) stays on this side.
_FORWARDED_REQUEST_HEADERS = ("authorization", "content-type", "accept", "accept-language")

# Response headers handed back; server, via and location-style headers would
# reveal the backend's origin.
_FORWARDED_RESPONSE_HEADERS = ("content-type", "content-disposition", "cache-control", "etag", "last-modified")


def split_backend_path(path: str) -> list[str]:
    """Validate and split a proxied path into segments.

    Args:
        path: Path below the backend's /api/, e.g. "collections/posts/records".

    Returns:
        Non-empty list of path segments.

    Raises:
        ProxyError: 400 for empty paths or dot segments, 404 for roots the
            proxy does not expose.
    """
    segments = [s for s in path.strip("/").split("/") if s]
    if not segments:
        raise ProxyError(400, "Empty backend path")
    if any(s in ("..", ".") for s in segments):
        raise ProxyError(400, "Invalid backend path", {"path": path})
    if segments[0] not in PROXYABLE_ROOTS:
        raise ProxyError(404, "Not Found", {"path": path})
    return segments


def written_collection(method: str, segments: Sequence[str]) -> str | None:
    """Collection name when method/path is a record write, else None."""
    if method.upper() in _BODYLESS_METHODS:
        return None
    if len(segments) >= 3 and segments[0] == "collections" and segments[2] == "records":
        return segments[1]
    return None


def _pick(headers: Mapping[str, str] | None, names: Sequence[str]) -> dict[str, str]:
    lowered = {k.lower(): v for k, v in (headers or {}).items()}
    return {name: lowered[name] for name in names if lowered.get(name)}


class RequestProxy:
    """Forward CRUD and query calls; invalidate caches after confirmed writes."""

    def __init__(
        self,
        backend: BackendClient,
        invalidator: CacheInvalidator | None = None,
        namespace_aliases: Mapping[str, Sequence[str]] | None = None,
    ) -> None:
        self._backend = backend
        self._invalidator = invalidator
        self._aliases = dict(namespace_aliases or {})

    @traced("proxy.forward")
    async def forward(
        self,
        method: str,
        path: str,
        query: Mapping[str, Any] | QueryItems | None = None,
        headers: Mapping[str, str] | None = None,
        body: bytes | None = None,
    ) -> ProxiedResponse:
        """Forward one call to `{backend}/api/{path}`.

        Args:
            method: HTTP method.
            path: Backend path below /api/.
            query: Query parameters; repeated keys are preserved.
            headers: Caller's request headers (only a safe subset is sent).
            body: Raw request body; ignored for GET/HEAD.

        Returns:
            ProxiedResponse for a 2xx backend answer.

        Raises:
            ProxyError: For rejected paths, backend non-2xx (same status) and
                transport failures (502).
        """
        method = method.upper()
        segments = split_backend_path(path)
        backend_path = BACKEND_API_PREFIX + "/" + "/".join(quote_segment(s) for s in segments)
        add_span_attributes(**{"proxy.method": method, "proxy.root": segments[0]})

        send_headers = _pick(headers, _FORWARDED_REQUEST_HEADERS)
        content = None
        if method in _BODYLESS_METHODS:
            send_headers.pop("content-type", None)
        else:
            content = body or b""

        try:
            resp = await self._backend.send_raw(
                method, backend_path, params=query, headers=send_headers, content=content
            )
        except TransportError as e:
            raise e.to_proxy_error() from e

        if not resp.is_success:
            error = backend_error_from_response(resp.status_code, decode_body(resp))
            logger.info("Proxied %s %s -> %s", method, backend_path, resp.status_code)
            raise error.to_proxy_error()

        collection = written_collection(method, segments)
        if collection is not None and self._invalidator is not None:
            await self._invalidator.invalidate_many(namespaces_for_collection(collection, self._aliases))

        return ProxiedResponse(
            status_code=resp.status_code,
            content=resp.content,
            headers=_pick(resp.headers, _FORWARDED_RESPONSE_HEADERS),
        )
