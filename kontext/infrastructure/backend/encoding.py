"""Encode query parameters and realtime topics for the record backend.

Filter expressions use `= != > < ~ && || ( )`. Values are percent-encoded
only where the query string syntax requires it, so every grammar character
reaches the backend unchanged after decoding.
"""

import json
from collections.abc import Iterable, Mapping
from typing import Any
from urllib.parse import quote

# Grammar characters that need no escaping inside a query value.
_SAFE_VALUE_CHARS = "!()*'~-_.,"

QueryItems = Iterable[tuple[str, Any]]


def _encode_scalar(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def _iter_items(params: Mapping[str, Any] | QueryItems) -> Iterable[tuple[str, Any]]:
    items = params.items() if isinstance(params, Mapping) else params
    for key, value in items:
        if value is None:
            continue
        if isinstance(value, (list, tuple)):
            for v in value:
                if v is not None:
                    yield key, v
        else:
            yield key, value


def serialize_query(params: Mapping[str, Any] | QueryItems) -> str:
    """Serialize parameters to a query string (without leading `?`).

    None values are dropped, sequences repeat the key, booleans become
    `true`/`false`. Order of the input is kept; the backend does not
    depend on it.

    Args:
        params: Mapping or iterable of (key, value) pairs.

    Returns:
        Encoded query string.
    """
    return "&".join(
        f"{quote(str(k), safe=_SAFE_VALUE_CHARS)}={quote(_encode_scalar(v), safe=_SAFE_VALUE_CHARS)}"
        for k, v in _iter_items(params)
    )


def build_url(base_url: str, path: str, params: Mapping[str, Any] | QueryItems | None = None) -> str:
    """Join base URL, path and serialized query."""
    url = f"{base_url.rstrip('/')}/{path.lstrip('/')}"
    query = serialize_query(params) if params else ""
    return f"{url}?{query}" if query else url


def quote_segment(segment: str) -> str:
    """Percent-encode a single path segment (slashes included)."""
    return quote(segment, safe="")


def list_params(
    page: int | None = None,
    per_page: int | None = None,
    *,
    sort: str | None = None,
    filter: str | None = None,
    expand: str | None = None,
    fields: str | None = None,
    skip_total: bool = False,
) -> dict[str, Any]:
    """Build the backend's list query parameters (camelCase names)."""
    params: dict[str, Any] = {
        "page": page,
        "perPage": per_page,
        "sort": sort or None,
        "filter": filter or None,
        "expand": expand or None,
        "fields": fields or None,
    }
    if skip_total:
        params["skipTotal"] = 1
    return {k: v for k, v in params.items() if v is not None}


def realtime_topic(collection: str, target: str, filter: str | None = None) -> str:
    """Topic string for a realtime subscription.

    `{collection}/{target}` with an optional `?options=` suffix carrying the
    filter as JSON. The backend names delivered events after this exact string.
    """
    topic = f"{collection}/{target}"
    if filter:
        options = json.dumps({"query": {"filter": filter}}, separators=(",", ":"))
        topic += "?options=" + quote(options, safe="")
    return topic
