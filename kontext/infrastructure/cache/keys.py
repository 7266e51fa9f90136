"""Cache key builders. Single place for key format (DRY).

Namespaces are sanitized before use so a caller-supplied route or handler
name can never collide with, or reach into, another key of the store.
"""

import re
from collections.abc import Sequence

from kontext.core.constants import CACHE_KEY_SEP

_NON_ALNUM = re.compile(r"[^A-Za-z0-9]")


def escape_key(key: str | Sequence[str]) -> str:
    """Strip every character that is not an ASCII letter or digit.

    Idempotent: escaping an escaped key returns it unchanged.
    Sequences are joined first, so ["a-b", "c"] and "abc" map to the same key.

    Args:
        key: Namespace, route identifier or list of parts.

    Returns:
        Sanitized key (may be empty).
    """
    if not isinstance(key, str):
        key = "".join(str(part) for part in key)
    return _NON_ALNUM.sub("", key)


def handler_key(prefix: str, namespace: str | Sequence[str]) -> str:
    """Cache key for a named handler's response entry.

    Example: handler_key("kontext:handlers", "portfolio") -> "kontext:handlers:portfolio".
    """
    return f"{prefix}{CACHE_KEY_SEP}{escape_key(namespace)}"
