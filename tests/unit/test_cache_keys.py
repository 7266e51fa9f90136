"""Cache key sanitization."""

import pytest

from kontext.infrastructure.cache.keys import escape_key, handler_key


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        ("portfolio:abc-123", "portfolioabc123"),
        ("Portfolio_Projects", "PortfolioProjects"),
        ("../../etc/passwd", "etcpasswd"),
        ("ünïcode key!", "ncodekey"),
        ("", ""),
    ],
)
def test_escape_key_strips_non_alphanumerics(raw: str, expected: str) -> None:
    assert escape_key(raw) == expected


def test_escape_key_is_idempotent() -> None:
    once = escape_key("a:b/c?d=e")
    assert escape_key(once) == once


def test_escape_key_joins_sequences() -> None:
    assert escape_key(["home", "page-1"]) == "homepage1"


def test_handler_key_prefixes_sanitized_namespace() -> None:
    assert handler_key("kontext:handlers", "port:folio") == "kontext:handlers:portfolio"
