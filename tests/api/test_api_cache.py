"""Tests for cache invalidation."""

from httpx import AsyncClient


async def test_invalidate_drops_namespace(app, client: AsyncClient) -> None:
    """POST /api/v1/cache/invalidate/{ns} removes the entry and reports success."""
    await app.state.cache.set_member("kontext:handlers:portfolio", "{}", {"items": []})
    await app.state.cache.set_member("kontext:handlers:homepage", "first", {"id": "h1"})
    response = await client.post("/api/v1/cache/invalidate/portfolio")
    assert response.status_code == 200
    assert response.json()["success"] is True
    assert app.state.cache.keys() == ["kontext:handlers:homepage"]


async def test_invalidate_missing_namespace_still_succeeds(client: AsyncClient) -> None:
    response = await client.post("/api/v1/cache/invalidate/never-cached")
    assert response.status_code == 200
    assert response.json()["success"] is True


async def test_namespace_is_sanitized(app, client: AsyncClient) -> None:
    """Punctuation is stripped, so a crafted name cannot reach other keys."""
    await app.state.cache.set_member("kontext:handlers:portfolio", "{}", {"items": []})
    response = await client.post("/api/v1/cache/invalidate/port_fo-lio")
    assert response.status_code == 200
    assert app.state.cache.keys() == []
