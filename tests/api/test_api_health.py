"""Smoke tests for health, readiness and app wiring."""

from httpx import AsyncClient


async def test_health_returns_ok(client: AsyncClient) -> None:
    """GET /api/v1/health returns 200 and status ok."""
    response = await client.get("/api/v1/health")
    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


async def test_ready_checks_backend(client: AsyncClient, fake_backend) -> None:
    """GET /api/v1/health/ready pings the backend health endpoint."""
    response = await client.get("/api/v1/health/ready")
    assert response.status_code == 200
    assert response.json() == {"status": "ok", "backend": "ok", "cache": "ok"}
    assert fake_backend.requests[-1].url.path == "/api/health"


async def test_request_id_is_echoed_and_forwarded(client: AsyncClient, fake_backend) -> None:
    """A valid X-Request-ID comes back on the response and reaches the backend."""
    response = await client.get("/api/v1/health/ready", headers={"X-Request-ID": "req-123"})
    assert response.headers["x-request-id"] == "req-123"
    assert fake_backend.requests[-1].headers["x-request-id"] == "req-123"


async def test_unsafe_request_id_is_replaced(client: AsyncClient) -> None:
    response = await client.get("/api/v1/health", headers={"X-Request-ID": "bad id!"})
    assert response.headers["x-request-id"] != "bad id!"
    assert len(response.headers["x-request-id"]) == 36
