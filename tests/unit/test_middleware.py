"""Raw ASGI middleware: request timeout envelope and file-stream exemption."""

import asyncio

from httpx import ASGITransport, AsyncClient

from kontext.middleware import TimeoutMiddleware


async def slow_app(scope, receive, send) -> None:
    await asyncio.sleep(0.3)
    await send({"type": "http.response.start", "status": 200, "headers": [(b"content-type", b"text/plain")]})
    await send({"type": "http.response.body", "body": b"done", "more_body": False})


def _client(timeout: float) -> AsyncClient:
    app = TimeoutMiddleware(slow_app, timeout_seconds=timeout)
    return AsyncClient(transport=ASGITransport(app=app), base_url="http://test")


async def test_slow_request_gets_504_envelope() -> None:
    async with _client(0.05) as client:
        response = await client.get("/api/v1/collections/posts")
    assert response.status_code == 504
    assert response.json()["statusCode"] == 504


async def test_file_streams_are_exempt() -> None:
    async with _client(0.05) as client:
        response = await client.get("/api/v1/files/posts/r1/big.mp4")
    assert response.status_code == 200
    assert response.text == "done"


async def test_fast_request_passes_through() -> None:
    async with _client(5) as client:
        response = await client.get("/api/v1/health")
    assert response.text == "done"
