"""Pytest configuration and fixtures for kontext.

HTTP tests run the app through ASGITransport with a fake record backend
(httpx.MockTransport) and an in-memory cache. Nothing here needs a running
backend or Redis.
"""

import asyncio
import json
import os
import re
import time
from collections.abc import Callable
from typing import Any

import httpx
import pytest
from httpx import ASGITransport, AsyncClient
from jose import jwt

# Settings are read on first get_settings(); set test env before importing the app.
os.environ["CACHE_BACKEND"] = "memory"
os.environ["BACKEND_URL"] = "http://backend.test"
os.environ["TELEMETRY_ENABLED"] = "false"

from kontext.core.config import get_settings  # noqa: E402

get_settings.cache_clear()

from kontext.core.lifespan import shutdown, startup  # noqa: E402
from kontext.core.limiter import limiter  # noqa: E402
from kontext.infrastructure.backend.client import BackendClient  # noqa: E402
from kontext.main import create_app  # noqa: E402

BACKEND_URL = "http://backend.test"
TOKEN_SECRET = "test-signing-secret"

_RECORDS_RE = re.compile(r"^/api/collections/([^/]+)/records(?:/([^/]+))?$")
_AUTH_RE = re.compile(r"^/api/collections/([^/]+)/(auth-with-password|auth-refresh|request-password-reset)$")
_FILES_RE = re.compile(r"^/api/files/([^/]+)/([^/]+)/([^/]+)$")


def make_token(expires_in: float = 3600, **claims: Any) -> str:
    """Backend-style JWT with an exp claim expires_in seconds from now."""
    return jwt.encode({"exp": int(time.time() + expires_in), **claims}, TOKEN_SECRET, algorithm="HS256")


def _error(status: int, message: str, data: Any = None) -> httpx.Response:
    return httpx.Response(status, json={"code": status, "message": message, "data": data or {}})


class FakeBackend:
    """In-memory stand-in for the record backend's REST API.

    Records keep insertion order (the backend's default order). Every request
    is kept in `requests` for assertions.
    """

    def __init__(self) -> None:
        self.collections: dict[str, dict[str, dict[str, Any]]] = {}
        self.files: dict[tuple[str, str, str], tuple[bytes, str]] = {}
        self.requests: list[httpx.Request] = []
        self.users: dict[str, tuple[str, dict[str, Any]]] = {}
        self.valid_tokens: set[str] = set()
        self.write_status: int | None = None
        self.on_list: Callable[[str], None] | None = None
        self.per_page_cap: int | None = None
        self._next_id = 0

    def add(self, collection: str, **fields: Any) -> dict[str, Any]:
        self._next_id += 1
        record_id = fields.pop("id", None) or f"rec{self._next_id:04d}"
        record = {
            "id": record_id,
            "collectionId": f"col_{collection}",
            "collectionName": collection,
            "created": "2024-01-01 00:00:00.000Z",
            "updated": "2024-01-01 00:00:00.000Z",
            **fields,
        }
        self.collections.setdefault(collection, {})[record_id] = record
        return record

    def add_user(self, email: str, password: str) -> dict[str, Any]:
        record = self.add("users", email=email, name=email.split("@")[0], verified=True)
        self.users[email] = (password, record)
        return record

    def issue_token(self, **claims: Any) -> str:
        token = make_token(**claims)
        self.valid_tokens.add(token)
        return token

    def requests_to(self, path_prefix: str) -> list[httpx.Request]:
        return [r for r in self.requests if r.url.path.startswith(path_prefix)]

    async def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = request.url.path
        if path == "/api/health":
            return httpx.Response(200, json={"code": 200, "message": "API is healthy.", "data": {}})
        match = _AUTH_RE.match(path)
        if match:
            return self._auth(request, match.group(2))
        match = _FILES_RE.match(path)
        if match:
            entry = self.files.get(match.groups())
            if entry is None:
                return _error(404, "The requested resource wasn't found.")
            content, content_type = entry
            return httpx.Response(200, content=content, headers={"Content-Type": content_type})
        match = _RECORDS_RE.match(path)
        if match:
            return self._records(request, match.group(1), match.group(2))
        return _error(404, "The requested resource wasn't found.")

    def _records(self, request: httpx.Request, collection: str, record_id: str | None) -> httpx.Response:
        records = self.collections.get(collection, {})
        if request.method == "GET" and record_id is None:
            if self.on_list is not None:
                self.on_list(collection)
            params = request.url.params
            page = int(params.get("page", 1))
            per_page = int(params.get("perPage", 30))
            if self.per_page_cap is not None:
                per_page = min(per_page, self.per_page_cap)
            if "!!" in params.get("filter", ""):
                return _error(400, "Something went wrong while processing your request.", {"filter": "invalid"})
            items = list(records.values())
            chunk = items[(page - 1) * per_page : page * per_page]
            skip_total = params.get("skipTotal") == "1"
            return httpx.Response(
                200,
                json={
                    "page": page,
                    "perPage": per_page,
                    "totalItems": -1 if skip_total else len(items),
                    "totalPages": -1 if skip_total else (len(items) + per_page - 1) // per_page,
                    "items": chunk,
                },
            )
        if request.method == "GET":
            record = records.get(record_id or "")
            return httpx.Response(200, json=record) if record else _error(404, "The requested resource wasn't found.")

        if self.write_status is not None:
            return _error(self.write_status, "Failed to write record.", {"title": {"code": "validation_required"}})
        body = json.loads(request.content) if request.content else {}
        if request.method == "POST":
            return httpx.Response(200, json=self.add(collection, **body))
        if record_id not in records:
            return _error(404, "The requested resource wasn't found.")
        if request.method == "DELETE":
            del records[record_id]
            return httpx.Response(204)
        records[record_id] = {**records[record_id], **body}
        return httpx.Response(200, json=records[record_id])

    def _auth(self, request: httpx.Request, action: str) -> httpx.Response:
        body = json.loads(request.content) if request.content else {}
        if action == "auth-with-password":
            entry = self.users.get(body.get("identity", ""))
            if entry is None or entry[0] != body.get("password"):
                return _error(400, "Failed to authenticate.")
            return httpx.Response(200, json={"token": self.issue_token(id=entry[1]["id"]), "record": entry[1]})
        if action == "auth-refresh":
            token = request.headers.get("authorization", "")
            if token not in self.valid_tokens:
                return _error(401, "The request requires valid record authorization token.")
            record = next(iter(self.users.values()))[1]
            return httpx.Response(200, json={"token": self.issue_token(id=record["id"]), "record": record})
        return httpx.Response(204)


class FakeChannel:
    """RealtimeChannel double: records control calls and lets tests emit frames."""

    def __init__(self) -> None:
        self.listeners: dict[str, tuple[Callable, Callable]] = {}
        self.subscribe_calls: list[str] = []
        self.unsubscribe_calls: list[str] = []
        self.subscribe_error: Exception | None = None
        self.unsubscribe_error: Exception | None = None
        self.unsubscribe_delay = 0.0
        self.closed = False

    async def subscribe(self, topic: str, listener: Callable, on_error: Callable) -> None:
        self.subscribe_calls.append(topic)
        if self.subscribe_error is not None:
            raise self.subscribe_error
        self.listeners[topic] = (listener, on_error)

    async def unsubscribe(self, topic: str) -> None:
        self.unsubscribe_calls.append(topic)
        if self.unsubscribe_delay:
            await asyncio.sleep(self.unsubscribe_delay)
        if self.unsubscribe_error is not None:
            raise self.unsubscribe_error
        self.listeners.pop(topic, None)

    async def aclose(self) -> None:
        self.closed = True
        self.listeners.clear()

    def emit(self, topic: str, action: str, record: dict[str, Any]) -> None:
        self.listeners[topic][0]({"action": action, "record": record})

    def fail(self, error: Exception) -> None:
        listeners, self.listeners = list(self.listeners.values()), {}
        for _, on_error in listeners:
            on_error(error)


@pytest.fixture
def fake_backend() -> FakeBackend:
    return FakeBackend()


@pytest.fixture
def channel() -> FakeChannel:
    return FakeChannel()


@pytest.fixture
def token_factory() -> Callable[..., str]:
    return make_token


@pytest.fixture
async def backend_http(fake_backend: FakeBackend) -> httpx.AsyncClient:
    """httpx client whose transport is the fake backend."""
    async with httpx.AsyncClient(transport=httpx.MockTransport(fake_backend.handler)) as http:
        yield http


@pytest.fixture
async def backend(backend_http: httpx.AsyncClient) -> BackendClient:
    """Anonymous BackendClient over the fake backend."""
    client = BackendClient(BACKEND_URL, http_client=backend_http)
    yield client
    await client.aclose()


@pytest.fixture
async def app(backend_http: httpx.AsyncClient, channel: FakeChannel):
    """Application wired to the fake backend, memory cache and fake channel."""
    limiter.reset()
    application = create_app()
    await startup(application, get_settings(), http_client=backend_http, channel=channel)
    yield application
    await shutdown(application)


@pytest.fixture
async def client(app) -> AsyncClient:
    """Async HTTP client against the FastAPI app (ASGI)."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
