"""RequestProxy forwarding, error normalization and write invalidation."""

import httpx
import pytest

from kontext.application.services.cache_invalidator import CacheInvalidator
from kontext.application.services.request_proxy import RequestProxy, split_backend_path, written_collection
from kontext.domain.exceptions import ProxyError
from kontext.infrastructure.backend.client import BackendClient
from kontext.infrastructure.cache.memory_cache import MemoryCache

PREFIX = "kontext:handlers"
ALIASES = {"Portfolio_Projects": ["portfolio"]}


@pytest.fixture
def cache() -> MemoryCache:
    return MemoryCache()


@pytest.fixture
def proxy(backend, cache) -> RequestProxy:
    return RequestProxy(backend, CacheInvalidator(cache, PREFIX), ALIASES)


async def _prime(cache: MemoryCache) -> None:
    await cache.set_member(f"{PREFIX}:portfolio", "{}", ["cached"])
    await cache.set_member(f"{PREFIX}:PortfolioProjects", "{}", ["cached"])


async def test_forwards_authorization_verbatim_and_query(proxy, fake_backend) -> None:
    await proxy.forward(
        "GET",
        "collections/posts/records",
        query=[("filter", 'a != "x" && (b ~ "y")'), ("expand", "author")],
        headers={"Authorization": "Bearer abc", "Cookie": "session=1", "Host": "site"},
    )
    sent = fake_backend.requests[-1]
    assert sent.headers["authorization"] == "Bearer abc"
    assert "cookie" not in sent.headers
    assert sent.url.params["filter"] == 'a != "x" && (b ~ "y")'
    assert sent.url.params["expand"] == "author"


async def test_no_credentials_injected(proxy, fake_backend) -> None:
    await proxy.forward("GET", "collections/posts/records")
    assert "authorization" not in fake_backend.requests[-1].headers


async def test_write_forwards_body_and_content_type(proxy, fake_backend) -> None:
    resp = await proxy.forward(
        "POST",
        "collections/posts/records",
        headers={"Content-Type": "application/json"},
        body=b'{"Title": "x"}',
    )
    sent = fake_backend.requests[-1]
    assert sent.content == b'{"Title": "x"}'
    assert sent.headers["content-type"] == "application/json"
    assert resp.status_code == 200
    assert resp.media_type == "application/json"


async def test_confirmed_write_invalidates_collection_namespaces(proxy, cache) -> None:
    await _prime(cache)
    await proxy.forward("POST", "collections/Portfolio_Projects/records", body=b"{}")
    assert cache.keys() == []


async def test_failed_write_does_not_invalidate(proxy, cache, fake_backend) -> None:
    await _prime(cache)
    fake_backend.write_status = 400
    with pytest.raises(ProxyError) as exc_info:
        await proxy.forward("POST", "collections/Portfolio_Projects/records", body=b"{}")
    assert exc_info.value.status_code == 400
    assert exc_info.value.status_message == "Failed to write record."
    assert exc_info.value.data == {"title": {"code": "validation_required"}}
    assert sorted(cache.keys()) == [f"{PREFIX}:PortfolioProjects", f"{PREFIX}:portfolio"]


async def test_reads_never_invalidate(proxy, cache) -> None:
    await _prime(cache)
    await proxy.forward("GET", "collections/Portfolio_Projects/records")
    assert len(cache.keys()) == 2


async def test_backend_404_keeps_status(proxy) -> None:
    with pytest.raises(ProxyError) as exc_info:
        await proxy.forward("GET", "collections/posts/records/missing")
    assert exc_info.value.status_code == 404


async def test_transport_failure_becomes_502(cache) -> None:
    def unreachable(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("refused", request=request)

    async with httpx.AsyncClient(transport=httpx.MockTransport(unreachable)) as http:
        proxy = RequestProxy(BackendClient("http://backend.test", http_client=http))
        with pytest.raises(ProxyError) as exc_info:
            await proxy.forward("GET", "collections/posts/records")
    assert exc_info.value.status_code == 502
    assert "backend.test" not in exc_info.value.status_message


async def test_response_headers_are_reduced(proxy) -> None:
    resp = await proxy.forward("GET", "health")
    assert set(resp.headers) <= {"content-type", "content-disposition", "cache-control", "etag", "last-modified"}


@pytest.mark.parametrize("path", ["", "/", "collections/../admins", "./collections"])
def test_invalid_paths_rejected_with_400(path: str) -> None:
    with pytest.raises(ProxyError) as exc_info:
        split_backend_path(path)
    assert exc_info.value.status_code == 400


def test_unexposed_root_rejected() -> None:
    with pytest.raises(ProxyError) as exc_info:
        split_backend_path("admins/auth-with-password")
    assert exc_info.value.status_code == 404


def test_written_collection_detection() -> None:
    assert written_collection("PATCH", ["collections", "posts", "records", "1"]) == "posts"
    assert written_collection("GET", ["collections", "posts", "records"]) is None
    assert written_collection("POST", ["collections", "users", "auth-with-password"]) is None
