"""CollectionQueryService modes, handlers and response caching."""

import pytest

from kontext.application.services.collection_query import (
    CollectionQuery,
    CollectionQueryService,
    QueryMode,
    homepage_projection,
)
from kontext.application.services.response_cache import ResponseCache
from kontext.domain.entities.record import Record
from kontext.domain.exceptions import NotFoundError, QueryValidationError
from kontext.infrastructure.cache.memory_cache import MemoryCache

PREFIX = "kontext:handlers"


@pytest.fixture
def cache() -> MemoryCache:
    return MemoryCache()


@pytest.fixture
def service(backend, cache) -> CollectionQueryService:
    return CollectionQueryService(backend, ResponseCache(cache, PREFIX), batch_size=2)


async def test_list_mode_returns_envelope(service, fake_backend) -> None:
    for i in range(3):
        fake_backend.add("posts", Title=str(i))
    data = await service.run("posts", CollectionQuery(per_page=2))
    assert data["totalItems"] == 3
    assert [item["Title"] for item in data["items"]] == ["0", "1"]


async def test_full_mode_returns_bare_array(service, fake_backend) -> None:
    for i in range(5):
        fake_backend.add("posts", Title=str(i))
    data = await service.run("posts", CollectionQuery(mode=QueryMode.FULL))
    assert [item["Title"] for item in data] == ["0", "1", "2", "3", "4"]


async def test_first_mode_without_match_raises(service) -> None:
    with pytest.raises(NotFoundError):
        await service.run("posts", CollectionQuery(mode=QueryMode.FIRST, filter='Title = "x"'))


async def test_cached_reads_hit_backend_once(service, fake_backend, cache) -> None:
    fake_backend.add("posts", Title="a")
    query = CollectionQuery()
    first = await service.cached("posts", "posts", query)
    second = await service.cached("posts", "posts", query)
    assert first == second
    assert len(fake_backend.requests) == 1
    assert cache.keys() == [f"{PREFIX}:posts"]


async def test_different_shapes_share_one_entry(service, fake_backend, cache) -> None:
    fake_backend.add("posts", Title="a")
    await service.cached("posts", "posts", CollectionQuery(page=1))
    await service.cached("posts", "posts", CollectionQuery(page=2))
    assert len(fake_backend.requests) == 2
    assert cache.keys() == [f"{PREFIX}:posts"]


async def test_errors_are_not_cached(service, fake_backend, cache) -> None:
    query = CollectionQuery(filter="a !! b")
    for _ in range(2):
        with pytest.raises(QueryValidationError):
            await service.cached("posts", "posts", query)
    assert len(fake_backend.requests) == 2
    assert cache.keys() == []


async def test_portfolio_defaults_to_order_sort(service, fake_backend) -> None:
    fake_backend.add("Portfolio_Projects", Title="p", Order=1)
    await service.portfolio(CollectionQuery())
    assert fake_backend.requests[-1].url.params["sort"] == "Order"
    await service.portfolio(CollectionQuery(sort="-created"), use_cache=False)
    assert fake_backend.requests[-1].url.params["sort"] == "-created"


async def test_homepage_projection_and_missing(service, fake_backend, cache) -> None:
    assert await service.homepage() is None
    # None is not cached, so the next call reads again.
    fake_backend.add("Homepage", id="h1", Hero_Title="Welcome", Hero_Image="hero.jpg")
    data = await service.homepage()
    assert data == {
        "id": "h1",
        "title": "Welcome",
        "image": "hero.jpg",
        "imageUrl": "/api/v1/files/Homepage/h1/hero.jpg",
    }


def test_homepage_projection_without_image() -> None:
    record = Record(id="h1", collection_name="Homepage", fields={"Hero_Title": "Hi"})
    assert homepage_projection(record)["imageUrl"] == ""
    assert homepage_projection(None) is None


def test_homepage_projection_tolerates_null_and_multi_file_fields() -> None:
    empty = Record(id="h1", collection_name="Homepage", fields={"Hero_Title": None, "Hero_Image": None})
    assert homepage_projection(empty) == {"id": "h1", "title": "", "image": "", "imageUrl": ""}

    gallery = Record(id="h1", collection_name="Homepage", fields={"Hero_Image": ["a.jpg", "b.jpg"]})
    data = homepage_projection(gallery)
    assert data["image"] == ["a.jpg", "b.jpg"]
    assert data["imageUrl"] == "/api/v1/files/Homepage/h1/a.jpg"


def test_query_shape_ignores_paging_outside_list_mode() -> None:
    a = CollectionQuery(mode=QueryMode.FULL, page=1)
    b = CollectionQuery(mode=QueryMode.FULL, page=3, per_page=10)
    assert a.shape() == b.shape()
    assert CollectionQuery(page=1).shape() != CollectionQuery(page=2).shape()


def test_query_accepts_camel_case() -> None:
    assert CollectionQuery.model_validate({"perPage": 5}).per_page == 5
