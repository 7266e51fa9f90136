"""Presentation-layer dependency injection (composition root).

Provides FastAPI Depends() for the services routes use. Shared
infrastructure (backend client, cache store, subscriptions) is created in
the app lifespan and read from app.state; the per-request services built
here are thin wrappers around it.
"""

from __future__ import annotations

from collections.abc import Callable
from typing import Annotated

from fastapi import Depends, Query, Request

from kontext.application.services.cache_invalidator import CacheInvalidator
from kontext.application.services.collection_query import (
    PORTFOLIO_DEFAULT_PER_PAGE,
    CollectionQuery,
    CollectionQueryService,
    QueryMode,
)
from kontext.application.services.file_proxy import FileProxy
from kontext.application.services.request_proxy import RequestProxy
from kontext.core.config import get_settings
from kontext.infrastructure.backend.client import BackendClient

FILES_MOUNT = "/api/v1/files"


def get_authorization(request: Request) -> str | None:
    """Caller's Authorization header, passed to the backend verbatim."""
    return request.headers.get("authorization") or None


def get_backend(request: Request) -> BackendClient:
    """Anonymous backend client shared by the whole app."""
    return request.app.state.backend


def get_caller_backend(
    request: Request,
    authorization: Annotated[str | None, Depends(get_authorization)],
) -> BackendClient:
    """Backend client acting as the caller: shared pool, caller's token."""
    backend: BackendClient = request.app.state.backend
    if authorization is None:
        return backend
    return BackendClient(
        backend.base_url,
        http_client=backend.http,
        token_provider=lambda: authorization,
        max_per_page=backend.max_per_page,
    )


def get_cache_invalidator(request: Request) -> CacheInvalidator:
    return request.app.state.cache_invalidator


def get_request_proxy(
    backend: Annotated[BackendClient, Depends(get_backend)],
    invalidator: Annotated[CacheInvalidator, Depends(get_cache_invalidator)],
) -> RequestProxy:
    """RequestProxy over the anonymous client; credentials come from the forwarded headers."""
    return RequestProxy(backend, invalidator, get_settings().cache_namespace_aliases)


def get_file_proxy(backend: Annotated[BackendClient, Depends(get_backend)]) -> FileProxy:
    return FileProxy(backend)


def get_query_service(
    request: Request,
    backend: Annotated[BackendClient, Depends(get_caller_backend)],
    authorization: Annotated[str | None, Depends(get_authorization)],
) -> CollectionQueryService:
    """Query service; responses are cached for anonymous callers only."""
    cache = request.app.state.response_cache if authorization is None else None
    return CollectionQueryService(backend, cache, file_base=FILES_MOUNT)


def _query_params(default_per_page: int | None = None) -> Callable[..., CollectionQuery]:
    """Build a dependency parsing the collection query string.

    perPage falls back to default_per_page, then to settings.default_per_page.
    """

    def dependency(
        mode: Annotated[QueryMode, Query()] = QueryMode.LIST,
        page: Annotated[int, Query(ge=1)] = 1,
        per_page: Annotated[int | None, Query(alias="perPage", ge=1, le=500)] = None,
        sort: Annotated[str | None, Query()] = None,
        filter: Annotated[str | None, Query()] = None,
        expand: Annotated[str | None, Query()] = None,
        fields: Annotated[str | None, Query()] = None,
    ) -> CollectionQuery:
        return CollectionQuery(
            mode=mode,
            page=page,
            per_page=per_page or default_per_page or get_settings().default_per_page,
            sort=sort,
            filter=filter,
            expand=expand,
            fields=fields,
        )

    return dependency


collection_query_params = _query_params()
portfolio_query_params = _query_params(PORTFOLIO_DEFAULT_PER_PAGE)
