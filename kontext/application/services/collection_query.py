"""Read records through the three query modes and the named content handlers.

Modes:
    list  -> one page: {page, perPage, totalItems, totalPages, items}
    full  -> every matching record as a bare array, fetched in pages
    first -> the first matching record (404 when none)
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from kontext.application.services.file_proxy import file_url
from kontext.application.services.response_cache import ResponseCache, request_shape
from kontext.domain.collections import HOMEPAGE_COLLECTION, PORTFOLIO_COLLECTION
from kontext.domain.entities.record import Record
from kontext.domain.exceptions import NotFoundError
from kontext.infrastructure.backend.client import BackendClient
from kontext.shared.telemetry.tracing import traced

logger = logging.getLogger(__name__)

PORTFOLIO_NAMESPACE = "portfolio"
HOMEPAGE_NAMESPACE = "homepage"
PORTFOLIO_DEFAULT_SORT = "Order"
PORTFOLIO_DEFAULT_PER_PAGE = 50


class QueryMode(str, Enum):
    LIST = "list"
    FULL = "full"
    FIRST = "first"


class CollectionQuery(BaseModel):
    """Query parameters accepted by collection readers (camelCase on the wire)."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    mode: QueryMode = QueryMode.LIST
    page: int = Field(default=1, ge=1)
    per_page: int = Field(default=30, ge=1, le=500, alias="perPage")
    sort: str | None = None
    filter: str | None = None
    expand: str | None = None
    fields: str | None = None

    def shape(self) -> str:
        """Cache member name for this query; page fields only matter in list mode."""
        params = self.model_dump(mode="json", by_alias=True)
        if self.mode is not QueryMode.LIST:
            params.pop("page", None)
            params.pop("perPage", None)
        return request_shape(params)


def homepage_projection(record: Record | None, file_base: str = "/api/v1/files") -> dict[str, Any] | None:
    """Project a Homepage record to {id, title, image, imageUrl}; None when absent."""
    if record is None:
        return None
    title, image = record.get("Hero_Title"), record.get("Hero_Image")
    # Multi-file fields arrive as a list; the first file is the hero.
    filename = image[0] if isinstance(image, list) and image else image
    return {
        "id": record.id,
        "title": "" if title is None else str(title),
        "image": image if image is not None else "",
        "imageUrl": file_url(record, filename if isinstance(filename, str) else None, base=file_base),
    }


class CollectionQueryService:
    """Runs collection queries against the backend, optionally through a response cache."""

    def __init__(
        self,
        backend: BackendClient,
        cache: ResponseCache | None = None,
        *,
        batch_size: int | None = None,
        file_base: str = "/api/v1/files",
    ) -> None:
        self._backend = backend
        self._cache = cache
        self._batch_size = batch_size
        self._file_base = file_base

    @traced("collections.run")
    async def run(self, collection: str, query: CollectionQuery) -> Any:
        """Execute query against collection and return the JSON-ready result.

        Raises:
            NotFoundError: first mode with no match.
            QueryValidationError: The backend rejected filter or sort.
            TransportError: The backend is unreachable.
        """
        service = self._backend.collection(collection)
        options = {"sort": query.sort, "filter": query.filter, "expand": query.expand, "fields": query.fields}
        if query.mode is QueryMode.FULL:
            records = await service.get_full_list(batch=self._batch_size, **options)
            return [r.to_payload() for r in records]
        if query.mode is QueryMode.FIRST:
            filter_ = options.pop("filter")
            return (await service.get_first_list_item(filter_, **options)).to_payload()
        result = await service.get_list(query.page, query.per_page, **options)
        return result.to_dict()

    async def cached(self, namespace: str, collection: str, query: CollectionQuery, *, use_cache: bool = True) -> Any:
        """run() through the response cache entry for namespace."""
        if self._cache is None or not use_cache:
            return await self.run(collection, query)
        return await self._cache.get_or_compute(
            namespace, f"{collection}:{query.shape()}", lambda: self.run(collection, query)
        )

    async def portfolio(self, query: CollectionQuery, *, use_cache: bool = True) -> Any:
        """Portfolio projects; sorted by Order unless the caller sorts."""
        if not query.sort:
            query = query.model_copy(update={"sort": PORTFOLIO_DEFAULT_SORT})
        return await self.cached(PORTFOLIO_NAMESPACE, PORTFOLIO_COLLECTION, query, use_cache=use_cache)

    async def homepage(self, *, use_cache: bool = True) -> dict[str, Any] | None:
        """The single Homepage record projected for the landing page, or None."""

        async def compute() -> dict[str, Any] | None:
            try:
                record = await self._backend.collection(HOMEPAGE_COLLECTION).get_first_list_item()
            except NotFoundError:
                return None
            return homepage_projection(record, self._file_base)

        if self._cache is None or not use_cache:
            return await compute()
        return await self._cache.get_or_compute(HOMEPAGE_NAMESPACE, "first", compute)
