"""Thin async client for the PocketBase-style record backend.

All HTTP calls use httpx.AsyncClient so they do not block the event loop.
`send_raw` never raises for a backend status (callers that must inspect
non-2xx answers use it); `send` converts non-2xx answers into BackendError.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from typing import Any

import httpx

from kontext.core.constants import FILES_PATH, RECORDS_PATH
from kontext.domain.entities.record import ListResult, Record
from kontext.domain.exceptions import BackendError, NotFoundError, TransportError, backend_error_from_response
from kontext.infrastructure.backend.encoding import (
    QueryItems,
    build_url,
    list_params,
    quote_segment,
    serialize_query,
)
from kontext.shared.context import get_request_id
from kontext.shared.telemetry.tracing import traced

logger = logging.getLogger(__name__)

TokenProvider = Callable[[], str | None]


def decode_body(resp: httpx.Response) -> Any:
    """Return the JSON body, the raw text if it is not JSON, or None if empty."""
    if not resp.content:
        return None
    try:
        return resp.json()
    except ValueError:
        return resp.text


@dataclass(frozen=True)
class AuthResponse:
    """Token and principal returned by the backend's auth endpoints."""

    token: str
    record: Record


class RecordService:
    """Record operations for one collection; matches the backend SDK's naming."""

    def __init__(self, client: BackendClient, collection: str) -> None:
        self._client = client
        self.collection = collection
        self._base = RECORDS_PATH.format(collection=quote_segment(collection))

    def _auth_path(self, action: str) -> str:
        return f"/api/collections/{quote_segment(self.collection)}/{action}"

    def _object(self, payload: Any) -> Mapping[str, Any]:
        """Return payload as a JSON object; an empty body counts as {}.

        Raises:
            BackendError: If a 2xx body is some other JSON value or plain text.
        """
        if payload is None:
            return {}
        if not isinstance(payload, Mapping):
            raise BackendError(
                502,
                "Malformed backend response",
                {"collection": self.collection, "type": type(payload).__name__},
            )
        return payload

    def _record(self, payload: Any) -> Record:
        return Record.from_payload(self._object(payload), self.collection)

    @traced("backend.get_list")
    async def get_list(
        self,
        page: int = 1,
        per_page: int = 30,
        *,
        sort: str | None = None,
        filter: str | None = None,
        expand: str | None = None,
        fields: str | None = None,
        skip_total: bool = False,
    ) -> ListResult:
        """Fetch one page of records."""
        params = list_params(
            page, per_page, sort=sort, filter=filter, expand=expand, fields=fields, skip_total=skip_total
        )
        data = self._object(await self._client.send("GET", self._base, params=params))
        return ListResult(
            page=int(data.get("page", page)),
            per_page=int(data.get("perPage", per_page)),
            total_items=int(data.get("totalItems", -1)),
            total_pages=int(data.get("totalPages", -1)),
            items=[self._record(item) for item in data.get("items", [])],
        )

    @traced("backend.get_full_list")
    async def get_full_list(
        self,
        *,
        batch: int | None = None,
        sort: str | None = None,
        filter: str | None = None,
        expand: str | None = None,
        fields: str | None = None,
    ) -> list[Record]:
        """Fetch every matching record, page by page, in backend order.

        Pages of `batch` records are requested with skipTotal until a short
        page arrives.
        """
        size = batch or self._client.max_per_page
        if size <= 0:
            raise ValueError("batch must be > 0")
        records: list[Record] = []
        page = 1
        while True:
            result = await self.get_list(
                page, size, sort=sort, filter=filter, expand=expand, fields=fields, skip_total=True
            )
            records.extend(result.items)
            # The backend may cap perPage below the requested size.
            if len(result.items) < min(size, result.per_page) or not result.items:
                return records
            page += 1

    async def get_first_list_item(
        self,
        filter: str | None = None,
        *,
        sort: str | None = None,
        expand: str | None = None,
        fields: str | None = None,
    ) -> Record:
        """Return the first record matching filter.

        Raises:
            NotFoundError: If nothing matches.
        """
        result = await self.get_list(
            1, 1, sort=sort, filter=filter, expand=expand, fields=fields, skip_total=True
        )
        if not result.items:
            raise NotFoundError(data={"collection": self.collection, "filter": filter})
        return result.items[0]

    async def get_one(
        self, record_id: str, *, expand: str | None = None, fields: str | None = None
    ) -> Record:
        path = f"{self._base}/{quote_segment(record_id)}"
        data = await self._client.send("GET", path, params=list_params(expand=expand, fields=fields))
        return self._record(data)

    async def create(self, body: Mapping[str, Any]) -> Record:
        return self._record(await self._client.send("POST", self._base, json=dict(body)))

    async def update(self, record_id: str, body: Mapping[str, Any]) -> Record:
        path = f"{self._base}/{quote_segment(record_id)}"
        return self._record(await self._client.send("PATCH", path, json=dict(body)))

    async def delete(self, record_id: str) -> None:
        await self._client.send("DELETE", f"{self._base}/{quote_segment(record_id)}")

    async def auth_with_password(self, identity: str, password: str) -> AuthResponse:
        data = await self._client.send(
            "POST",
            self._auth_path("auth-with-password"),
            json={"identity": identity, "password": password},
        )
        data = self._object(data)
        return AuthResponse(token=data.get("token", ""), record=self._record(data.get("record")))

    async def auth_refresh(self, token: str | None = None) -> AuthResponse:
        """Exchange a token for a fresh one.

        Args:
            token: Token to refresh; defaults to the client's token provider.
        """
        headers = {"Authorization": token} if token else None
        data = self._object(await self._client.send("POST", self._auth_path("auth-refresh"), headers=headers))
        return AuthResponse(token=data.get("token", ""), record=self._record(data.get("record")))

    async def request_password_reset(self, email: str) -> None:
        await self._client.send("POST", self._auth_path("request-password-reset"), json={"email": email})


class BackendClient:
    """Async HTTP client for the record backend.

    Owns its httpx.AsyncClient unless one is injected (tests, shared pools).
    When a token provider is given, its token is sent as Authorization on
    calls that do not carry their own.
    """

    def __init__(
        self,
        base_url: str,
        *,
        http_client: httpx.AsyncClient | None = None,
        timeout: float = 30.0,
        token_provider: TokenProvider | None = None,
        max_per_page: int = 500,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.max_per_page = max_per_page
        self.token_provider = token_provider
        self._http = http_client if http_client is not None else httpx.AsyncClient(timeout=timeout)
        self._owns_http = http_client is None

    @property
    def http(self) -> httpx.AsyncClient:
        return self._http

    async def aclose(self) -> None:
        """Close the HTTP client only if we created it (do not close injected client)."""
        if self._owns_http:
            await self._http.aclose()

    def url(self, path: str, params: Mapping[str, Any] | QueryItems | None = None) -> str:
        return build_url(self.base_url, path, params)

    def _headers(self, headers: Mapping[str, str] | None) -> dict[str, str]:
        out = dict(headers or {})
        if self.token_provider is not None and not any(k.lower() == "authorization" for k in out):
            token = self.token_provider()
            if token:
                out["Authorization"] = token
        request_id = get_request_id()
        if request_id:
            out.setdefault("X-Request-ID", request_id)
        return out

    async def send_raw(
        self,
        method: str,
        path: str,
        *,
        params: Mapping[str, Any] | QueryItems | None = None,
        headers: Mapping[str, str] | None = None,
        content: bytes | None = None,
        json: Any = None,
        stream: bool = False,
    ) -> httpx.Response:
        """Send a request and return the response whatever its status.

        With stream=True the body is not read; the caller must aclose() it.

        Raises:
            TransportError: If the backend cannot be reached.
        """
        url = self.url(path, params)
        request = self._http.build_request(
            method, url, headers=self._headers(headers), content=content, json=json
        )
        try:
            return await self._http.send(request, stream=stream)
        except httpx.TransportError as e:
            logger.warning("Backend transport error: %s %s: %s", method, path, e)
            raise TransportError(f"Backend unreachable: {type(e).__name__}", url=url) from e

    async def send(
        self,
        method: str,
        path: str,
        *,
        params: Mapping[str, Any] | QueryItems | None = None,
        json: Any = None,
        headers: Mapping[str, str] | None = None,
    ) -> Any:
        """Send a request and return the decoded body.

        Raises:
            TransportError: If the backend cannot be reached.
            BackendError: (or NotFoundError / QueryValidationError) on non-2xx.
        """
        resp = await self.send_raw(method, path, params=params, json=json, headers=headers)
        body = decode_body(resp)
        if not resp.is_success:
            logger.debug("Backend %s %s -> %s", method, path, resp.status_code)
            raise backend_error_from_response(resp.status_code, body)
        return body

    def collection(self, name: str) -> RecordService:
        return RecordService(self, name)

    def file_path(
        self,
        collection: str,
        record_id: str,
        filename: str,
        *,
        thumb: str | None = None,
        download: bool | None = None,
    ) -> str:
        """Backend-relative file path with passthrough query."""
        path = FILES_PATH.format(
            collection=quote_segment(collection),
            record_id=quote_segment(record_id),
            filename=quote_segment(filename),
        )
        query = serialize_query({"thumb": thumb or None, "download": download or None})
        return f"{path}?{query}" if query else path
