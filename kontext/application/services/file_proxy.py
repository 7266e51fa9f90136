"""Stream binary assets from the record backend.

File URLs are content-addressed by the backend (a changed file gets a new
name), so every proxied file is served as immutable.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping

from kontext.application.dtos.proxy import FileStream
from kontext.core.constants import DEFAULT_FILE_CONTENT_TYPE, FILE_CACHE_CONTROL
from kontext.domain.entities.record import Record
from kontext.domain.exceptions import ProxyError, TransportError
from kontext.infrastructure.backend.client import BackendClient
from kontext.infrastructure.backend.encoding import quote_segment, serialize_query
from kontext.shared.telemetry.tracing import traced

logger = logging.getLogger(__name__)


def file_url(
    record: Record | Mapping | None,
    filename: str | None,
    thumb: str | None = None,
    *,
    base: str = "/api/v1/files",
) -> str:
    """Public URL of a record's file, served through the file proxy.

    Args:
        record: Record (or record payload) owning the file.
        filename: Stored filename from one of the record's file fields.
        thumb: Optional thumbnail spec, e.g. "100x100".
        base: Mount point of the file proxy.

    Returns:
        URL path, or "" when record or filename is missing.
    """
    if not record or not filename:
        return ""
    if isinstance(record, Record):
        collection, record_id = record.collection_name or record.collection_id, record.id
    else:
        collection = record.get("collectionName") or record.get("collectionId") or ""
        record_id = record.get("id") or ""
    if not collection or not record_id:
        return ""
    url = f"{base.rstrip('/')}/{quote_segment(collection)}/{quote_segment(record_id)}/{quote_segment(filename)}"
    query = serialize_query({"thumb": thumb or None})
    return f"{url}?{query}" if query else url


class FileProxy:
    """Opens streamed file responses from the backend."""

    def __init__(self, backend: BackendClient) -> None:
        self._backend = backend

    @traced("files.open")
    async def open(
        self,
        collection: str,
        record_id: str,
        filename: str,
        thumb: str | None = None,
        download: bool | None = None,
    ) -> FileStream:
        """Open the file at `/api/files/{collection}/{record_id}/{filename}`.

        The body is not read here; iterate FileStream.body and call
        FileStream.aclose() when done.

        Raises:
            ProxyError: Backend status for 4xx/5xx; 502 when unreachable.
        """
        path = self._backend.file_path(collection, record_id, filename, thumb=thumb, download=download)
        try:
            resp = await self._backend.send_raw("GET", path, stream=True)
        except TransportError as e:
            raise e.to_proxy_error() from e

        if not resp.is_success:
            await resp.aclose()
            logger.info("File %s/%s/%s -> %s", collection, record_id, filename, resp.status_code)
            message = "File not found" if resp.status_code == 404 else "Failed to fetch file"
            raise ProxyError(resp.status_code, message)

        # Decoded bytes are streamed; an encoded length would not match them.
        length = None if resp.headers.get("content-encoding") else resp.headers.get("content-length")
        headers = {"Cache-Control": FILE_CACHE_CONTROL}
        disposition = resp.headers.get("content-disposition")
        if disposition:
            headers["Content-Disposition"] = disposition
        return FileStream(
            status_code=resp.status_code,
            content_type=resp.headers.get("content-type") or DEFAULT_FILE_CONTENT_TYPE,
            content_length=int(length) if length and length.isdigit() else None,
            headers=headers,
            body=resp.aiter_bytes(),
            aclose=resp.aclose,
        )
