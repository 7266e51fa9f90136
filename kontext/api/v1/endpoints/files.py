"""File proxy: GET /files/{collection}/{recordId}/{filename}?thumb=."""

from typing import Annotated

from fastapi import APIRouter, Depends, Query
from fastapi.responses import StreamingResponse
from starlette.background import BackgroundTask

from kontext.api.v1.dependencies import get_file_proxy
from kontext.application.services.file_proxy import FileProxy
from kontext.schemas.proxy import ErrorEnvelope

router = APIRouter()


@router.get(
    "/{collection}/{record_id}/{filename}",
    response_class=StreamingResponse,
    responses={404: {"model": ErrorEnvelope}, 502: {"model": ErrorEnvelope}},
)
async def get_file(
    collection: str,
    record_id: str,
    filename: str,
    files: Annotated[FileProxy, Depends(get_file_proxy)],
    thumb: Annotated[str | None, Query(description="Thumbnail spec, e.g. 100x100")] = None,
    download: Annotated[bool | None, Query()] = None,
) -> StreamingResponse:
    """Stream a record's file with immutable caching headers."""
    stream = await files.open(collection, record_id, filename, thumb=thumb, download=download)
    headers = dict(stream.headers)
    if stream.content_length is not None:
        headers["Content-Length"] = str(stream.content_length)
    return StreamingResponse(
        stream.body,
        status_code=stream.status_code,
        media_type=stream.content_type,
        headers=headers,
        background=BackgroundTask(stream.aclose),
    )
