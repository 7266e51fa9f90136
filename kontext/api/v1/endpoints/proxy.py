"""Backend request proxy: METHOD /proxy/{path} -> backend /api/{path}.

Reads and writes are separate routes so only writes are rate limited.
"""

from typing import Annotated

from fastapi import APIRouter, Depends, Request, Response

from kontext.api.v1.dependencies import get_request_proxy
from kontext.application.services.request_proxy import RequestProxy
from kontext.core.limiter import limit_proxy_writes
from kontext.schemas.proxy import ErrorEnvelope

router = APIRouter()

_ERROR_RESPONSES = {
    400: {"model": ErrorEnvelope},
    404: {"model": ErrorEnvelope},
    502: {"model": ErrorEnvelope},
}


async def _forward(request: Request, path: str, proxy: RequestProxy) -> Response:
    body = None if request.method in ("GET", "HEAD") else await request.body()
    result = await proxy.forward(
        request.method,
        path,
        query=request.query_params.multi_items(),
        headers=request.headers,
        body=body,
    )
    return Response(content=result.content, status_code=result.status_code, headers=result.headers)


@router.api_route("/{path:path}", methods=["GET", "HEAD"], responses=_ERROR_RESPONSES)
async def proxy_read(
    request: Request,
    path: str,
    proxy: Annotated[RequestProxy, Depends(get_request_proxy)],
) -> Response:
    """Forward a read to the backend with the caller's credentials."""
    return await _forward(request, path, proxy)


@router.api_route("/{path:path}", methods=["POST", "PUT", "PATCH", "DELETE"], responses=_ERROR_RESPONSES)
@limit_proxy_writes
async def proxy_write(
    request: Request,
    path: str,
    proxy: Annotated[RequestProxy, Depends(get_request_proxy)],
) -> Response:
    """Forward a write; confirmed record writes invalidate cached handlers."""
    return await _forward(request, path, proxy)
