"""Health check endpoints. Used for liveness and readiness probes."""

from typing import Annotated

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse

from kontext.api.v1.dependencies import get_backend
from kontext.domain.exceptions import TransportError
from kontext.infrastructure.backend.client import BackendClient
from kontext.schemas.health import HealthResponse, ReadinessErrorResponse, ReadinessResponse

router = APIRouter()


@router.get("", response_model=HealthResponse)
def health_check() -> HealthResponse:
    """Return simple ok status for liveness."""
    return HealthResponse()


@router.get(
    "/ready",
    response_model=ReadinessResponse,
    responses={503: {"description": "Record backend unreachable", "model": ReadinessErrorResponse}},
)
async def readiness_check(
    request: Request,
    backend: Annotated[BackendClient, Depends(get_backend)],
) -> ReadinessResponse | JSONResponse:
    """Return 200 if the record backend answers its health endpoint; 503 otherwise.

    A disabled cache does not make the service unready: reads then go
    straight to the backend.
    """
    try:
        resp = await backend.send_raw("GET", "/api/health")
    except TransportError as e:
        return JSONResponse(
            status_code=503,
            content=ReadinessErrorResponse(message=e.message).model_dump(),
        )
    if not resp.is_success:
        return JSONResponse(
            status_code=503,
            content=ReadinessErrorResponse(message=f"Backend health returned {resp.status_code}").model_dump(),
        )
    cache = getattr(request.app.state, "cache", None)
    cache_status = "ok" if cache is not None and cache.is_available() else "disabled"
    return ReadinessResponse(cache=cache_status)
