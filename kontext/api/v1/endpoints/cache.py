"""Cache management: drop a named handler's cached responses."""

from typing import Annotated

from fastapi import APIRouter, Depends, Request

from kontext.api.v1.dependencies import get_cache_invalidator
from kontext.application.services.cache_invalidator import CacheInvalidator
from kontext.core.limiter import limit_cache_invalidate
from kontext.schemas.proxy import CacheInvalidateResponse

router = APIRouter()


@router.post("/invalidate/{namespace}", response_model=CacheInvalidateResponse)
@limit_cache_invalidate
async def invalidate_cache(
    request: Request,
    namespace: str,
    invalidator: Annotated[CacheInvalidator, Depends(get_cache_invalidator)],
) -> CacheInvalidateResponse:
    """Invalidate namespace (e.g. "portfolio"). Succeeds whether or not an entry existed."""
    result = await invalidator.invalidate(namespace)
    return CacheInvalidateResponse(success=result.success, message=f"{namespace} cache invalidated")
