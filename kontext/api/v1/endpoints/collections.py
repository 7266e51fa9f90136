"""Collection readers and the named content handlers (portfolio, homepage).

Anonymous responses are cached per namespace until invalidated; requests
carrying Authorization always read through to the backend.
"""

from typing import Annotated, Any

from fastapi import APIRouter, Depends

from kontext.api.v1.dependencies import collection_query_params, get_query_service, portfolio_query_params
from kontext.application.services.collection_query import CollectionQuery, CollectionQueryService
from kontext.schemas.collections import HomepageResponse
from kontext.schemas.proxy import ErrorEnvelope

router = APIRouter()

_ERROR_RESPONSES = {
    400: {"model": ErrorEnvelope},
    404: {"model": ErrorEnvelope},
    502: {"model": ErrorEnvelope},
}


@router.get("/collections/{name}", responses=_ERROR_RESPONSES)
async def read_collection(
    name: str,
    query: Annotated[CollectionQuery, Depends(collection_query_params)],
    service: Annotated[CollectionQueryService, Depends(get_query_service)],
) -> Any:
    """Read a collection in list, full or first mode."""
    return await service.cached(name, name, query)


@router.get("/portfolio", responses=_ERROR_RESPONSES)
async def read_portfolio(
    query: Annotated[CollectionQuery, Depends(portfolio_query_params)],
    service: Annotated[CollectionQueryService, Depends(get_query_service)],
) -> Any:
    """Portfolio projects, sorted by Order unless sort is given."""
    return await service.portfolio(query)


@router.get("/homepage", response_model=HomepageResponse | None, responses=_ERROR_RESPONSES)
async def read_homepage(
    service: Annotated[CollectionQueryService, Depends(get_query_service)],
) -> dict[str, Any] | None:
    """Hero content of the landing page; null when not configured."""
    return await service.homepage()
