"""API v1 router aggregation.

Includes all endpoint modules with consistent prefix and tags. All routes
use dependencies from kontext.api.v1.dependencies (no manual service construction).
"""

from fastapi import APIRouter

from kontext.api.v1.endpoints import cache, collections, files, health, proxy, realtime

api_router = APIRouter()

api_router.include_router(health.router, prefix="/health", tags=["health"])
api_router.include_router(proxy.router, prefix="/proxy", tags=["proxy"])
api_router.include_router(files.router, prefix="/files", tags=["files"])
api_router.include_router(cache.router, prefix="/cache", tags=["cache"])
api_router.include_router(collections.router, tags=["collections"])
api_router.include_router(realtime.router, tags=["realtime"])
