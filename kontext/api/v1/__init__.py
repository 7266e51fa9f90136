"""API v1: HTTP and WebSocket routes mounted under /api/v1."""

from kontext.api.v1.router import api_router

__all__ = ["api_router"]
