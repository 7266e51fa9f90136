"""Proxy, file and cache API schemas."""

from typing import Any

from pydantic import BaseModel, Field


class ErrorEnvelope(BaseModel):
    """Error body returned by proxy, file and collection endpoints."""

    statusCode: int = Field(..., description="HTTP status (the backend's, when there was one)")
    statusMessage: str = Field(..., description="Human-readable reason")
    data: Any = Field(default=None, description="Structured backend error payload")


class CacheInvalidateResponse(BaseModel):
    """Response for POST /cache/invalidate/{namespace}."""

    success: bool = Field(default=True)
    message: str = Field(..., description="What was invalidated")
