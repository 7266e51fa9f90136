"""Realtime WebSocket message and status schemas."""

from typing import Any, Literal

from pydantic import BaseModel, Field


class SnapshotMessage(BaseModel):
    """First message on a watch socket: the mirror's current contents."""

    type: Literal["snapshot"] = "snapshot"
    topic: str
    state: str
    data: Any = Field(..., description="Record payload (or null) for one record, list for a collection")


class ChangeMessage(BaseModel):
    """One folded change event."""

    type: Literal["change"] = "change"
    topic: str
    action: str
    record: dict[str, Any]


class ErrorMessage(BaseModel):
    """Sent before the socket closes because the subscription failed."""

    type: Literal["error"] = "error"
    topic: str
    message: str


class WebSocketStatusResponse(BaseModel):
    """Response for GET /ws/status (connection count)."""

    total_connections: int = Field(..., description="Number of active WebSocket connections")
    topics: dict[str, int] = Field(default_factory=dict, description="Connections per realtime topic")
