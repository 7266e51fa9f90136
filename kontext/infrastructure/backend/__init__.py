"""Record backend: HTTP client, query encoding and realtime channel."""

from kontext.infrastructure.backend.client import AuthResponse, BackendClient, RecordService
from kontext.infrastructure.backend.realtime import RealtimeChannel, SSERealtimeChannel

__all__ = [
    "AuthResponse",
    "BackendClient",
    "RealtimeChannel",
    "RecordService",
    "SSERealtimeChannel",
]
