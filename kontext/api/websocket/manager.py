"""WebSocket connection manager.

Holds active connections per realtime topic. Use via app.state.ws_manager
(set in lifespan). Each socket follows exactly one topic.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any

from fastapi import WebSocket

logger = logging.getLogger(__name__)


class ConnectionManager:
    """Tracks WebSocket connections grouped by topic.

    - connect() accepts and registers a socket under its topic.
    - send() delivers to one socket and forgets it when the send fails.
    - Counts are lock-protected for concurrent access.
    """

    def __init__(self) -> None:
        self._connections_by_topic: dict[str, set[WebSocket]] = {}
        self._websocket_to_topic: dict[WebSocket, str] = {}
        self._lock = asyncio.Lock()

    async def connect(self, websocket: WebSocket, topic: str) -> None:
        """Accept and register a new connection for topic."""
        await websocket.accept()
        async with self._lock:
            self._connections_by_topic.setdefault(topic, set()).add(websocket)
            self._websocket_to_topic[websocket] = topic

    async def disconnect(self, websocket: WebSocket) -> None:
        """Remove a connection (call on disconnect). Unknown sockets are ignored."""
        async with self._lock:
            self._forget(websocket)

    async def send(self, websocket: WebSocket, message: dict[str, Any]) -> bool:
        """Send message as JSON; returns False (and forgets the socket) on failure."""
        try:
            await websocket.send_json(message)
        except Exception as e:
            logger.debug("WebSocket send failed: %s", e)
            async with self._lock:
                self._forget(websocket)
            return False
        return True

    async def get_connection_count(self) -> int:
        """Return the total number of active connections (lock-safe)."""
        async with self._lock:
            return len(self._websocket_to_topic)

    async def get_topic_counts(self) -> dict[str, int]:
        async with self._lock:
            return {topic: len(conns) for topic, conns in self._connections_by_topic.items()}

    def _forget(self, websocket: WebSocket) -> None:
        topic = self._websocket_to_topic.pop(websocket, None)
        if topic is None:
            return
        conns = self._connections_by_topic.get(topic)
        if conns is not None:
            conns.discard(websocket)
            if not conns:
                del self._connections_by_topic[topic]
