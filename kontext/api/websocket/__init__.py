"""WebSocket connection manager.

Used by the realtime endpoint to track sockets per topic.
"""

from kontext.api.websocket.manager import ConnectionManager

__all__ = ["ConnectionManager"]
