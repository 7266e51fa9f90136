"""Request ID middleware.

Every HTTP request and WebSocket gets an id: the caller's X-Request-ID when
it is safe to log, a fresh UUID otherwise. The id is echoed on the response,
stamped on log lines and forwarded to the record backend (see
kontext.shared.context), so one id follows a call across both services.
Raw ASGI, so streamed file bodies and background tasks are untouched.
"""

import re
import uuid
from typing import Callable

from kontext.shared.context import reset_request_id, set_request_id

REQUEST_ID_MAX_LENGTH = 64
_SAFE_REQUEST_ID = re.compile(r"[A-Za-z0-9_-]{1,%d}" % REQUEST_ID_MAX_LENGTH)


def resolve_request_id(scope: dict, header_name: str) -> str:
    """Caller-supplied id if it is short and log-safe, else a new UUID4."""
    wanted = header_name.lower().encode("latin-1")
    for name, value in scope.get("headers", ()):
        if name.lower() == wanted:
            candidate = value.decode("latin-1").strip()
            if _SAFE_REQUEST_ID.fullmatch(candidate):
                return candidate
            break
    return str(uuid.uuid4())


def RequestIDMiddleware(app: Callable, header_name: str = "X-Request-ID") -> Callable:
    """Resolve the request id, make it current and echo it on the response."""
    header_bytes = header_name.encode("latin-1")

    async def asgi_app(scope: dict, receive: Callable, send: Callable) -> None:
        if scope["type"] not in ("http", "websocket"):
            await app(scope, receive, send)
            return
        request_id = resolve_request_id(scope, header_name)
        scope.setdefault("state", {})["request_id"] = request_id

        async def send_with_id(message: dict) -> None:
            if message["type"] == "http.response.start":
                message["headers"] = [*message.get("headers", []), (header_bytes, request_id.encode())]
            await send(message)

        token = set_request_id(request_id)
        try:
            await app(scope, receive, send_with_id)
        finally:
            reset_request_id(token)

    return asgi_app
