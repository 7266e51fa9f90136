"""Request timeout middleware.

Cancels the request if it runs longer than the configured timeout (asyncio.wait_for).
Streamed file downloads are exempt: their duration depends on file size and
client bandwidth, not on this service.
Uses raw ASGI (no BaseHTTPMiddleware) for production-safe streaming and background tasks.
"""

import asyncio
import json
import logging
from collections.abc import Sequence
from typing import Callable

logger = logging.getLogger(__name__)


def TimeoutMiddleware(
    app: Callable,
    timeout_seconds: int,
    exempt_prefixes: Sequence[str] = ("/api/v1/files/",),
) -> Callable:
    """Cancel request after timeout_seconds (sends 504 on timeout). Raw ASGI."""
    exempt = tuple(exempt_prefixes)

    async def asgi_app(scope: dict, receive: Callable, send: Callable) -> None:
        if scope["type"] != "http" or scope.get("path", "").startswith(exempt):
            await app(scope, receive, send)
            return
        started = False

        async def send_wrapper(message: dict) -> None:
            nonlocal started
            if message["type"] == "http.response.start":
                started = True
            await send(message)

        try:
            await asyncio.wait_for(
                app(scope, receive, send_wrapper),
                timeout=float(timeout_seconds),
            )
        except asyncio.TimeoutError:
            method = scope.get("method", "")
            path = scope.get("path", "")
            logger.warning(
                "Request timed out after %s seconds: %s %s",
                timeout_seconds,
                method,
                path,
            )
            if started:
                # Headers already went out; the client sees a truncated body.
                return
            body = json.dumps(
                {
                    "statusCode": 504,
                    "statusMessage": f"Request timed out after {timeout_seconds} seconds",
                    "data": {"timeout_seconds": timeout_seconds},
                }
            ).encode()
            await send({
                "type": "http.response.start",
                "status": 504,
                "headers": [
                    (b"content-type", b"application/json"),
                ],
            })
            await send({
                "type": "http.response.body",
                "body": body,
                "more_body": False,
            })

    return asgi_app
