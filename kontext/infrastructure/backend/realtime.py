"""Realtime event channel over the backend's server-sent events endpoint.

Protocol: `GET /api/realtime` opens an SSE stream whose first event,
PB_CONNECT, carries a client id. `POST /api/realtime {clientId, subscriptions}`
replaces the client's topic set; the backend then pushes one SSE event per
change, named after the topic, with `{action, record}` as data.

One SSE connection carries every topic of a channel. Each topic is a logical
channel with its own listener; the connection is closed when the last topic
is unsubscribed.
"""

from __future__ import annotations

import asyncio
import json
import logging
from collections.abc import AsyncIterator, Callable
from dataclasses import dataclass
from typing import Any, Protocol

from kontext.core.constants import REALTIME_CONNECT_EVENT, REALTIME_PATH
from kontext.domain.exceptions import KontextException, TransportError, backend_error_from_response
from kontext.infrastructure.backend.client import BackendClient, decode_body

logger = logging.getLogger(__name__)

EventListener = Callable[[dict[str, Any]], None]
ErrorListener = Callable[[Exception], None]


class RealtimeChannel(Protocol):
    """Transport contract used by the subscription manager."""

    async def subscribe(self, topic: str, listener: EventListener, on_error: ErrorListener) -> None:
        """Register topic; returns once the backend acknowledged it."""
        ...

    async def unsubscribe(self, topic: str) -> None:
        """Drop topic; unknown topics are ignored."""
        ...

    async def aclose(self) -> None:
        ...


@dataclass
class SSEEvent:
    """One dispatched server-sent event."""

    event: str = "message"
    data: str = ""
    id: str | None = None


async def iter_sse_events(lines: AsyncIterator[str]) -> AsyncIterator[SSEEvent]:
    """Parse text/event-stream lines into events.

    Comment lines (leading `:`) are skipped, multi-line data is joined with
    newlines, and an event is dispatched on each blank line.
    """
    event, event_id, data = "message", None, []
    async for raw in lines:
        line = raw.rstrip("\r\n")
        if not line:
            if data:
                yield SSEEvent(event=event, data="\n".join(data), id=event_id)
            event, data = "message", []
            continue
        if line.startswith(":"):
            continue
        name, _, value = line.partition(":")
        if value.startswith(" "):
            value = value[1:]
        if name == "event":
            event = value
        elif name == "data":
            data.append(value)
        elif name == "id":
            event_id = value
    if data:
        yield SSEEvent(event=event, data="\n".join(data), id=event_id)


class SSERealtimeChannel:
    """RealtimeChannel backed by the backend's SSE endpoint."""

    def __init__(self, backend: BackendClient, *, connect_timeout: float = 10.0) -> None:
        self._backend = backend
        self._connect_timeout = connect_timeout
        self._listeners: dict[str, tuple[EventListener, ErrorListener]] = {}
        self._client_id: str | None = None
        self._reader: asyncio.Task | None = None
        self._connected = asyncio.Event()
        self._connect_error: Exception | None = None
        self._lock = asyncio.Lock()

    @property
    def topics(self) -> list[str]:
        return list(self._listeners)

    @property
    def is_connected(self) -> bool:
        return self._client_id is not None and self._reader is not None and not self._reader.done()

    async def subscribe(self, topic: str, listener: EventListener, on_error: ErrorListener) -> None:
        """Register topic and submit the new topic set.

        Raises:
            TransportError: If the stream cannot be opened.
            BackendError: If the backend rejects the subscription request.
        """
        async with self._lock:
            await self._ensure_connected()
            self._listeners[topic] = (listener, on_error)
            try:
                await self._submit()
            except BaseException:
                self._listeners.pop(topic, None)
                if not self._listeners:
                    await self._disconnect()
                raise
            logger.info("Realtime subscribed: %s", topic)

    async def unsubscribe(self, topic: str) -> None:
        async with self._lock:
            if self._listeners.pop(topic, None) is None:
                return
            if not self._listeners:
                # Closing the stream drops the client's subscriptions server side.
                await self._disconnect()
            elif self.is_connected:
                await self._submit()
            logger.info("Realtime unsubscribed: %s", topic)

    async def aclose(self) -> None:
        async with self._lock:
            self._listeners.clear()
            await self._disconnect()

    async def _ensure_connected(self) -> None:
        if self.is_connected:
            return
        self._connected = asyncio.Event()
        self._connect_error = None
        self._reader = asyncio.create_task(self._read_loop())
        try:
            await asyncio.wait_for(self._connected.wait(), timeout=self._connect_timeout)
        except asyncio.TimeoutError as e:
            await self._disconnect()
            raise TransportError("Realtime connect timed out") from e
        if self._connect_error is not None:
            error, self._connect_error = self._connect_error, None
            raise error

    async def _submit(self) -> None:
        await self._backend.send(
            "POST",
            REALTIME_PATH,
            json={"clientId": self._client_id, "subscriptions": list(self._listeners)},
        )

    async def _disconnect(self) -> None:
        reader, self._reader = self._reader, None
        self._client_id = None
        if reader is not None and not reader.done():
            reader.cancel()
            try:
                await reader
            except asyncio.CancelledError:
                pass

    async def _read_loop(self) -> None:
        try:
            resp = await self._backend.send_raw(
                "GET", REALTIME_PATH, headers={"Accept": "text/event-stream"}, stream=True
            )
            try:
                if not resp.is_success:
                    await resp.aread()
                    raise backend_error_from_response(resp.status_code, decode_body(resp))
                async for event in iter_sse_events(resp.aiter_lines()):
                    if event.event == REALTIME_CONNECT_EVENT:
                        self._client_id = json.loads(event.data).get("clientId")
                        self._connected.set()
                        continue
                    self._dispatch(event)
            finally:
                await resp.aclose()
            raise TransportError("Realtime stream closed by backend")
        except asyncio.CancelledError:
            raise
        except KontextException as e:
            self._fail(e)
        except Exception as e:
            self._fail(TransportError(f"Realtime stream error: {e}"))

    def _dispatch(self, event: SSEEvent) -> None:
        entry = self._listeners.get(event.event)
        if entry is None:
            logger.debug("Realtime event for unknown topic: %s", event.event)
            return
        try:
            payload = json.loads(event.data)
        except ValueError:
            logger.warning("Malformed realtime payload on %s", event.event)
            return
        entry[0](payload)

    def _fail(self, error: Exception) -> None:
        logger.warning("Realtime channel failed: %s", error)
        self._client_id = None
        if not self._connected.is_set():
            self._connect_error = error
            self._connected.set()
            return
        listeners, self._listeners = list(self._listeners.values()), {}
        for _, on_error in listeners:
            on_error(error)
