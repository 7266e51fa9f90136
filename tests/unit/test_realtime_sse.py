"""SSE parsing and the SSE realtime channel over a streaming mock backend."""

import asyncio
import json

import httpx
import pytest

from kontext.domain.exceptions import BackendError, TransportError
from kontext.infrastructure.backend.client import BackendClient
from kontext.infrastructure.backend.realtime import SSERealtimeChannel, iter_sse_events


async def _lines(*lines: str):
    for line in lines:
        yield line


async def _collect(*lines: str) -> list:
    return [e async for e in iter_sse_events(_lines(*lines))]


async def test_parses_events_and_skips_comments() -> None:
    events = await _collect(
        ": keepalive",
        "id: 1",
        "event: PB_CONNECT",
        'data: {"clientId": "c1"}',
        "",
        "event: posts/*",
        "data: line one",
        "data: line two",
        "",
    )
    assert [(e.event, e.data, e.id) for e in events] == [
        ("PB_CONNECT", '{"clientId": "c1"}', "1"),
        ("posts/*", "line one\nline two", "1"),
    ]


async def test_event_without_data_is_not_dispatched() -> None:
    assert await _collect("event: ping", "") == []


async def test_trailing_event_without_blank_line() -> None:
    events = await _collect("data:x")
    assert events[0].event == "message"
    assert events[0].data == "x"


class StreamingBackend:
    """Serves /api/realtime as an SSE stream fed from a queue."""

    def __init__(self, connect_status: int = 200) -> None:
        self.frames: asyncio.Queue = asyncio.Queue()
        self.submissions: list[dict] = []
        self.connect_status = connect_status
        self.submit_status = 204

    async def _stream(self):
        yield b'event: PB_CONNECT\ndata: {"clientId": "c1"}\n\n'
        while True:
            frame = await self.frames.get()
            if frame is None:
                return
            yield frame

    def push(self, topic: str, payload: dict) -> None:
        self.frames.put_nowait(f"event: {topic}\ndata: {json.dumps(payload)}\n\n".encode())

    async def handler(self, request: httpx.Request) -> httpx.Response:
        if request.method == "GET":
            if self.connect_status != 200:
                return httpx.Response(self.connect_status, json={"message": "Forbidden.", "data": {}})
            return httpx.Response(200, headers={"Content-Type": "text/event-stream"}, content=self._stream())
        if self.submit_status != 204:
            return httpx.Response(self.submit_status, json={"message": "Invalid subscriptions.", "data": {}})
        self.submissions.append(json.loads(request.content))
        return httpx.Response(204)


@pytest.fixture
async def streaming():
    backend = StreamingBackend()
    async with httpx.AsyncClient(transport=httpx.MockTransport(backend.handler)) as http:
        yield backend, BackendClient("http://backend.test", http_client=http)


async def test_subscribe_submits_topics_and_dispatches(streaming) -> None:
    backend, client = streaming
    channel = SSERealtimeChannel(client, connect_timeout=2)
    received: asyncio.Queue = asyncio.Queue()

    await channel.subscribe("posts/*", received.put_nowait, lambda e: None)
    await channel.subscribe("tags/*", lambda p: None, lambda e: None)
    assert backend.submissions == [
        {"clientId": "c1", "subscriptions": ["posts/*"]},
        {"clientId": "c1", "subscriptions": ["posts/*", "tags/*"]},
    ]

    backend.push("posts/*", {"action": "create", "record": {"id": "1"}})
    payload = await asyncio.wait_for(received.get(), timeout=2)
    assert payload == {"action": "create", "record": {"id": "1"}}

    await channel.unsubscribe("tags/*")
    assert backend.submissions[-1] == {"clientId": "c1", "subscriptions": ["posts/*"]}
    await channel.unsubscribe("posts/*")
    assert channel.is_connected is False
    await channel.aclose()


async def test_stream_end_fails_every_topic(streaming) -> None:
    backend, client = streaming
    channel = SSERealtimeChannel(client, connect_timeout=2)
    errors: asyncio.Queue = asyncio.Queue()
    await channel.subscribe("posts/*", lambda p: None, errors.put_nowait)

    backend.frames.put_nowait(None)
    error = await asyncio.wait_for(errors.get(), timeout=2)

    assert isinstance(error, TransportError)
    assert channel.topics == []
    await channel.aclose()


async def test_rejected_stream_raises_on_subscribe() -> None:
    backend = StreamingBackend(connect_status=403)
    async with httpx.AsyncClient(transport=httpx.MockTransport(backend.handler)) as http:
        channel = SSERealtimeChannel(BackendClient("http://backend.test", http_client=http), connect_timeout=2)
        with pytest.raises(BackendError) as exc_info:
            await channel.subscribe("posts/*", lambda p: None, lambda e: None)
        await channel.aclose()
    assert exc_info.value.status_code == 403
    assert backend.submissions == []


async def test_unsubscribe_unknown_topic_is_ignored(streaming) -> None:
    _, client = streaming
    channel = SSERealtimeChannel(client)
    await channel.unsubscribe("posts/*")
    assert channel.topics == []


async def test_rejected_first_topic_closes_the_stream(streaming) -> None:
    backend, client = streaming
    backend.submit_status = 400
    channel = SSERealtimeChannel(client, connect_timeout=2)

    with pytest.raises(BackendError):
        await channel.subscribe("posts/*", lambda p: None, lambda e: None)
    assert channel.topics == []
    assert channel.is_connected is False

    backend.submit_status = 204
    await channel.subscribe("posts/*", lambda p: None, lambda e: None)
    assert channel.is_connected is True
    assert backend.submissions == [{"clientId": "c1", "subscriptions": ["posts/*"]}]
    await channel.aclose()
