"""Realtime fan-out: WebSocket consumers watch backend collections.

WS /ws/collections/{collection}?record_id=&filter=

Each socket holds a lease on the shared subscription for its key (see
SubscriptionManager.watch). It receives one `snapshot` message, then one
`change` message per folded event; if the subscription fails it receives an
`error` message and the socket is closed. The lease is released when the
socket goes away.
"""

from __future__ import annotations

import asyncio
import contextlib
from typing import Annotated

from fastapi import APIRouter, Depends, Request, WebSocket, WebSocketDisconnect

from kontext.api.websocket import ConnectionManager
from kontext.application.services.subscriptions import Subscription, SubscriptionState
from kontext.domain.entities.record import ChangeEvent
from kontext.domain.mirror import Mirror
from kontext.schemas.realtime import ChangeMessage, ErrorMessage, SnapshotMessage, WebSocketStatusResponse

router = APIRouter()

# Close code sent when the backend subscription fails (RFC 6455 internal error).
_SUBSCRIPTION_FAILED_CODE = 1011


def get_ws_manager(request: Request) -> ConnectionManager:
    return request.app.state.ws_manager


def _error_message(sub: Subscription) -> dict:
    message = str(sub.error) if sub.error else "Subscription failed"
    return ErrorMessage(topic=sub.topic, message=message).model_dump()


async def _pump(websocket: WebSocket, manager: ConnectionManager, sub: Subscription, queue: asyncio.Queue) -> None:
    """Send queued changes until the subscription fails or the socket dies."""
    while True:
        item = await queue.get()
        if isinstance(item, ChangeEvent):
            message = ChangeMessage(topic=sub.topic, action=item.action.value, record=item.record.to_payload())
            if not await manager.send(websocket, message.model_dump()):
                return
            continue
        await manager.send(websocket, _error_message(sub))
        await websocket.close(code=_SUBSCRIPTION_FAILED_CODE)
        return


async def _drain(websocket: WebSocket) -> None:
    """Consume client frames until it disconnects; client messages are ignored."""
    try:
        while True:
            await websocket.receive_text()
    except WebSocketDisconnect:
        return


@router.websocket("/ws/collections/{collection}")
async def watch_collection(websocket: WebSocket, collection: str) -> None:
    """Stream a mirror of collection (or one record of it) to the client."""
    manager: ConnectionManager = websocket.app.state.ws_manager
    subscriptions = websocket.app.state.subscriptions
    record_id = websocket.query_params.get("record_id") or None
    filter_ = websocket.query_params.get("filter") or None

    async with subscriptions.watch(collection, record_id, filter_) as sub:
        await manager.connect(websocket, sub.topic)
        try:
            if sub.state is SubscriptionState.FAILED:
                await manager.send(websocket, _error_message(sub))
                await websocket.close(code=_SUBSCRIPTION_FAILED_CODE)
                return

            queue: asyncio.Queue = asyncio.Queue()

            def on_change(mirror: Mirror, event: ChangeEvent | None) -> None:
                if event is not None:
                    queue.put_nowait(event)

            def on_state(subscription: Subscription, state: SubscriptionState) -> None:
                if state is SubscriptionState.FAILED:
                    queue.put_nowait(state)

            remove_observer = sub.mirror.observe(on_change)
            remove_state_observer = sub.observe_state(on_state)
            try:
                snapshot = SnapshotMessage(topic=sub.topic, state=sub.state.value, data=sub.mirror.snapshot())
                if not await manager.send(websocket, snapshot.model_dump()):
                    return
                tasks = {
                    asyncio.create_task(_pump(websocket, manager, sub, queue)),
                    asyncio.create_task(_drain(websocket)),
                }
                _, pending = await asyncio.wait(tasks, return_when=asyncio.FIRST_COMPLETED)
                for task in pending:
                    task.cancel()
                    with contextlib.suppress(asyncio.CancelledError):
                        await task
            finally:
                remove_observer()
                remove_state_observer()
        finally:
            await manager.disconnect(websocket)


@router.get("/ws/status", response_model=WebSocketStatusResponse)
async def websocket_status(
    manager: Annotated[ConnectionManager, Depends(get_ws_manager)],
) -> WebSocketStatusResponse:
    """Number of connected realtime sockets, overall and per topic."""
    return WebSocketStatusResponse(
        total_connections=await manager.get_connection_count(),
        topics=await manager.get_topic_counts(),
    )
