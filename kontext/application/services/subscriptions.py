"""Realtime subscriptions that keep local mirrors of backend collections.

One Subscription exists per (collection, target, filter); target is a record
id or "*" for the whole collection. Its lifecycle:

    IDLE -> SUBSCRIBING -> ACTIVE -> UNSUBSCRIBING -> IDLE
    any state -> FAILED on transport failure (subscribe() again to retry)

While SUBSCRIBING, delivered events are buffered; the mirror is seeded from
a fetched snapshot and the buffer is replayed in arrival order before the
subscription turns ACTIVE. Events for an ACTIVE subscription are folded into
its mirror synchronously, in arrival order.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import AsyncIterator, Callable
from contextlib import asynccontextmanager
from enum import Enum
from typing import Any

from kontext.core.constants import WILDCARD_TARGET
from kontext.domain.entities.record import ChangeEvent
from kontext.domain.exceptions import KontextException, NotFoundError
from kontext.domain.mirror import CollectionMirror, Mirror, RecordMirror
from kontext.infrastructure.backend.client import BackendClient
from kontext.infrastructure.backend.encoding import realtime_topic
from kontext.infrastructure.backend.realtime import RealtimeChannel
from kontext.shared.telemetry.tracing import traced

logger = logging.getLogger(__name__)

SubscriptionKey = tuple[str, str, str | None]


class SubscriptionState(str, Enum):
    """Lifecycle state of a subscription."""

    IDLE = "idle"
    SUBSCRIBING = "subscribing"
    ACTIVE = "active"
    UNSUBSCRIBING = "unsubscribing"
    FAILED = "failed"


StateObserver = Callable[["Subscription", SubscriptionState], None]


class Subscription:
    """One logical realtime channel and the mirror it maintains.

    Created and driven by SubscriptionManager; callers read `state`,
    `error` and `mirror` and may observe state transitions.
    """

    def __init__(self, collection: str, target: str, filter: str | None = None) -> None:
        self.collection = collection
        self.target = target
        self.filter = filter or None
        self.topic = realtime_topic(collection, target, self.filter)
        self.mirror: Mirror = (
            CollectionMirror() if target == WILDCARD_TARGET else RecordMirror(target)
        )
        self.state = SubscriptionState.IDLE
        self.error: Exception | None = None
        self._lock = asyncio.Lock()
        self._buffer: list[ChangeEvent] = []
        self._state_observers: list[StateObserver] = []
        self._leases = 0

    @property
    def key(self) -> SubscriptionKey:
        return (self.collection, self.target, self.filter)

    @property
    def is_active(self) -> bool:
        return self.state is SubscriptionState.ACTIVE

    @property
    def leases(self) -> int:
        return self._leases

    def observe_state(self, observer: StateObserver) -> Callable[[], None]:
        """Register observer(subscription, new_state); returns a remover."""
        self._state_observers.append(observer)

        def remove() -> None:
            if observer in self._state_observers:
                self._state_observers.remove(observer)

        return remove

    def _set_state(self, state: SubscriptionState) -> None:
        if state is self.state:
            return
        logger.debug("Subscription %s: %s -> %s", self.topic, self.state.value, state.value)
        self.state = state
        for observer in list(self._state_observers):
            try:
                observer(self, state)
            except Exception:
                logger.exception("Subscription state observer failed")

    def _on_event(self, payload: dict[str, Any]) -> None:
        try:
            event = ChangeEvent.from_payload(payload, self.collection)
        except (ValueError, KontextException) as e:
            logger.warning("Dropping malformed change event on %s: %s", self.topic, e)
            return
        if self.state is SubscriptionState.ACTIVE:
            self.mirror.apply(event)
        elif self.state is SubscriptionState.SUBSCRIBING:
            self._buffer.append(event)
        else:
            logger.debug("Ignoring event on %s in state %s", self.topic, self.state.value)

    def _on_error(self, error: Exception) -> None:
        self._fail(error)

    def _fail(self, error: Exception) -> None:
        logger.warning("Subscription %s failed: %s", self.topic, error)
        self.error = error
        self._buffer.clear()
        self._set_state(SubscriptionState.FAILED)

    def _activate(self) -> None:
        buffered, self._buffer = self._buffer, []
        for event in buffered:
            self.mirror.apply(event)
        self._set_state(SubscriptionState.ACTIVE)

    def __repr__(self) -> str:
        return f"Subscription({self.topic!r}, state={self.state.value})"


class SubscriptionManager:
    """Owns every Subscription of a context and the channel they share.

    Subscriptions are serialized per key by the subscription's lock;
    different keys proceed independently.
    """

    def __init__(
        self,
        channel: RealtimeChannel,
        backend: BackendClient,
        *,
        seed: bool = True,
        unsubscribe_timeout: float = 5.0,
    ) -> None:
        self._channel = channel
        self._backend = backend
        self._seed = seed
        self._unsubscribe_timeout = unsubscribe_timeout
        self._subscriptions: dict[SubscriptionKey, Subscription] = {}

    @property
    def subscriptions(self) -> list[Subscription]:
        return list(self._subscriptions.values())

    def get(self, collection: str, record_id: str | None = None, filter: str | None = None) -> Subscription:
        """Return the subscription for this key, creating it IDLE if needed."""
        key = (collection, record_id or WILDCARD_TARGET, filter or None)
        sub = self._subscriptions.get(key)
        if sub is None:
            sub = Subscription(*key)
            self._subscriptions[key] = sub
        return sub

    @traced("realtime.subscribe")
    async def subscribe(
        self,
        collection: str,
        record_id: str | None = None,
        filter: str | None = None,
        *,
        seed: bool | None = None,
    ) -> Subscription:
        """Open (or reuse) the channel for a key and bring its mirror up.

        Calling this for a SUBSCRIBING or ACTIVE key returns the existing
        subscription unchanged. Failures are not raised: the subscription is
        returned FAILED with `error` set.
        Cancellation propagates after the subscription is put back to IDLE.

        Args:
            collection: Collection name.
            record_id: Record to follow; None follows the whole collection.
            filter: Backend filter expression limiting delivered events.
            seed: Load a snapshot before going ACTIVE; defaults to the manager's setting.

        Returns:
            The Subscription for the key.
        """
        sub = self.get(collection, record_id, filter)
        async with sub._lock:
            if sub.state in (SubscriptionState.SUBSCRIBING, SubscriptionState.ACTIVE):
                return sub
            sub.error = None
            sub._buffer.clear()
            sub._set_state(SubscriptionState.SUBSCRIBING)
            registered = False
            try:
                await self._channel.subscribe(sub.topic, sub._on_event, sub._on_error)
                registered = True
                if self._seed if seed is None else seed:
                    await self._load_snapshot(sub)
            except asyncio.CancelledError:
                # A cancelled caller leaves nothing half-open: the next subscribe() starts over.
                if registered:
                    await self._release_topic(sub)
                sub._buffer.clear()
                sub._set_state(SubscriptionState.IDLE)
                raise
            except Exception as e:
                if not isinstance(e, KontextException):
                    logger.exception("Unexpected error while subscribing %s", sub.topic)
                if registered:
                    await self._release_topic(sub)
                sub._fail(e)
                return sub

            # The channel may have failed while the snapshot was loading.
            if sub.state is SubscriptionState.SUBSCRIBING:
                sub._activate()
                logger.info("Subscription active: %s", sub.topic)
        return sub

    @traced("realtime.unsubscribe")
    async def unsubscribe(
        self, collection: str, record_id: str | None = None, filter: str | None = None
    ) -> Subscription | None:
        """Close the channel for a key; the subscription ends IDLE.

        Unsubscribing an IDLE (or unknown) key does nothing. The remote call
        is bounded by the unsubscribe timeout; if it fails or times out the
        error is recorded on the subscription, which still ends IDLE. The
        mirror keeps its contents.
        """
        sub = self._subscriptions.get((collection, record_id or WILDCARD_TARGET, filter or None))
        if sub is None:
            return None
        async with sub._lock:
            if sub.state is SubscriptionState.IDLE:
                return sub
            if sub.state is SubscriptionState.FAILED:
                # The failed channel already dropped its listener.
                sub._set_state(SubscriptionState.IDLE)
                return sub
            sub._set_state(SubscriptionState.UNSUBSCRIBING)
            await self._release_topic(sub)
            sub._buffer.clear()
            sub._set_state(SubscriptionState.IDLE)
            logger.info("Subscription closed: %s", sub.topic)
        return sub

    @asynccontextmanager
    async def watch(
        self,
        collection: str,
        record_id: str | None = None,
        filter: str | None = None,
        *,
        seed: bool | None = None,
    ) -> AsyncIterator[Subscription]:
        """Hold a lease on a subscription for the duration of the block.

        The subscription is shared between concurrent watchers of the same
        key; the last lease released unsubscribes it, on every exit path.

        Usage:
            async with manager.watch("posts") as sub:
                sub.mirror.observe(render)
                await done.wait()
        """
        sub = self.get(collection, record_id, filter)
        sub._leases += 1
        try:
            await self.subscribe(collection, record_id, filter, seed=seed)
            yield sub
        finally:
            sub._leases -= 1
            if sub._leases == 0:
                await self.unsubscribe(collection, record_id, filter)

    async def close(self) -> None:
        """Unsubscribe everything and close the channel (process shutdown)."""
        for sub in self.subscriptions:
            await self.unsubscribe(sub.collection, None if sub.target == WILDCARD_TARGET else sub.target, sub.filter)
        await self._channel.aclose()

    async def _load_snapshot(self, sub: Subscription) -> None:
        service = self._backend.collection(sub.collection)
        if isinstance(sub.mirror, RecordMirror):
            try:
                record = await service.get_one(sub.target)
            except NotFoundError:
                record = None
            sub.mirror.load(record)
        else:
            try:
                records = await service.get_full_list(filter=sub.filter)
            except NotFoundError:
                records = []
            sub.mirror.load(records)

    async def _release_topic(self, sub: Subscription) -> None:
        try:
            await asyncio.wait_for(self._channel.unsubscribe(sub.topic), timeout=self._unsubscribe_timeout)
        except (asyncio.TimeoutError, KontextException) as e:
            logger.warning("Unsubscribe of %s did not complete: %s", sub.topic, e)
            sub.error = e
