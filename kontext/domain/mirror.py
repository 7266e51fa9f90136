"""Local mirrors of backend data, kept current by change events.

A mirror is written only by the subscription that owns it. Every mutation
notifies registered observers after the fold has completed, so an observer
always sees a consistent mirror.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable, Iterator
from typing import Union

from kontext.domain.entities.record import ChangeAction, ChangeEvent, Record

logger = logging.getLogger(__name__)

# Called as observer(mirror, event); event is None for snapshot loads and clears.
MirrorObserver = Callable[["Mirror", Union[ChangeEvent, None]], None]


class _Observable:
    """Observer registry shared by both mirror kinds."""

    def __init__(self) -> None:
        self._observers: list[MirrorObserver] = []

    def observe(self, observer: MirrorObserver) -> Callable[[], None]:
        """Register an observer; returns a callable that removes it."""
        self._observers.append(observer)

        def remove() -> None:
            if observer in self._observers:
                self._observers.remove(observer)

        return remove

    def _notify(self, event: ChangeEvent | None) -> None:
        for observer in list(self._observers):
            try:
                observer(self, event)  # type: ignore[arg-type]
            except Exception:
                logger.exception("Mirror observer failed")


class RecordMirror(_Observable):
    """Nullable slot holding the latest snapshot of one record."""

    def __init__(self, record_id: str) -> None:
        super().__init__()
        self.record_id = record_id
        self._record: Record | None = None

    @property
    def record(self) -> Record | None:
        return self._record

    def apply(self, event: ChangeEvent) -> None:
        """Fold one event: create/update replace the slot, delete empties it."""
        if event.action is ChangeAction.DELETE:
            self._record = None
        else:
            self._record = event.record
        self._notify(event)

    def load(self, record: Record | None) -> None:
        """Replace the slot with a fetched snapshot."""
        self._record = record
        self._notify(None)

    def clear(self) -> None:
        self.load(None)

    def snapshot(self) -> dict | None:
        return self._record.to_payload() if self._record else None


class CollectionMirror(_Observable):
    """Record id -> Record map for a whole (optionally filtered) collection."""

    def __init__(self) -> None:
        super().__init__()
        self._records: dict[str, Record] = {}

    @property
    def items(self) -> list[Record]:
        return list(self._records.values())

    def get(self, record_id: str) -> Record | None:
        return self._records.get(record_id)

    def apply(self, event: ChangeEvent) -> None:
        """Fold one event: create/update insert-or-replace, delete removes.

        Events are applied as delivered; filter membership is the backend's call.
        """
        if event.action is ChangeAction.DELETE:
            self._records.pop(event.record.id, None)
        else:
            self._records[event.record.id] = event.record
        self._notify(event)

    def load(self, records: Iterable[Record]) -> None:
        """Replace the whole map with a fetched snapshot."""
        self._records = {r.id: r for r in records}
        self._notify(None)

    def clear(self) -> None:
        self.load(())

    def snapshot(self) -> list[dict]:
        return [r.to_payload() for r in self._records.values()]

    def __len__(self) -> int:
        return len(self._records)

    def __contains__(self, record_id: object) -> bool:
        return record_id in self._records

    def __iter__(self) -> Iterator[Record]:
        return iter(list(self._records.values()))


Mirror = Union[RecordMirror, CollectionMirror]
