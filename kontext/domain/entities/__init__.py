"""Domain entities (immutable record snapshots and change events)."""

from kontext.domain.entities.record import ChangeAction, ChangeEvent, ListResult, Record

__all__ = ["ChangeAction", "ChangeEvent", "ListResult", "Record"]
