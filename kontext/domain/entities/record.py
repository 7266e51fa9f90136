"""Record and change-event domain entities.

A Record is an immutable snapshot of one backend entity. Mirrors replace
records wholesale; fields are never mutated in place.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Any

from kontext.domain.exceptions import KontextException

# Keys the backend adds to every record; everything else is a collection field.
SYSTEM_KEYS = frozenset({"id", "collectionId", "collectionName", "created", "updated", "expand"})


class ChangeAction(str, Enum):
    """Kind of change delivered on a realtime channel."""

    CREATE = "create"
    UPDATE = "update"
    DELETE = "delete"


@dataclass(frozen=True)
class Record:
    """Immutable snapshot of a record in one collection.

    Fields are exposed read-only; use `record["Title"]` or `record.get()`.
    """

    id: str
    collection_name: str
    fields: Mapping[str, Any] = field(default_factory=dict)
    collection_id: str = ""
    created: str | None = None
    updated: str | None = None
    expand: Mapping[str, Any] = field(default_factory=dict, compare=False)

    def __post_init__(self) -> None:
        if not self.id:
            raise KontextException("Record id is required", "VALIDATION_ERROR", {"field": "id"})
        object.__setattr__(self, "fields", MappingProxyType(dict(self.fields)))
        object.__setattr__(self, "expand", MappingProxyType(dict(self.expand)))

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any], collection_name: str | None = None) -> Record:
        """Build a Record from a backend JSON payload.

        Args:
            payload: Record JSON as returned by the backend.
            collection_name: Fallback when the payload omits collectionName.

        Returns:
            Record snapshot.
        """
        return cls(
            id=str(payload.get("id") or ""),
            collection_name=str(payload.get("collectionName") or collection_name or ""),
            collection_id=str(payload.get("collectionId") or ""),
            created=payload.get("created"),
            updated=payload.get("updated"),
            fields={k: v for k, v in payload.items() if k not in SYSTEM_KEYS},
            expand=payload.get("expand") or {},
        )

    def to_payload(self) -> dict[str, Any]:
        """Serialize back to the backend's JSON shape."""
        data: dict[str, Any] = {
            "id": self.id,
            "collectionId": self.collection_id,
            "collectionName": self.collection_name,
            "created": self.created,
            "updated": self.updated,
            **self.fields,
        }
        if self.expand:
            data["expand"] = dict(self.expand)
        return data

    def get(self, name: str, default: Any = None) -> Any:
        """Return a field value or default."""
        return self.fields.get(name, default)

    def __getitem__(self, name: str) -> Any:
        return self.fields[name]


@dataclass(frozen=True)
class ChangeEvent:
    """A single `{action, record}` frame from a realtime channel."""

    action: ChangeAction
    record: Record

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any], collection_name: str | None = None) -> ChangeEvent:
        """Parse a realtime frame.

        Raises:
            ValueError: If action is unknown or the record is missing.
        """
        record = payload.get("record")
        if not isinstance(record, Mapping):
            raise ValueError("Change event has no record")
        return cls(ChangeAction(payload.get("action")), Record.from_payload(record, collection_name))

    def to_dict(self) -> dict[str, Any]:
        return {"action": self.action.value, "record": self.record.to_payload()}


@dataclass(frozen=True)
class ListResult:
    """Paginated list envelope returned by list-mode queries."""

    page: int
    per_page: int
    total_items: int
    total_pages: int
    items: list[Record]

    def to_dict(self) -> dict[str, Any]:
        return {
            "page": self.page,
            "perPage": self.per_page,
            "totalItems": self.total_items,
            "totalPages": self.total_pages,
            "items": [r.to_payload() for r in self.items],
        }
