"""Mutations recorded while the backend could not be reached."""

from __future__ import annotations

from enum import StrEnum
from typing import Any

from pydantic import AliasChoices, Field

from pymuseum.models._base import MuseumBaseModel, Timestamp, utcnow


class OperationKind(StrEnum):
    ADD_FAVOURITE = "add_favourite"
    REMOVE_FAVOURITE = "remove_favourite"
    RATE_EXHIBIT = "rate_exhibit"


# Operation names understood by the sync endpoint.
_WIRE_OPERATION_TYPES: dict[OperationKind, str] = {
    OperationKind.ADD_FAVOURITE: "add_favorite",
    OperationKind.REMOVE_FAVOURITE: "remove_favorite",
    OperationKind.RATE_EXHIBIT: "rating",
}


class PendingOperation(MuseumBaseModel):
    """One queued mutation, replayed in FIFO order by a manual sync."""

    kind: OperationKind
    payload: dict[str, Any] = Field(default_factory=dict)
    local_timestamp: Timestamp = Field(
        default_factory=utcnow,
        validation_alias=AliasChoices("local_timestamp", "localTimestamp"),
    )

    @property
    def exhibit_id(self) -> int | None:
        value = self.payload.get("exhibit_id")
        return value if isinstance(value, int) else None

    def to_wire(self) -> dict[str, Any]:
        """Flat record sent to the sync endpoint."""
        record: dict[str, Any] = {
            "operation_type": _WIRE_OPERATION_TYPES[self.kind],
            "exhibit_id": self.exhibit_id,
        }
        if self.kind == OperationKind.RATE_EXHIBIT:
            record["rating"] = self.payload.get("rating")
        record["local_timestamp"] = self.local_timestamp.isoformat()
        return record
