"""Base model and timestamp helpers for museum records.

Every record inherits from :class:`MuseumBaseModel` which provides:

* frozen instances, so cached snapshots cannot be mutated in place.
* ``populate_by_name`` so snake_case (backend) and camelCase keys are both
  accepted.
* A ``model_validator(mode="before")`` that unwraps the backend's
  ``{"success": ..., "data": {...}}`` envelope and drops blank strings so
  field defaults apply.
"""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Annotated, Any

from pydantic import BaseModel, BeforeValidator, ConfigDict, Field, model_validator

# Threshold to distinguish seconds from milliseconds.
_MS_THRESHOLD = 1_000_000_000_000


def utcnow() -> datetime:
    return datetime.now(UTC)


def parse_timestamp(value: Any) -> Any:
    """Coerce epoch seconds/milliseconds or naive datetimes to aware UTC datetimes.

    ISO strings are left to pydantic's own datetime parsing.
    """
    if value is None:
        return value
    if isinstance(value, datetime):
        return value if value.tzinfo is not None else value.replace(tzinfo=UTC)
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        ts = float(value)
        if ts >= _MS_THRESHOLD:
            ts /= 1000.0
        return datetime.fromtimestamp(ts, tz=UTC)
    return value


Timestamp = Annotated[datetime, BeforeValidator(parse_timestamp)]
"""Annotated type accepting ISO strings, epoch seconds/ms, or datetimes."""


def unwrap_envelope(values: Any) -> Any:
    """Return ``values["data"]`` when *values* is a ``{success, data}`` envelope."""
    if isinstance(values, dict) and "data" in values and ("success" in values or "message" in values):
        inner = values.get("data")
        if isinstance(inner, (dict, list)):
            return inner
    return values


class MuseumBaseModel(BaseModel):
    """Base for museum records and API responses."""

    model_config = ConfigDict(
        frozen=True,
        extra="ignore",
        populate_by_name=True,
    )

    @model_validator(mode="before")
    @classmethod
    def _clean_values(cls, values: Any) -> Any:
        values = unwrap_envelope(values)
        if not isinstance(values, dict):
            return values
        cleaned = {k: v for k, v in values.items() if not (isinstance(v, str) and not v.strip())}
        # Wire models keep the payload they were parsed from.
        if "raw" in cls.model_fields and "raw" not in values:
            cleaned["raw"] = dict(values)
        return cleaned


class MuseumWireModel(MuseumBaseModel):
    """Base for models parsed from backend responses."""

    raw: dict[str, Any] = Field(default_factory=dict, exclude=True, repr=False)
