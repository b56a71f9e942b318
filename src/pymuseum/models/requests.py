"""Pydantic request models for client entrypoints.

These models provide a consistent "validate -> normalize -> execute" flow.
Validation happens before any optimistic state change, so a rejected
input never touches the cache.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from pymuseum._constants import RATING_MAX, RATING_MIN
from pymuseum.exceptions import MuseumValidationError


class _Request(BaseModel):
    model_config = ConfigDict(
        frozen=True,
        extra="forbid",
        validate_default=True,
        str_strip_whitespace=True,
    )


class ExhibitRequest(_Request):
    """Request targeting a single exhibit."""

    exhibit_id: int = Field(gt=0)
    title: str = ""
    subtitle: str | None = None


class FavouriteRequest(ExhibitRequest):
    user_id: int = Field(gt=0)


class RatingRequest(ExhibitRequest):
    rating: int = Field(ge=RATING_MIN, le=RATING_MAX)


class CreateRouteRequest(_Request):
    user_id: int = Field(gt=0)
    destination_id: int = Field(gt=0)
    start_lat: float = Field(ge=-90.0, le=90.0)
    start_lng: float = Field(ge=-180.0, le=180.0)


class UpdateStopsRequest(_Request):
    route_id: int = Field(gt=0)
    add_stops: list[int] = Field(default_factory=list)
    remove_stops: list[int] = Field(default_factory=list)


def validate_request(model: type[BaseModel], **values: Any) -> Any:
    """Build *model* from *values*, mapping failures to :class:`MuseumValidationError`."""
    try:
        return model(**values)
    except ValidationError as exc:
        raise MuseumValidationError(f"Invalid {model.__name__}: {exc.errors(include_url=False)}") from exc
