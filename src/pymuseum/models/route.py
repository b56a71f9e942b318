"""Route lifecycle models."""

from __future__ import annotations

from enum import StrEnum
from typing import Any

from pydantic import AliasChoices, Field, field_validator

from pymuseum.models._base import MuseumBaseModel, MuseumWireModel


class RouteStatus(StrEnum):
    PLANNING = "planning"
    CREATING = "creating"
    ACTIVE = "active"
    RECALCULATING = "recalculating"
    CANCELLED = "cancelled"
    SUPERSEDED = "superseded"


class Stop(MuseumBaseModel):
    """An intermediate exhibit the route passes through."""

    exhibit_id: int = Field(
        gt=0,
        validation_alias=AliasChoices("exhibit_id", "exhibitId", "stop_id", "id"),
    )
    name: str | None = Field(default=None, validation_alias=AliasChoices("name", "title"))

    @classmethod
    def coerce(cls, value: Any) -> Stop:
        """Accept a bare exhibit id or a stop dict."""
        if isinstance(value, Stop):
            return value
        if isinstance(value, int):
            return cls(exhibit_id=value)
        return cls.model_validate(value)


class RouteState(MuseumWireModel):
    """The one live route of a session.

    Parameters
    ----------
    route_id : int or None
        Server-assigned id; ``None`` until creation succeeds and for
        fallback routes.
    status : RouteStatus
        Lifecycle state.
    instructions : list of str
        Turn-by-turn walking instructions.
    distance : float
        Route length in metres.
    estimated_time : float
        Walking time in seconds.
    arrival_time : str or None
        Server-formatted arrival time (e.g. ``"12:00"``).
    stops : list of Stop
        Intermediate stops, as last confirmed by the server.
    is_fallback : bool
        ``True`` for the locally built degraded route.
    """

    route_id: int | None = Field(default=None, validation_alias=AliasChoices("route_id", "routeId", "id"))
    status: RouteStatus = RouteStatus.PLANNING
    destination_id: int | None = Field(
        default=None,
        validation_alias=AliasChoices("destination_id", "destinationId"),
    )
    destination_name: str | None = Field(
        default=None,
        validation_alias=AliasChoices("destination_name", "destinationName", "monumentName"),
    )
    instructions: list[str] = Field(default_factory=list)
    distance: float = 0.0
    estimated_time: float = Field(default=0.0, validation_alias=AliasChoices("estimated_time", "estimatedTime"))
    arrival_time: str | None = Field(default=None, validation_alias=AliasChoices("arrival_time", "arrivalTime"))
    stops: list[Stop] = Field(default_factory=list)
    is_fallback: bool = False

    @field_validator("stops", mode="before")
    @classmethod
    def _coerce_stops(cls, value: Any) -> Any:
        if isinstance(value, list):
            return [Stop.coerce(item) for item in value]
        return value

    @field_validator("instructions", mode="before")
    @classmethod
    def _coerce_instructions(cls, value: Any) -> Any:
        if value is None:
            return []
        if not isinstance(value, list):
            return value
        # Some backends send steps as {"text": ..., "distance": ...}.
        steps: list[str] = []
        for item in value:
            if isinstance(item, dict):
                steps.append(str(item.get("text") or item.get("instruction") or ""))
            else:
                steps.append(str(item))
        return steps

    @property
    def is_live(self) -> bool:
        return self.status in (RouteStatus.CREATING, RouteStatus.ACTIVE, RouteStatus.RECALCULATING)

    @property
    def stop_ids(self) -> list[int]:
        return [stop.exhibit_id for stop in self.stops]
