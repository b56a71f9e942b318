"""Visitor position model."""

from __future__ import annotations

from pydantic import AliasChoices, Field

from pymuseum.models._base import MuseumWireModel, Timestamp, utcnow


class UserCoordinate(MuseumWireModel):
    """A single position sample.

    Transient: the tracker keeps only the latest one.

    Parameters
    ----------
    lat : float
        Latitude in degrees, -90..90.
    lng : float
        Longitude in degrees, -180..180.
    accuracy : float or None
        Horizontal accuracy radius in metres, when the source reports it.
    timestamp : datetime
        When the fix was taken (UTC).
    """

    lat: float = Field(ge=-90.0, le=90.0, validation_alias=AliasChoices("lat", "latitude"))
    lng: float = Field(
        ge=-180.0,
        le=180.0,
        validation_alias=AliasChoices("lng", "lon", "longitude"),
    )
    accuracy: float | None = Field(default=None, ge=0.0, validation_alias=AliasChoices("accuracy", "acc"))
    timestamp: Timestamp = Field(
        default_factory=utcnow,
        validation_alias=AliasChoices("timestamp", "tst", "time"),
    )
