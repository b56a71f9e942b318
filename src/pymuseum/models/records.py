"""Locally cached visitor actions."""

from __future__ import annotations

from pydantic import AliasChoices, Field

from pymuseum._constants import RATING_MAX, RATING_MIN
from pymuseum.models._base import MuseumBaseModel, Timestamp, utcnow


class FavouriteRecord(MuseumBaseModel):
    """An exhibit the visitor has favourited.

    Unique by ``exhibit_id`` within the favourites collection.
    """

    exhibit_id: int = Field(gt=0, validation_alias=AliasChoices("exhibit_id", "exhibitId"))
    title: str = ""
    subtitle: str | None = None

    @property
    def key(self) -> int:
        return self.exhibit_id


class RatingRecord(MuseumBaseModel):
    """The visitor's rating of an exhibit.

    Unique by ``exhibit_id``; a newer rating replaces the older one.
    """

    exhibit_id: int = Field(gt=0, validation_alias=AliasChoices("exhibit_id", "exhibitId"))
    rating: int = Field(ge=RATING_MIN, le=RATING_MAX)
    title: str = ""
    created_at: Timestamp = Field(
        default_factory=utcnow,
        validation_alias=AliasChoices("created_at", "createdAt"),
    )

    @property
    def key(self) -> int:
        return self.exhibit_id
