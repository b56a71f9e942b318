"""Tests for pydantic model parsing with MuseumBaseModel."""

from __future__ import annotations

from datetime import UTC, datetime, timedelta

import pytest
from pydantic import ValidationError

from pymuseum.models import (
    FavouriteRecord,
    OperationKind,
    PendingOperation,
    RatingRecord,
    RouteState,
    RouteStatus,
    Stop,
    UserCoordinate,
)

# ------------------------------------------------------------------
# Records
# ------------------------------------------------------------------


class TestRecords:
    def test_camel_case_keys_accepted(self) -> None:
        record = FavouriteRecord.model_validate({"exhibitId": 42, "title": "Sunflowers", "subtitle": ""})

        assert record.key == 42
        # Blank strings fall back to defaults.
        assert record.subtitle is None

    def test_rating_bounds(self) -> None:
        with pytest.raises(ValidationError):
            RatingRecord(exhibit_id=1, rating=0)
        with pytest.raises(ValidationError):
            RatingRecord(exhibit_id=1, rating=6)

    def test_exhibit_id_must_be_positive(self) -> None:
        with pytest.raises(ValidationError):
            FavouriteRecord(exhibit_id=0)

    def test_rating_created_at_from_epoch_millis(self) -> None:
        record = RatingRecord.model_validate({"exhibit_id": 1, "rating": 4, "createdAt": 1767225600000})

        assert record.created_at == datetime(2026, 1, 1, tzinfo=UTC)

    def test_records_are_frozen(self) -> None:
        record = FavouriteRecord(exhibit_id=1)
        with pytest.raises(ValidationError):
            record.title = "changed"  # type: ignore[misc]

    def test_round_trip_through_json_dump(self) -> None:
        record = RatingRecord(exhibit_id=3, rating=5, title="Guernica")

        assert RatingRecord.model_validate(record.model_dump(mode="json")) == record


# ------------------------------------------------------------------
# Pending operations
# ------------------------------------------------------------------


class TestPendingOperation:
    def test_exhibit_id_from_payload(self) -> None:
        op = PendingOperation(kind=OperationKind.RATE_EXHIBIT, payload={"exhibit_id": 42, "rating": 5})

        assert op.exhibit_id == 42

    def test_unknown_kind_rejected(self) -> None:
        with pytest.raises(ValidationError):
            PendingOperation.model_validate({"kind": "delete_everything", "payload": {}})

    def test_naive_timestamp_treated_as_utc(self) -> None:
        op = PendingOperation(kind=OperationKind.ADD_FAVOURITE, local_timestamp=datetime(2026, 1, 1, 8, 30))

        assert op.local_timestamp.utcoffset() == timedelta(0)


# ------------------------------------------------------------------
# Coordinates
# ------------------------------------------------------------------


class TestUserCoordinate:
    def test_aliases_and_envelope(self) -> None:
        coordinate = UserCoordinate.model_validate(
            {"success": True, "message": "ok", "data": {"latitude": 48.86, "longitude": 2.34, "acc": 12}}
        )

        assert (coordinate.lat, coordinate.lng, coordinate.accuracy) == (48.86, 2.34, 12.0)

    @pytest.mark.parametrize("lat,lng", [(91.0, 0.0), (-91.0, 0.0), (0.0, 181.0), (0.0, -181.0)])
    def test_out_of_range_rejected(self, lat: float, lng: float) -> None:
        with pytest.raises(ValidationError):
            UserCoordinate(lat=lat, lng=lng)

    def test_epoch_seconds_timestamp(self) -> None:
        coordinate = UserCoordinate.model_validate({"lat": 1, "lon": 2, "tst": 1767225600})

        assert coordinate.timestamp == datetime(2026, 1, 1, tzinfo=UTC)


# ------------------------------------------------------------------
# Routes
# ------------------------------------------------------------------


class TestRouteState:
    def test_server_payload(self) -> None:
        route = RouteState.model_validate(
            {
                "routeId": 8,
                "monumentName": "Sunflowers",
                "instructions": [{"instruction": "Go up"}, "Turn right"],
                "distance": "450",
                "estimatedTime": 300,
                "stops": [3, {"stop_id": 4, "name": "Mona Lisa"}],
            }
        )

        assert route.route_id == 8
        assert route.status == RouteStatus.PLANNING
        assert route.destination_name == "Sunflowers"
        assert route.instructions == ["Go up", "Turn right"]
        assert route.distance == 450.0
        assert route.stop_ids == [3, 4]
        assert not route.is_live

    def test_stop_coerce(self) -> None:
        stop = Stop(exhibit_id=9, name="The Kiss")

        assert Stop.coerce(stop) is stop
        assert Stop.coerce(9).exhibit_id == 9
        assert Stop.coerce({"exhibitId": 9}).exhibit_id == 9

    def test_raw_payload_kept_but_not_dumped(self) -> None:
        route = RouteState.model_validate({"success": True, "data": {"routeId": 8, "legacyField": "x"}})

        assert route.raw == {"routeId": 8, "legacyField": "x"}
        assert "raw" not in route.model_dump()
