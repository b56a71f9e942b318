"""Data models for pymuseum."""

from pymuseum.models.coordinate import UserCoordinate
from pymuseum.models.operations import OperationKind, PendingOperation
from pymuseum.models.records import FavouriteRecord, RatingRecord
from pymuseum.models.route import RouteState, RouteStatus, Stop

__all__ = [
    "FavouriteRecord",
    "OperationKind",
    "PendingOperation",
    "RatingRecord",
    "RouteState",
    "RouteStatus",
    "Stop",
    "UserCoordinate",
]
