"""Remote museum service consumed by the mutator, tracker and route controller.

The components only depend on the narrow protocols below, so tests can pass
small fakes while production code uses :class:`RemoteService`.
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import Any, Protocol

from pymuseum._api import exhibits as _exhibits_api
from pymuseum._api import routes as _routes_api
from pymuseum._api import sync as _sync_api
from pymuseum._api import users as _users_api
from pymuseum._transport import Transport
from pymuseum.models.coordinate import UserCoordinate
from pymuseum.models.operations import PendingOperation
from pymuseum.models.route import RouteState, Stop


class MutationRemote(Protocol):
    async def add_favourite(self, user_id: int, exhibit_id: int) -> Any: ...

    async def remove_favourite(self, user_id: int, exhibit_id: int) -> Any: ...

    async def rate_exhibit(self, exhibit_id: int, rating: int) -> Any: ...


class CoordinateRemote(Protocol):
    async def get_coordinates(self, user_id: int) -> UserCoordinate: ...

    async def update_coordinates(self, user_id: int, lat: float, lng: float) -> Any: ...


class RouteRemote(Protocol):
    async def create_route(
        self,
        user_id: int,
        destination_id: int,
        start_lat: float,
        start_lng: float,
    ) -> RouteState: ...

    async def get_route_details(self, route_id: int, walking_speed: float | None = None) -> RouteState: ...

    async def update_route_stops(
        self,
        route_id: int,
        add_stops: Sequence[int] = (),
        remove_stops: Sequence[int] = (),
    ) -> list[Stop]: ...

    async def recalculate_route(self, route_id: int) -> RouteState: ...

    async def delete_route(self, route_id: int) -> Any: ...


class SyncRemote(Protocol):
    async def sync_operations(self, operations: Sequence[PendingOperation]) -> Any: ...


class RemoteService:
    """All backend operations over one :class:`Transport`."""

    def __init__(self, transport: Transport) -> None:
        self._transport = transport

    async def add_favourite(self, user_id: int, exhibit_id: int) -> Any:
        return await _users_api.add_favourite(self._transport, user_id, exhibit_id)

    async def remove_favourite(self, user_id: int, exhibit_id: int) -> Any:
        return await _users_api.remove_favourite(self._transport, user_id, exhibit_id)

    async def rate_exhibit(self, exhibit_id: int, rating: int) -> Any:
        return await _exhibits_api.rate_exhibit(self._transport, exhibit_id, rating)

    async def get_coordinates(self, user_id: int) -> UserCoordinate:
        return await _users_api.get_coordinates(self._transport, user_id)

    async def update_coordinates(self, user_id: int, lat: float, lng: float) -> Any:
        return await _users_api.update_coordinates(self._transport, user_id, lat, lng)

    async def create_route(
        self,
        user_id: int,
        destination_id: int,
        start_lat: float,
        start_lng: float,
    ) -> RouteState:
        return await _routes_api.create_route(self._transport, user_id, destination_id, start_lat, start_lng)

    async def get_route_details(self, route_id: int, walking_speed: float | None = None) -> RouteState:
        return await _routes_api.get_route_details(self._transport, route_id, walking_speed)

    async def update_route_stops(
        self,
        route_id: int,
        add_stops: Sequence[int] = (),
        remove_stops: Sequence[int] = (),
    ) -> list[Stop]:
        return await _routes_api.update_route_stops(self._transport, route_id, add_stops, remove_stops)

    async def recalculate_route(self, route_id: int) -> RouteState:
        return await _routes_api.recalculate_route(self._transport, route_id)

    async def delete_route(self, route_id: int) -> Any:
        return await _routes_api.delete_route(self._transport, route_id)

    async def sync_operations(self, operations: Sequence[PendingOperation]) -> Any:
        return await _sync_api.sync_operations(self._transport, operations)
