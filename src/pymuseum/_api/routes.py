"""Route endpoints.

Endpoints:
  - POST   /routes              (create)
  - GET    /routes/{route_id}   (details)
  - PUT    /routes/{route_id}   (update stops)
  - POST   /routes/{route_id}   (recalculate)
  - DELETE /routes/{route_id}   (cancel)
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import Any

from pydantic import ValidationError

from pymuseum._api._common import expect_dict, malformed_response, parse_model, unwrap_data
from pymuseum._transport import Transport
from pymuseum.models.route import RouteState, Stop


# Lifecycle fields tracked client-side; a backend value for them is ignored.
_CLIENT_OWNED_KEYS = frozenset({"status", "is_fallback"})


def _parse_route(response: Any, *, endpoint: str) -> RouteState:
    data = expect_dict(response, endpoint=endpoint)
    values = {key: value for key, value in data.items() if key not in _CLIENT_OWNED_KEYS}
    values["raw"] = data
    return parse_model(RouteState, values, endpoint=endpoint)


async def create_route(
    transport: Transport,
    user_id: int,
    destination_id: int,
    start_lat: float,
    start_lng: float,
) -> RouteState:
    response = await transport.request(
        "POST",
        "/routes",
        json={
            "user_id": user_id,
            "destination_id": destination_id,
            "startLat": start_lat,
            "startLng": start_lng,
        },
    )
    return _parse_route(response, endpoint="/routes")


async def get_route_details(
    transport: Transport,
    route_id: int,
    walking_speed: float | None = None,
) -> RouteState:
    endpoint = f"/routes/{route_id}"
    response = await transport.request("GET", endpoint, params={"walkingSpeed": walking_speed})
    return _parse_route(response, endpoint=endpoint)


async def update_route_stops(
    transport: Transport,
    route_id: int,
    add_stops: Sequence[int] = (),
    remove_stops: Sequence[int] = (),
) -> list[Stop]:
    """Return the server's stop list after the update."""
    endpoint = f"/routes/{route_id}"
    response = await transport.request(
        "PUT",
        endpoint,
        json={"addStops": list(add_stops), "removeStops": list(remove_stops)},
    )
    data = unwrap_data(response)
    if isinstance(data, dict):
        data = data.get("stops", [])
    if not isinstance(data, list):
        data = []
    try:
        return [Stop.coerce(item) for item in data]
    except ValidationError as exc:
        raise malformed_response(endpoint, exc) from exc


async def recalculate_route(transport: Transport, route_id: int) -> RouteState:
    endpoint = f"/routes/{route_id}"
    response = await transport.request("POST", endpoint)
    return _parse_route(response, endpoint=endpoint)


async def delete_route(transport: Transport, route_id: int) -> Any:
    response = await transport.request("DELETE", f"/routes/{route_id}")
    return unwrap_data(response)
