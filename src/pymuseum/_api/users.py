"""Visitor endpoints: favourites and coordinates.

Endpoints:
  - POST   /users/{user_id}/favourites
  - DELETE /users/{user_id}/favourites/{exhibit_id}
  - GET    /coordinates/{user_id}
  - PUT    /coordinates/{user_id}
"""

from __future__ import annotations

from typing import Any

from pymuseum._api._common import expect_dict, parse_model, unwrap_data
from pymuseum._transport import Transport
from pymuseum.models.coordinate import UserCoordinate


async def add_favourite(transport: Transport, user_id: int, exhibit_id: int) -> Any:
    response = await transport.request(
        "POST",
        f"/users/{user_id}/favourites",
        json={"exhibit_id": exhibit_id},
    )
    return unwrap_data(response)


async def remove_favourite(transport: Transport, user_id: int, exhibit_id: int) -> Any:
    response = await transport.request("DELETE", f"/users/{user_id}/favourites/{exhibit_id}")
    return unwrap_data(response)


async def get_coordinates(transport: Transport, user_id: int) -> UserCoordinate:
    endpoint = f"/coordinates/{user_id}"
    response = await transport.request("GET", endpoint)
    return parse_model(UserCoordinate, expect_dict(response, endpoint=endpoint), endpoint=endpoint)


async def update_coordinates(transport: Transport, user_id: int, lat: float, lng: float) -> Any:
    response = await transport.request(
        "PUT",
        f"/coordinates/{user_id}",
        json={"lat": lat, "lng": lng},
    )
    return unwrap_data(response)
