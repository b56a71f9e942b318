"""Exhibit rating endpoint.

Endpoints:
  - POST /exhibits/{exhibit_id}/ratings
"""

from __future__ import annotations

from typing import Any

from pymuseum._api._common import unwrap_data
from pymuseum._transport import Transport


async def rate_exhibit(transport: Transport, exhibit_id: int, rating: int) -> Any:
    response = await transport.request(
        "POST",
        f"/exhibits/{exhibit_id}/ratings",
        json={"rating": rating},
    )
    return unwrap_data(response)
