"""Offline sync endpoint.

Endpoints:
  - POST /sync
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import Any

from pymuseum._api._common import unwrap_data
from pymuseum._transport import Transport
from pymuseum.models.operations import PendingOperation


async def sync_operations(transport: Transport, operations: Sequence[PendingOperation]) -> Any:
    response = await transport.request("POST", "/sync", json=[op.to_wire() for op in operations])
    return unwrap_data(response)
