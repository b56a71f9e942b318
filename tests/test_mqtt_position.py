from __future__ import annotations

import asyncio
import json
from datetime import UTC, datetime

import pytest

from pymuseum._mqtt import MqttPositionFeed, MqttPositionProvider, parse_position_payload
from pymuseum.exceptions import MuseumPositionUnavailableError
from pymuseum.models.coordinate import UserCoordinate


def _payload(**fields: object) -> bytes:
    return json.dumps(fields).encode("utf-8")


def _running_provider() -> MqttPositionProvider:
    provider = MqttPositionProvider(MqttPositionFeed(broker_host="broker.local", topic="owntracks/visitor/phone"))
    # Bypass the broker connection; acquire only needs a running runtime + loop.
    provider._loop = asyncio.get_running_loop()  # type: ignore[attr-defined]
    provider._running = True  # type: ignore[attr-defined]
    return provider


def test_parse_owntracks_location() -> None:
    coordinate = parse_position_payload(_payload(_type="location", lat=40.761, lon=-73.978, acc=8, tst=1767225600))

    assert coordinate is not None
    assert (coordinate.lat, coordinate.lng, coordinate.accuracy) == (40.761, -73.978, 8.0)
    assert coordinate.timestamp == datetime(2026, 1, 1, tzinfo=UTC)


def test_parse_ignores_other_message_types_and_garbage() -> None:
    assert parse_position_payload(_payload(_type="transition", lat=1, lon=2)) is None
    assert parse_position_payload(b"\xff\xfe") is None
    assert parse_position_payload(b"[1, 2]") is None
    assert parse_position_payload(_payload(_type="location", lat=123, lon=2)) is None


@pytest.mark.asyncio
async def test_acquire_resolves_with_next_fix() -> None:
    provider = _running_provider()

    waiter = asyncio.create_task(provider.acquire(high_accuracy=False, timeout=1.0))
    await asyncio.sleep(0)
    provider._deliver(UserCoordinate(lat=1.0, lng=2.0, accuracy=500.0))  # type: ignore[attr-defined]

    coordinate = await waiter
    assert coordinate.accuracy == 500.0


@pytest.mark.asyncio
async def test_high_accuracy_waiter_skips_coarse_fix() -> None:
    provider = _running_provider()

    waiter = asyncio.create_task(provider.acquire(high_accuracy=True, timeout=1.0))
    await asyncio.sleep(0)
    provider._deliver(UserCoordinate(lat=1.0, lng=2.0, accuracy=500.0))  # type: ignore[attr-defined]
    await asyncio.sleep(0)
    assert not waiter.done()

    provider._deliver(UserCoordinate(lat=1.5, lng=2.5, accuracy=5.0))  # type: ignore[attr-defined]

    coordinate = await waiter
    assert coordinate.lat == 1.5


@pytest.mark.asyncio
async def test_acquire_timeout_is_position_unavailable() -> None:
    provider = _running_provider()

    with pytest.raises(MuseumPositionUnavailableError):
        await provider.acquire(high_accuracy=False, timeout=0.01)

    assert provider._waiters == []  # type: ignore[attr-defined]


@pytest.mark.asyncio
async def test_acquire_requires_running_feed() -> None:
    provider = MqttPositionProvider(MqttPositionFeed(broker_host="broker.local", topic="t"))

    assert not provider.is_running
    with pytest.raises(MuseumPositionUnavailableError):
        await provider.acquire(high_accuracy=False, timeout=1.0)


@pytest.mark.asyncio
async def test_stop_fails_pending_waiters() -> None:
    provider = _running_provider()
    waiter = asyncio.create_task(provider.acquire(high_accuracy=False, timeout=1.0))
    await asyncio.sleep(0)

    await provider.stop()

    with pytest.raises(MuseumPositionUnavailableError):
        await waiter
    assert not provider.is_running
