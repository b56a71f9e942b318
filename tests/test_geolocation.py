from __future__ import annotations

import asyncio
from collections.abc import Callable
from datetime import UTC, datetime, timedelta

import pytest

from pymuseum.exceptions import MuseumPositionUnavailableError
from pymuseum.geolocation import GeolocationOptions, GeolocationSource, StaticPositionProvider
from pymuseum.models.coordinate import UserCoordinate

_FAST = GeolocationOptions(timeout=0.05, interval=0.005)


class _StepClock:
    def __init__(self) -> None:
        self._now = datetime(2026, 1, 1, tzinfo=UTC)

    def __call__(self) -> datetime:
        self._now += timedelta(seconds=1)
        return self._now


class _HangingProvider:
    async def acquire(self, *, high_accuracy: bool, timeout: float) -> UserCoordinate:
        await asyncio.sleep(3600)
        raise AssertionError("unreachable")


class _BrokenProvider:
    async def acquire(self, *, high_accuracy: bool, timeout: float) -> UserCoordinate:
        raise OSError("sensor offline")


async def _wait_for(predicate: Callable[[], bool], timeout: float = 1.0) -> None:
    async def _poll() -> None:
        while not predicate():
            await asyncio.sleep(0.005)

    await asyncio.wait_for(_poll(), timeout)


@pytest.mark.asyncio
async def test_subscription_delivers_fresh_samples() -> None:
    provider = StaticPositionProvider(40.761, -73.978, accuracy=5.0, clock=_StepClock())
    samples: list[UserCoordinate] = []

    subscription = GeolocationSource(provider, options=_FAST).subscribe(samples.append)
    await _wait_for(lambda: len(samples) >= 2)
    subscription.unsubscribe()
    await subscription.wait_closed()

    assert samples[0].lat == pytest.approx(40.761)
    assert samples[0].timestamp < samples[1].timestamp
    assert subscription.latest == samples[-1]


@pytest.mark.asyncio
async def test_no_callback_after_unsubscribe() -> None:
    provider = StaticPositionProvider(1.0, 2.0, clock=_StepClock())
    samples: list[UserCoordinate] = []
    subscription = GeolocationSource(provider, options=_FAST).subscribe(samples.append)
    await _wait_for(lambda: len(samples) >= 1)

    subscription.unsubscribe()
    subscription.unsubscribe()
    seen = len(samples)
    await asyncio.sleep(0.05)

    assert len(samples) == seen
    assert not subscription.active


@pytest.mark.asyncio
async def test_unavailable_position_reported_as_error() -> None:
    provider = StaticPositionProvider(1.0, 2.0, clock=_StepClock())
    provider.available = False
    errors: list[MuseumPositionUnavailableError] = []

    subscription = GeolocationSource(provider, options=_FAST).subscribe(lambda _c: None, errors.append)
    await _wait_for(lambda: len(errors) >= 1)
    subscription.unsubscribe()
    await subscription.wait_closed()

    assert isinstance(subscription.last_error, MuseumPositionUnavailableError)


@pytest.mark.asyncio
async def test_timeout_reported_as_position_unavailable() -> None:
    errors: list[MuseumPositionUnavailableError] = []
    options = GeolocationOptions(timeout=0.01, interval=0.001)

    subscription = GeolocationSource(_HangingProvider(), options=options).subscribe(lambda _c: None, errors.append)
    await _wait_for(lambda: len(errors) >= 1)
    subscription.unsubscribe()
    await subscription.wait_closed()

    assert isinstance(errors[0].__cause__, TimeoutError)


@pytest.mark.asyncio
async def test_provider_failure_wrapped() -> None:
    errors: list[MuseumPositionUnavailableError] = []

    subscription = GeolocationSource(_BrokenProvider(), options=_FAST).subscribe(lambda _c: None, errors.append)
    await _wait_for(lambda: len(errors) >= 1)
    subscription.unsubscribe()
    await subscription.wait_closed()

    assert "sensor offline" in str(errors[0])


@pytest.mark.asyncio
async def test_repeated_fix_is_not_replayed() -> None:
    fixed = datetime(2026, 1, 1, tzinfo=UTC)
    provider = StaticPositionProvider(1.0, 2.0, clock=lambda: fixed)
    samples: list[UserCoordinate] = []

    subscription = GeolocationSource(provider, options=_FAST).subscribe(samples.append)
    await asyncio.sleep(0.05)
    subscription.unsubscribe()
    await subscription.wait_closed()

    assert len(samples) == 1


@pytest.mark.asyncio
async def test_fix_older_than_maximum_age_is_discarded() -> None:
    old = datetime(2020, 1, 1, tzinfo=UTC)
    provider = StaticPositionProvider(1.0, 2.0, clock=lambda: old)
    options = GeolocationOptions(timeout=0.05, interval=0.005, maximum_age=30.0)
    samples: list[UserCoordinate] = []

    subscription = GeolocationSource(provider, options=options).subscribe(samples.append)
    await asyncio.sleep(0.03)
    subscription.unsubscribe()
    await subscription.wait_closed()

    assert samples == []
