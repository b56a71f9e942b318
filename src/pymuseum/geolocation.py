"""Continuous device position as a cancellable subscription."""

from __future__ import annotations

import asyncio
import dataclasses
import logging
from collections.abc import Callable
from datetime import UTC, datetime
from typing import Protocol

from pymuseum._constants import GEOLOCATION_TIMEOUT_SECONDS
from pymuseum.exceptions import MuseumPositionUnavailableError
from pymuseum.models.coordinate import UserCoordinate

_logger = logging.getLogger(__name__)

SampleCallback = Callable[[UserCoordinate], None]
ErrorCallback = Callable[[MuseumPositionUnavailableError], None]


def _utcnow() -> datetime:
    return datetime.now(UTC)


class PositionProvider(Protocol):
    """Something that can produce one fresh position fix on demand."""

    async def acquire(self, *, high_accuracy: bool, timeout: float) -> UserCoordinate:
        ...


@dataclasses.dataclass(frozen=True)
class GeolocationOptions:
    """Sampling options.

    Parameters
    ----------
    high_accuracy : bool
        Ask the provider for its most accurate fix.
    timeout : float
        Seconds allowed for one fix before it counts as unavailable.
    maximum_age : float
        Oldest acceptable fix in seconds.  ``0`` accepts only fixes newer
        than the last one delivered (no cached fix is ever replayed).
    interval : float
        Pause between consecutive fix requests.
    """

    high_accuracy: bool = True
    timeout: float = GEOLOCATION_TIMEOUT_SECONDS
    maximum_age: float = 0.0
    interval: float = 1.0


class GeolocationSubscription:
    """A running position watch.

    Samples and errors are delivered on the event loop that created the
    subscription.  :meth:`unsubscribe` may be called any number of times;
    after the first call no callback fires again.
    """

    def __init__(
        self,
        provider: PositionProvider,
        options: GeolocationOptions,
        on_sample: SampleCallback,
        on_error: ErrorCallback | None,
        *,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._provider = provider
        self._options = options
        self._on_sample: SampleCallback | None = on_sample
        self._on_error = on_error
        self._clock = clock
        self._latest: UserCoordinate | None = None
        self._last_error: MuseumPositionUnavailableError | None = None
        self._task: asyncio.Task[None] | None = None

    @property
    def active(self) -> bool:
        return self._on_sample is not None

    @property
    def latest(self) -> UserCoordinate | None:
        return self._latest

    @property
    def last_error(self) -> MuseumPositionUnavailableError | None:
        return self._last_error

    def _start(self) -> None:
        self._task = asyncio.get_running_loop().create_task(self._run(), name="pymuseum-geolocation")

    def unsubscribe(self) -> None:
        """Stop watching.  Safe to call repeatedly."""
        if self._on_sample is None:
            return
        self._on_sample = None
        self._on_error = None
        task = self._task
        if task is not None and not task.done():
            task.cancel()

    async def wait_closed(self) -> None:
        """Wait until the background task has fully exited."""
        task = self._task
        if task is None:
            return
        try:
            await task
        except asyncio.CancelledError:
            pass

    def _is_fresh(self, sample: UserCoordinate) -> bool:
        previous = self._latest
        if previous is not None and sample.timestamp <= previous.timestamp:
            return False
        if self._options.maximum_age > 0:
            age = (self._clock() - sample.timestamp).total_seconds()
            return age <= self._options.maximum_age
        return True

    async def _acquire(self) -> UserCoordinate:
        try:
            return await asyncio.wait_for(
                self._provider.acquire(
                    high_accuracy=self._options.high_accuracy,
                    timeout=self._options.timeout,
                ),
                self._options.timeout,
            )
        except TimeoutError as exc:
            raise MuseumPositionUnavailableError(
                f"No position fix within {self._options.timeout:.1f}s"
            ) from exc
        except MuseumPositionUnavailableError:
            raise
        except Exception as exc:
            raise MuseumPositionUnavailableError(f"Position provider failed: {exc}") from exc

    async def _run(self) -> None:
        while self.active:
            try:
                sample = await self._acquire()
            except MuseumPositionUnavailableError as exc:
                self._deliver_error(exc)
            else:
                if self._is_fresh(sample):
                    self._deliver_sample(sample)
                else:
                    _logger.debug("Discarding cached position fix from %s", sample.timestamp.isoformat())
            await asyncio.sleep(self._options.interval)

    def _deliver_sample(self, sample: UserCoordinate) -> None:
        callback = self._on_sample
        if callback is None:
            return
        self._latest = sample
        self._last_error = None
        try:
            callback(sample)
        except Exception:
            _logger.debug("Position sample callback failed", exc_info=True)

    def _deliver_error(self, error: MuseumPositionUnavailableError) -> None:
        if not self.active:
            return
        self._last_error = error
        callback = self._on_error
        if callback is None:
            return
        try:
            callback(error)
        except Exception:
            _logger.debug("Position error callback failed", exc_info=True)


class GeolocationSource:
    """Wrap a :class:`PositionProvider` as a stream of fresh fixes."""

    def __init__(
        self,
        provider: PositionProvider,
        *,
        options: GeolocationOptions | None = None,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._provider = provider
        self._options = options or GeolocationOptions()
        self._clock = clock

    @property
    def options(self) -> GeolocationOptions:
        return self._options

    def subscribe(
        self,
        on_sample: SampleCallback,
        on_error: ErrorCallback | None = None,
    ) -> GeolocationSubscription:
        """Start watching; must be called from a running event loop."""
        subscription = GeolocationSubscription(
            self._provider,
            self._options,
            on_sample,
            on_error,
            clock=self._clock,
        )
        subscription._start()
        return subscription


class StaticPositionProvider:
    """Report a fixed position, freshly timestamped on every request.

    Useful for kiosks with a known location and for tests.  Set
    :attr:`available` to ``False`` to simulate a denied or lost fix.
    """

    def __init__(
        self,
        lat: float,
        lng: float,
        *,
        accuracy: float | None = None,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self.lat = lat
        self.lng = lng
        self.accuracy = accuracy
        self.available = True
        self._clock = clock

    async def acquire(self, *, high_accuracy: bool, timeout: float) -> UserCoordinate:
        if not self.available:
            raise MuseumPositionUnavailableError("Position unavailable")
        return UserCoordinate(lat=self.lat, lng=self.lng, accuracy=self.accuracy, timestamp=self._clock())
