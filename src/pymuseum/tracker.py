"""Live position tracking during an active route.

While tracking, a timer ticks every ``interval`` seconds.  Each tick pushes
one position to the coordinate endpoint unless the previous push is still
in flight, in which case the tick is dropped: only the freshest position
matters, and two concurrent pushes could land out of order.
"""

from __future__ import annotations

import asyncio
import logging
import random
from enum import StrEnum

from pymuseum._constants import (
    DEFAULT_LAT,
    DEFAULT_LNG,
    LOCATION_UPDATE_INTERVAL_SECONDS,
    SIMULATED_JITTER_DEGREES,
)
from pymuseum.exceptions import MuseumError, MuseumPositionUnavailableError
from pymuseum.geolocation import GeolocationSource, GeolocationSubscription
from pymuseum.models.coordinate import UserCoordinate
from pymuseum.remote import CoordinateRemote

_logger = logging.getLogger(__name__)


class TrackerState(StrEnum):
    IDLE = "idle"
    TRACKING = "tracking"


def _clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))


class NavigationTracker:
    """Push the visitor's position to the backend while navigating.

    Parameters
    ----------
    remote : CoordinateRemote
        Backend coordinate endpoints.
    user_id : int
        Visitor whose position is updated.
    geolocation : GeolocationSource or None
        Live position source.  Without one, or while it reports no fix,
        positions are simulated by perturbing the last known coordinate.
    interval : float
        Seconds between ticks.
    default_coordinate : tuple of float
        Seed for simulation before anything is known.
    jitter : float
        Full width in degrees of the simulated perturbation.
    rng : random.Random or None
        Randomness for simulation (inject a seeded one in tests).
    """

    def __init__(
        self,
        remote: CoordinateRemote,
        user_id: int,
        *,
        geolocation: GeolocationSource | None = None,
        interval: float = LOCATION_UPDATE_INTERVAL_SECONDS,
        default_coordinate: tuple[float, float] = (DEFAULT_LAT, DEFAULT_LNG),
        jitter: float = SIMULATED_JITTER_DEGREES,
        rng: random.Random | None = None,
    ) -> None:
        if interval <= 0:
            raise ValueError("interval must be positive")
        self._remote = remote
        self._user_id = user_id
        self._geolocation = geolocation
        self._interval = interval
        self._default = default_coordinate
        self._jitter = jitter
        self._rng = rng or random.Random()

        self._state = TrackerState.IDLE
        self._generation = 0
        self._timer: asyncio.Task[None] | None = None
        self._push_task: asyncio.Task[None] | None = None
        self._subscription: GeolocationSubscription | None = None
        self._last_known: UserCoordinate | None = None
        self._degraded = True

        self.pushes_started = 0
        self.ticks_skipped = 0

    # ------------------------------------------------------------------
    # State
    # ------------------------------------------------------------------

    @property
    def state(self) -> TrackerState:
        return self._state

    @property
    def tracking(self) -> bool:
        return self._state == TrackerState.TRACKING

    @property
    def last_known(self) -> UserCoordinate | None:
        """Last position the backend acknowledged (or loaded initially)."""
        return self._last_known

    @property
    def degraded(self) -> bool:
        """``True`` while positions are simulated (no live fix yet, or the fix was lost)."""
        return self._degraded

    @property
    def push_in_flight(self) -> bool:
        return self._push_task is not None and not self._push_task.done()

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def load_initial_position(self) -> UserCoordinate | None:
        """Seed ``last_known`` from the backend; failures leave it unchanged."""
        try:
            coordinate = await self._remote.get_coordinates(self._user_id)
        except MuseumError as exc:
            _logger.debug("Could not load initial position: %s", exc)
            return None
        self._last_known = coordinate
        return coordinate

    def start(self) -> None:
        """Idle -> Tracking.  Must be called from a running event loop."""
        if self._state == TrackerState.TRACKING:
            return
        loop = asyncio.get_running_loop()
        self._state = TrackerState.TRACKING
        self._generation += 1
        if self._geolocation is not None:
            self._subscription = self._geolocation.subscribe(self._on_position, self._on_position_error)
        self._timer = loop.create_task(self._run_timer(self._generation), name="pymuseum-tracker")
        _logger.debug("Tracking started for user %s every %.1fs", self._user_id, self._interval)

    def stop(self) -> None:
        """Tracking -> Idle.

        Idempotent and synchronous: an in-flight push is cancelled, not
        awaited, and whatever it returns afterwards is ignored.
        """
        if self._state == TrackerState.IDLE:
            return
        self._state = TrackerState.IDLE
        self._generation += 1

        timer, self._timer = self._timer, None
        if timer is not None and not timer.done():
            timer.cancel()
        push, self._push_task = self._push_task, None
        if push is not None and not push.done():
            push.cancel()
        subscription, self._subscription = self._subscription, None
        if subscription is not None:
            subscription.unsubscribe()
        _logger.debug("Tracking stopped for user %s", self._user_id)

    async def aclose(self) -> None:
        """Stop and let cancelled tasks unwind."""
        timer, push = self._timer, self._push_task
        subscription = self._subscription
        self.stop()
        for task in (timer, push):
            if task is None:
                continue
            try:
                await task
            except asyncio.CancelledError:
                pass
        if subscription is not None:
            await subscription.wait_closed()

    # ------------------------------------------------------------------
    # Ticking
    # ------------------------------------------------------------------

    async def _run_timer(self, generation: int) -> None:
        while self._generation == generation:
            await asyncio.sleep(self._interval)
            if self._generation != generation:
                return
            self.tick()

    def tick(self) -> bool:
        """Run one timer tick.  Returns ``True`` if a push was started."""
        if not self.tracking:
            return False
        if self.push_in_flight:
            self.ticks_skipped += 1
            _logger.debug("Coordinate push still in flight; skipping tick")
            return False
        coordinate = self._next_coordinate()
        self.pushes_started += 1
        self._push_task = asyncio.get_running_loop().create_task(
            self._push(coordinate, self._generation),
            name="pymuseum-coordinate-push",
        )
        return True

    def _next_coordinate(self) -> UserCoordinate:
        subscription = self._subscription
        if subscription is not None and subscription.latest is not None and subscription.last_error is None:
            self._degraded = False
            return subscription.latest
        self._degraded = True
        return self._simulate()

    def _simulate(self) -> UserCoordinate:
        base = self._last_known
        lat, lng = (base.lat, base.lng) if base is not None else self._default
        lat += (self._rng.random() - 0.5) * self._jitter
        lng += (self._rng.random() - 0.5) * self._jitter
        return UserCoordinate(lat=_clamp(lat, -90.0, 90.0), lng=_clamp(lng, -180.0, 180.0))

    async def _push(self, coordinate: UserCoordinate, generation: int) -> None:
        try:
            await self._remote.update_coordinates(self._user_id, coordinate.lat, coordinate.lng)
        except MuseumError as exc:
            # Keep tracking and keep the previous position; never queued.
            _logger.debug("Coordinate push failed: %s", exc)
            return
        except Exception:
            _logger.warning("Unexpected coordinate push failure", exc_info=True)
            return
        if generation != self._generation:
            _logger.debug("Discarding coordinate push result from a stopped session")
            return
        self._last_known = coordinate

    # ------------------------------------------------------------------
    # Geolocation callbacks
    # ------------------------------------------------------------------

    def _on_position(self, coordinate: UserCoordinate) -> None:
        if self._degraded:
            _logger.info("Live device position acquired; leaving simulated mode")
        self._degraded = False

    def _on_position_error(self, error: MuseumPositionUnavailableError) -> None:
        if not self._degraded:
            _logger.warning("Position unavailable, continuing with simulated positions: %s", error)
        self._degraded = True
