"""Route lifecycle: one live route per session.

::

    Planning -> Creating -> Active <-> Recalculating
                   |          |
                   v          v
                Planning   Cancelled | Superseded

State changes are computed by the pure :func:`transition` function; the
:class:`RouteLifecycleController` performs the remote calls around them.
"""

from __future__ import annotations

import asyncio
import dataclasses
import logging
from collections.abc import Callable, Sequence
from enum import StrEnum

from pymuseum.exceptions import MuseumError, MuseumRouteStateError
from pymuseum.models.requests import CreateRouteRequest, UpdateStopsRequest, validate_request
from pymuseum.models.route import RouteState, RouteStatus, Stop
from pymuseum.remote import RouteRemote
from pymuseum.tracker import NavigationTracker

_logger = logging.getLogger(__name__)

TrackerFactory = Callable[[], NavigationTracker]
StateListener = Callable[[RouteState | None], None]


class RouteEventKind(StrEnum):
    PLAN = "plan"
    CREATE_STARTED = "create_started"
    CREATED = "created"
    CREATE_FAILED = "create_failed"
    DETAILS_LOADED = "details_loaded"
    STOPS_UPDATED = "stops_updated"
    RECALCULATE_STARTED = "recalculate_started"
    RECALCULATED = "recalculated"
    RECALCULATE_FAILED = "recalculate_failed"
    CANCELLED = "cancelled"
    SUPERSEDED = "superseded"


@dataclasses.dataclass(frozen=True, slots=True)
class RouteEvent:
    kind: RouteEventKind
    route: RouteState | None = None
    stops: tuple[Stop, ...] = ()
    destination_id: int | None = None
    destination_name: str | None = None


_LIVE = (RouteStatus.CREATING, RouteStatus.ACTIVE, RouteStatus.RECALCULATING)

_ALLOWED_FROM: dict[RouteEventKind, tuple[RouteStatus | None, ...]] = {
    RouteEventKind.PLAN: (None, RouteStatus.PLANNING, RouteStatus.CANCELLED, RouteStatus.SUPERSEDED),
    RouteEventKind.CREATE_STARTED: (RouteStatus.PLANNING,),
    RouteEventKind.CREATED: (RouteStatus.CREATING,),
    RouteEventKind.CREATE_FAILED: (RouteStatus.CREATING,),
    RouteEventKind.DETAILS_LOADED: (RouteStatus.ACTIVE,),
    RouteEventKind.STOPS_UPDATED: (RouteStatus.ACTIVE,),
    RouteEventKind.RECALCULATE_STARTED: (RouteStatus.ACTIVE,),
    RouteEventKind.RECALCULATED: (RouteStatus.RECALCULATING,),
    RouteEventKind.RECALCULATE_FAILED: (RouteStatus.RECALCULATING,),
    RouteEventKind.CANCELLED: (RouteStatus.PLANNING, *_LIVE),
    RouteEventKind.SUPERSEDED: _LIVE,
}


def _with_server_route(state: RouteState, route: RouteState | None, *, keep_route_id: bool) -> RouteState:
    """Copy the server-computed fields of *route* onto *state*."""
    if route is None:
        raise MuseumRouteStateError("route payload missing")
    route_id = state.route_id if keep_route_id else route.route_id
    return state.model_copy(
        update={
            "route_id": route_id,
            "status": RouteStatus.ACTIVE,
            "instructions": list(route.instructions),
            "distance": route.distance,
            "estimated_time": route.estimated_time,
            "arrival_time": route.arrival_time,
            "stops": list(route.stops) if route.stops else list(state.stops),
            "destination_name": route.destination_name or state.destination_name,
            "is_fallback": route.is_fallback,
            "raw": route.raw,
        }
    )


def transition(state: RouteState | None, event: RouteEvent) -> RouteState:
    """Return the state that follows *state* on *event*.

    Raises :class:`MuseumRouteStateError` for transitions the lifecycle
    does not allow.  Never mutates *state*.
    """
    current = state.status if state is not None else None
    if current not in _ALLOWED_FROM[event.kind]:
        raise MuseumRouteStateError(f"cannot apply {event.kind.value} to route in state {current}")

    kind = event.kind
    if kind == RouteEventKind.PLAN:
        return RouteState(
            status=RouteStatus.PLANNING,
            destination_id=event.destination_id,
            destination_name=event.destination_name,
        )

    assert state is not None  # noqa: S101
    if kind == RouteEventKind.CREATE_STARTED:
        return state.model_copy(update={"status": RouteStatus.CREATING})
    if kind == RouteEventKind.CREATED:
        if event.route is None or (event.route.route_id is None and not event.route.is_fallback):
            raise MuseumRouteStateError("created route has no route_id")
        return _with_server_route(state, event.route, keep_route_id=False)
    if kind == RouteEventKind.CREATE_FAILED:
        return state.model_copy(update={"status": RouteStatus.PLANNING})
    if kind in (RouteEventKind.DETAILS_LOADED, RouteEventKind.RECALCULATED):
        return _with_server_route(state, event.route, keep_route_id=True)
    if kind == RouteEventKind.STOPS_UPDATED:
        return state.model_copy(update={"stops": list(event.stops)})
    if kind == RouteEventKind.RECALCULATE_STARTED:
        return state.model_copy(update={"status": RouteStatus.RECALCULATING})
    if kind == RouteEventKind.RECALCULATE_FAILED:
        return state.model_copy(update={"status": RouteStatus.ACTIVE})
    if kind == RouteEventKind.CANCELLED:
        return state.model_copy(update={"status": RouteStatus.CANCELLED})
    return state.model_copy(update={"status": RouteStatus.SUPERSEDED})


def fallback_route(destination_name: str | None = None, *, destination_id: int | None = None) -> RouteState:
    """A clearly marked placeholder route for when creation fails.

    It has no server id, so stop changes, recalculation and remote
    cancellation do not apply to it.
    """
    return RouteState(
        route_id=None,
        status=RouteStatus.ACTIVE,
        destination_id=destination_id,
        destination_name=destination_name or "Exhibit",
        instructions=["Head north", "Turn right"],
        distance=1200.0,
        estimated_time=900.0,
        arrival_time="12:00",
        is_fallback=True,
    )


class RouteLifecycleController:
    """Own the session's single route and drive its tracker.

    Results of remote calls that arrive after the route was cancelled or
    superseded are discarded.  Detail loads, stop updates and
    recalculations of the active route run one at a time.
    """

    def __init__(
        self,
        remote: RouteRemote,
        *,
        tracker_factory: TrackerFactory | None = None,
        on_change: StateListener | None = None,
    ) -> None:
        self._remote = remote
        self._tracker_factory = tracker_factory
        self._on_change = on_change
        self._state: RouteState | None = None
        self._generation = 0
        self._tracker: NavigationTracker | None = None
        self._active_ops = asyncio.Lock()

    @property
    def state(self) -> RouteState | None:
        return self._state

    @property
    def tracker(self) -> NavigationTracker | None:
        return self._tracker

    def _set(self, state: RouteState | None) -> None:
        self._state = state
        if self._on_change is not None:
            try:
                self._on_change(state)
            except Exception:
                _logger.debug("route on_change callback failed", exc_info=True)

    def _apply(self, event: RouteEvent) -> RouteState:
        new_state = transition(self._state, event)
        self._set(new_state)
        return new_state

    def _require(self, *statuses: RouteStatus) -> RouteState:
        state = self._state
        if state is None or state.status not in statuses:
            current = state.status.value if state is not None else "none"
            wanted = ", ".join(s.value for s in statuses)
            raise MuseumRouteStateError(f"route is {current}; expected {wanted}")
        return state

    def _require_server_route(self) -> tuple[RouteState, int]:
        state = self._require(RouteStatus.ACTIVE)
        if state.route_id is None:
            raise MuseumRouteStateError("fallback route has no server id")
        return state, state.route_id

    def _current(self, generation: int) -> bool:
        return generation == self._generation and self._state is not None

    # ------------------------------------------------------------------
    # Creation
    # ------------------------------------------------------------------

    def plan(self, destination_id: int, destination_name: str | None = None) -> RouteState:
        """Choose a destination.  A live route is superseded locally."""
        state = self._state
        if state is not None and state.status in _LIVE:
            self._supersede()
        return self._apply(
            RouteEvent(RouteEventKind.PLAN, destination_id=destination_id, destination_name=destination_name)
        )

    def _supersede(self) -> None:
        self._stop_tracker()
        self._generation += 1
        superseded = self._apply(RouteEvent(RouteEventKind.SUPERSEDED))
        _logger.debug("Route %s superseded by a new route", superseded.route_id)
        self._set(None)

    async def create(self, user_id: int, start_lat: float, start_lng: float) -> RouteState:
        """Planning -> Creating -> Active, or back to Planning on failure."""
        state = self._require(RouteStatus.PLANNING)
        if state.destination_id is None:
            raise MuseumRouteStateError("no destination planned")
        request = validate_request(
            CreateRouteRequest,
            user_id=user_id,
            destination_id=state.destination_id,
            start_lat=start_lat,
            start_lng=start_lng,
        )
        generation = self._generation
        self._apply(RouteEvent(RouteEventKind.CREATE_STARTED))
        try:
            route = await self._remote.create_route(
                request.user_id,
                request.destination_id,
                request.start_lat,
                request.start_lng,
            )
        except BaseException:
            # Any failure, cancellation included, hands the destination back to planning.
            if self._current(generation):
                self._apply(RouteEvent(RouteEventKind.CREATE_FAILED))
            raise
        if not self._current(generation):
            _logger.debug("Discarding created route %s; navigation ended meanwhile", route.route_id)
            raise MuseumRouteStateError("route creation superseded")
        return self._apply(RouteEvent(RouteEventKind.CREATED, route=route))

    async def start(
        self,
        user_id: int,
        destination_id: int,
        start_lat: float,
        start_lng: float,
        *,
        destination_name: str | None = None,
    ) -> RouteState:
        """Plan and create in one step."""
        self.plan(destination_id, destination_name)
        return await self.create(user_id, start_lat, start_lng)

    def adopt_fallback(self) -> RouteState:
        """Replace a failed creation with :func:`fallback_route`."""
        state = self._require(RouteStatus.PLANNING)
        self._apply(RouteEvent(RouteEventKind.CREATE_STARTED))
        fallback = fallback_route(state.destination_name, destination_id=state.destination_id)
        return self._apply(RouteEvent(RouteEventKind.CREATED, route=fallback))

    # ------------------------------------------------------------------
    # Active route operations
    # ------------------------------------------------------------------

    async def load_details(self, walking_speed: float | None = None) -> RouteState:
        async with self._active_ops:
            return await self._load_details(walking_speed)

    async def _load_details(self, walking_speed: float | None) -> RouteState:
        _state, route_id = self._require_server_route()
        generation = self._generation
        details = await self._remote.get_route_details(route_id, walking_speed)
        if not self._current(generation) or self._require(RouteStatus.ACTIVE).route_id != route_id:
            raise MuseumRouteStateError("route changed while loading details")
        return self._apply(RouteEvent(RouteEventKind.DETAILS_LOADED, route=details))

    async def add_stops(self, exhibit_ids: Sequence[int]) -> RouteState:
        return await self.update_stops(add=exhibit_ids)

    async def remove_stops(self, exhibit_ids: Sequence[int]) -> RouteState:
        return await self.update_stops(remove=exhibit_ids)

    async def update_stops(self, *, add: Sequence[int] = (), remove: Sequence[int] = ()) -> RouteState:
        """Change stops remotely; the local list follows only on success."""
        async with self._active_ops:
            return await self._update_stops(add, remove)

    async def _update_stops(self, add: Sequence[int], remove: Sequence[int]) -> RouteState:
        _state, route_id = self._require_server_route()
        request = validate_request(
            UpdateStopsRequest,
            route_id=route_id,
            add_stops=list(add),
            remove_stops=list(remove),
        )
        generation = self._generation
        stops = await self._remote.update_route_stops(request.route_id, request.add_stops, request.remove_stops)
        if not self._current(generation):
            raise MuseumRouteStateError("route ended while updating stops")
        self._require(RouteStatus.ACTIVE)
        return self._apply(RouteEvent(RouteEventKind.STOPS_UPDATED, stops=tuple(stops)))

    async def recalculate(self) -> RouteState:
        """Active -> Recalculating -> Active, keeping the route id."""
        async with self._active_ops:
            return await self._recalculate()

    async def _recalculate(self) -> RouteState:
        _state, route_id = self._require_server_route()
        generation = self._generation
        self._apply(RouteEvent(RouteEventKind.RECALCULATE_STARTED))
        try:
            route = await self._remote.recalculate_route(route_id)
        except BaseException:
            if self._current(generation):
                self._apply(RouteEvent(RouteEventKind.RECALCULATE_FAILED))
            raise
        if not self._current(generation):
            raise MuseumRouteStateError("route ended while recalculating")
        return self._apply(RouteEvent(RouteEventKind.RECALCULATED, route=route))

    # ------------------------------------------------------------------
    # Ending
    # ------------------------------------------------------------------

    async def cancel(self) -> bool:
        """End navigation.

        The local route is always cleared; the remote delete is best
        effort.  Returns whether the backend acknowledged the delete.
        """
        state = self._state
        if state is None:
            self._stop_tracker()
            return True
        self._stop_tracker()
        self._generation += 1
        cancelled = self._apply(RouteEvent(RouteEventKind.CANCELLED))
        self._set(None)

        route_id = cancelled.route_id
        if route_id is None or cancelled.is_fallback:
            return True
        try:
            await self._remote.delete_route(route_id)
        except MuseumError as exc:
            _logger.debug("Remote delete of route %s failed: %s", route_id, exc)
            return False
        return True

    async def aclose(self) -> None:
        """Session teardown: stop tracking and drop the route without remote calls."""
        tracker = self._tracker
        self._tracker = None
        if tracker is not None:
            await tracker.aclose()
        if self._state is not None:
            self._generation += 1
            self._set(None)

    # ------------------------------------------------------------------
    # Tracking
    # ------------------------------------------------------------------

    def start_tracking(self) -> NavigationTracker:
        self._require(RouteStatus.ACTIVE, RouteStatus.RECALCULATING)
        if self._tracker is None:
            if self._tracker_factory is None:
                raise MuseumRouteStateError("no tracker configured")
            self._tracker = self._tracker_factory()
        self._tracker.start()
        return self._tracker

    def stop_tracking(self) -> None:
        self._stop_tracker()

    def _stop_tracker(self) -> None:
        if self._tracker is not None:
            self._tracker.stop()
