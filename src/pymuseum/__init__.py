"""pymuseum - Async Python client for the museum companion backend."""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("pymuseum")
except PackageNotFoundError:
    __version__ = "0+local"
from pymuseum._mqtt import MqttPositionFeed, MqttPositionProvider
from pymuseum.client import MuseumClient
from pymuseum.config import MuseumConfig
from pymuseum.exceptions import (
    MuseumAuthRequiredError,
    MuseumConfigError,
    MuseumConnectivityError,
    MuseumError,
    MuseumNotFoundError,
    MuseumPositionUnavailableError,
    MuseumRejectionError,
    MuseumRouteStateError,
    MuseumValidationError,
)
from pymuseum.geolocation import (
    GeolocationOptions,
    GeolocationSource,
    GeolocationSubscription,
    StaticPositionProvider,
)
from pymuseum.models import (
    FavouriteRecord,
    OperationKind,
    PendingOperation,
    RatingRecord,
    RouteState,
    RouteStatus,
    Stop,
    UserCoordinate,
)
from pymuseum.mutations import MutationOutcome, MutationResult, OptimisticMutator
from pymuseum.route import RouteEvent, RouteEventKind, RouteLifecycleController, fallback_route, transition
from pymuseum.state.cache import CacheCollection, LocalCacheStore
from pymuseum.state.queue import PendingOperationQueue
from pymuseum.state.storage import JsonFileStorage, KeyValueStorage, MemoryStorage
from pymuseum.sync import SyncResult, sync_pending_operations
from pymuseum.tracker import NavigationTracker, TrackerState

__all__ = [
    "__version__",
    "CacheCollection",
    "FavouriteRecord",
    "GeolocationOptions",
    "GeolocationSource",
    "GeolocationSubscription",
    "JsonFileStorage",
    "KeyValueStorage",
    "LocalCacheStore",
    "MemoryStorage",
    "MqttPositionFeed",
    "MqttPositionProvider",
    "MuseumAuthRequiredError",
    "MuseumClient",
    "MuseumConfig",
    "MuseumConfigError",
    "MuseumConnectivityError",
    "MuseumError",
    "MuseumNotFoundError",
    "MuseumPositionUnavailableError",
    "MuseumRejectionError",
    "MuseumRouteStateError",
    "MuseumValidationError",
    "MutationOutcome",
    "MutationResult",
    "NavigationTracker",
    "OperationKind",
    "OptimisticMutator",
    "PendingOperation",
    "PendingOperationQueue",
    "RatingRecord",
    "RouteEvent",
    "RouteEventKind",
    "RouteLifecycleController",
    "RouteState",
    "RouteStatus",
    "Stop",
    "StaticPositionProvider",
    "SyncResult",
    "TrackerState",
    "UserCoordinate",
    "fallback_route",
    "sync_pending_operations",
    "transition",
]
