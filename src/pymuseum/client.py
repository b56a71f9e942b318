"""High-level async client for the museum companion backend."""

from __future__ import annotations

import logging
from collections.abc import Sequence
from typing import Any

import aiohttp

from pymuseum._transport import HttpTransport, Transport
from pymuseum.config import MuseumConfig
from pymuseum.exceptions import MuseumError
from pymuseum.geolocation import GeolocationOptions, GeolocationSource, PositionProvider
from pymuseum.models.operations import PendingOperation
from pymuseum.models.records import FavouriteRecord, RatingRecord
from pymuseum.mutations import MutationResult, OptimisticMutator
from pymuseum.remote import RemoteService
from pymuseum.route import RouteLifecycleController
from pymuseum.state.cache import CacheCollection, LocalCacheStore
from pymuseum.state.queue import PendingOperationQueue
from pymuseum.state.storage import JsonFileStorage, KeyValueStorage, MemoryStorage
from pymuseum.sync import RejectedCallback, SyncResult, sync_pending_operations
from pymuseum.tracker import NavigationTracker

_logger = logging.getLogger(__name__)


class MuseumClient:
    """Async client for one visitor session.

    Usage::

        async with MuseumClient(config) as client:
            await client.toggle_favourite(42, title="The Starry Night")
            route = await client.routes.start(client.user_id, 42, 40.761, -73.978)
            client.routes.start_tracking()

    Local stores are created per client; pass ``storage`` to share a
    backing store or ``config.storage_dir`` to persist across restarts.

    ``geolocation`` is either a ready :class:`GeolocationSource` or a bare
    :class:`PositionProvider`, which is wrapped using the config's
    ``high_accuracy`` and ``geolocation_timeout``.
    """

    def __init__(
        self,
        config: MuseumConfig,
        *,
        session: aiohttp.ClientSession | None = None,
        storage: KeyValueStorage | None = None,
        transport: Transport | None = None,
        geolocation: GeolocationSource | PositionProvider | None = None,
    ) -> None:
        self._config = config
        self._external_session = session is not None
        self._http_session = session
        self._external_transport = transport is not None
        self._transport = transport
        if geolocation is not None and not isinstance(geolocation, GeolocationSource):
            geolocation = GeolocationSource(
                geolocation,
                options=GeolocationOptions(
                    high_accuracy=config.high_accuracy,
                    timeout=config.geolocation_timeout,
                ),
            )
        self._geolocation = geolocation

        if storage is None:
            storage = JsonFileStorage(config.storage_dir) if config.storage_dir else MemoryStorage()
        self._storage = storage
        self._cache = LocalCacheStore(storage)
        self._queue = PendingOperationQueue(storage)

        self._remote: RemoteService | None = None
        self._mutator: OptimisticMutator | None = None
        self._routes: RouteLifecycleController | None = None
        if transport is not None:
            self._wire(transport)

    # ------------------------------------------------------------------
    # Context manager lifecycle
    # ------------------------------------------------------------------

    async def __aenter__(self) -> MuseumClient:
        if self._transport is None:
            if self._http_session is None:
                self._http_session = aiohttp.ClientSession()
            self._wire(HttpTransport(self._config, self._http_session))
        return self

    async def __aexit__(self, *exc: Any) -> None:
        if self._routes is not None:
            await self._routes.aclose()
        if not self._external_session and self._http_session is not None:
            await self._http_session.close()
            self._http_session = None
        if not self._external_transport:
            self._transport = None
            self._remote = None
            self._mutator = None
            self._routes = None

    def _wire(self, transport: Transport) -> None:
        self._transport = transport
        remote = RemoteService(transport)
        self._remote = remote
        self._mutator = OptimisticMutator(self._cache, self._queue, remote)
        self._routes = RouteLifecycleController(remote, tracker_factory=self._make_tracker)

    def _make_tracker(self) -> NavigationTracker:
        return NavigationTracker(
            self._require_remote(),
            self._config.user_id,
            geolocation=self._geolocation,
            interval=self._config.tracking_interval,
            default_coordinate=(self._config.default_lat, self._config.default_lng),
        )

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _require_remote(self) -> RemoteService:
        if self._remote is None:
            raise MuseumError("Client not initialized. Use 'async with MuseumClient(...) as client:'")
        return self._remote

    # ------------------------------------------------------------------
    # Components
    # ------------------------------------------------------------------

    @property
    def config(self) -> MuseumConfig:
        return self._config

    @property
    def user_id(self) -> int:
        return self._config.user_id

    @property
    def geolocation(self) -> GeolocationSource | None:
        return self._geolocation

    @property
    def cache(self) -> LocalCacheStore:
        return self._cache

    @property
    def queue(self) -> PendingOperationQueue:
        return self._queue

    @property
    def remote(self) -> RemoteService:
        return self._require_remote()

    @property
    def mutator(self) -> OptimisticMutator:
        self._require_remote()
        assert self._mutator is not None  # noqa: S101
        return self._mutator

    @property
    def routes(self) -> RouteLifecycleController:
        self._require_remote()
        assert self._routes is not None  # noqa: S101
        return self._routes

    # ------------------------------------------------------------------
    # Favourites and ratings
    # ------------------------------------------------------------------

    async def toggle_favourite(
        self,
        exhibit_id: int,
        *,
        title: str = "",
        subtitle: str | None = None,
    ) -> MutationResult:
        return await self.mutator.toggle_favourite(
            self._config.user_id,
            exhibit_id,
            title=title,
            subtitle=subtitle,
        )

    async def rate_exhibit(self, exhibit_id: int, rating: int, *, title: str = "") -> MutationResult:
        return await self.mutator.rate_exhibit(exhibit_id, rating, title=title)

    def favourites(self) -> list[FavouriteRecord]:
        return [r for r in self._cache.get(CacheCollection.FAVOURITES) if isinstance(r, FavouriteRecord)]

    def ratings(self) -> list[RatingRecord]:
        return [r for r in self._cache.get(CacheCollection.RATINGS) if isinstance(r, RatingRecord)]

    # ------------------------------------------------------------------
    # Offline queue
    # ------------------------------------------------------------------

    def pending_operations(self) -> Sequence[PendingOperation]:
        return self._queue.peek_all()

    async def sync_pending(self, *, on_rejected: RejectedCallback | None = None) -> SyncResult:
        """Replay queued mutations now.  See :func:`sync_pending_operations`."""
        return await sync_pending_operations(self._queue, self._require_remote(), on_rejected=on_rejected)

    # ------------------------------------------------------------------
    # Session end
    # ------------------------------------------------------------------

    async def logout(self) -> None:
        """Stop navigation and forget everything stored for this visitor.

        Queued operations that were never synced are discarded.
        """
        if self._routes is not None:
            await self._routes.aclose()
        dropped = len(self._queue)
        self._cache.clear()
        self._queue.clear()
        if dropped:
            _logger.info("Discarded %d unsynced operation(s) on logout", dropped)
