"""Optimistic favourite and rating mutations.

Every mutation follows the same reconcile cycle:

1. capture the cached record, apply the new one locally;
2. call the backend;
3. success keeps the local state;
4. :class:`MuseumConnectivityError` keeps the local state and queues the
   mutation for a manual sync;
5. :class:`MuseumRejectionError` restores the captured record and re-raises.

Mutations of the same exhibit reach the backend one at a time.  If the
backend has not yet seen an earlier queued or in-flight mutation for that
exhibit, the new one skips the remote call and is queued behind it, so
replay applies them in the order the visitor made them.
"""

from __future__ import annotations

import asyncio
import dataclasses
import functools
import logging
from collections.abc import Awaitable, Callable
from enum import StrEnum
from typing import Any

from pymuseum.exceptions import MuseumConnectivityError, MuseumRejectionError
from pymuseum.models.operations import OperationKind
from pymuseum.models.records import FavouriteRecord, RatingRecord
from pymuseum.models.requests import FavouriteRequest, RatingRequest, validate_request
from pymuseum.remote import MutationRemote
from pymuseum.state.cache import CacheCollection, CachedRecord, LocalCacheStore
from pymuseum.state.queue import PendingOperationQueue

_logger = logging.getLogger(__name__)

_FAVOURITE_KINDS = (OperationKind.ADD_FAVOURITE, OperationKind.REMOVE_FAVOURITE)
_RATING_KINDS = (OperationKind.RATE_EXHIBIT,)


class MutationOutcome(StrEnum):
    CONFIRMED = "confirmed"
    QUEUED = "queued"


@dataclasses.dataclass(frozen=True, slots=True)
class MutationResult:
    """What a mutation did.

    ``record`` is the cached record after the mutation (``None`` when a
    favourite was removed).
    """

    kind: OperationKind
    exhibit_id: int
    outcome: MutationOutcome
    record: CachedRecord | None

    @property
    def queued(self) -> bool:
        return self.outcome == MutationOutcome.QUEUED


class OptimisticMutator:
    """Applies favourite/rating changes locally first, then reconciles."""

    def __init__(
        self,
        cache: LocalCacheStore,
        queue: PendingOperationQueue,
        remote: MutationRemote,
    ) -> None:
        self._cache = cache
        self._queue = queue
        self._remote = remote
        self._locks: dict[tuple[CacheCollection, int], asyncio.Lock] = {}

    def is_favourite(self, exhibit_id: int) -> bool:
        return self._cache.contains(CacheCollection.FAVOURITES, exhibit_id)

    def rating_for(self, exhibit_id: int) -> int | None:
        record = self._cache.find(CacheCollection.RATINGS, exhibit_id)
        return record.rating if isinstance(record, RatingRecord) else None

    async def toggle_favourite(
        self,
        user_id: int,
        exhibit_id: int,
        *,
        title: str = "",
        subtitle: str | None = None,
    ) -> MutationResult:
        """Flip the favourite state of an exhibit."""
        return await self.set_favourite(
            user_id,
            exhibit_id,
            not self.is_favourite(exhibit_id),
            title=title,
            subtitle=subtitle,
        )

    async def set_favourite(
        self,
        user_id: int,
        exhibit_id: int,
        favourite: bool,
        *,
        title: str = "",
        subtitle: str | None = None,
    ) -> MutationResult:
        request = validate_request(
            FavouriteRequest,
            user_id=user_id,
            exhibit_id=exhibit_id,
            title=title,
            subtitle=subtitle,
        )
        kind = OperationKind.ADD_FAVOURITE if favourite else OperationKind.REMOVE_FAVOURITE
        current = self._cache.find(CacheCollection.FAVOURITES, request.exhibit_id)

        if (current is not None) == favourite:
            # Already in the requested state; nothing to reconcile.
            return MutationResult(kind, request.exhibit_id, MutationOutcome.CONFIRMED, current)

        next_record: FavouriteRecord | None = None
        call: Callable[[], Awaitable[Any]]
        if favourite:
            next_record = FavouriteRecord(
                exhibit_id=request.exhibit_id,
                title=request.title,
                subtitle=request.subtitle,
            )
            call = functools.partial(self._remote.add_favourite, request.user_id, request.exhibit_id)
        else:
            call = functools.partial(self._remote.remove_favourite, request.user_id, request.exhibit_id)

        return await self._reconcile(
            kind=kind,
            collection=CacheCollection.FAVOURITES,
            exhibit_id=request.exhibit_id,
            next_record=next_record,
            call=call,
            payload={"user_id": request.user_id, "exhibit_id": request.exhibit_id},
            related_kinds=_FAVOURITE_KINDS,
        )

    async def rate_exhibit(self, exhibit_id: int, rating: int, *, title: str = "") -> MutationResult:
        """Record a 1..5 rating; a newer rating replaces the previous one."""
        request = validate_request(RatingRequest, exhibit_id=exhibit_id, rating=rating, title=title)
        previous = self._cache.find(CacheCollection.RATINGS, request.exhibit_id)
        next_record = RatingRecord(
            exhibit_id=request.exhibit_id,
            rating=request.rating,
            title=request.title or (previous.title if previous is not None else ""),
        )

        call = functools.partial(self._remote.rate_exhibit, request.exhibit_id, request.rating)

        return await self._reconcile(
            kind=OperationKind.RATE_EXHIBIT,
            collection=CacheCollection.RATINGS,
            exhibit_id=request.exhibit_id,
            next_record=next_record,
            call=call,
            payload={"exhibit_id": request.exhibit_id, "rating": request.rating},
            related_kinds=_RATING_KINDS,
        )

    async def _reconcile(
        self,
        *,
        kind: OperationKind,
        collection: CacheCollection,
        exhibit_id: int,
        next_record: CachedRecord | None,
        call: Callable[[], Awaitable[Any]],
        payload: dict[str, Any],
        related_kinds: tuple[OperationKind, ...],
    ) -> MutationResult:
        previous = self._cache.find(collection, exhibit_id)
        self._cache.restore(collection, exhibit_id, next_record)

        lock = self._locks.setdefault((collection, exhibit_id), asyncio.Lock())
        async with lock:
            return await self._send(
                kind=kind,
                collection=collection,
                exhibit_id=exhibit_id,
                previous=previous,
                next_record=next_record,
                call=call,
                payload=payload,
                related_kinds=related_kinds,
            )

    async def _send(
        self,
        *,
        kind: OperationKind,
        collection: CacheCollection,
        exhibit_id: int,
        previous: CachedRecord | None,
        next_record: CachedRecord | None,
        call: Callable[[], Awaitable[Any]],
        payload: dict[str, Any],
        related_kinds: tuple[OperationKind, ...],
    ) -> MutationResult:
        if self._queue.has_pending_for(exhibit_id, related_kinds):
            _logger.debug("%s for exhibit %s queued behind unsynced operations", kind.value, exhibit_id)
            self._queue.enqueue(kind, payload)
            return MutationResult(kind, exhibit_id, MutationOutcome.QUEUED, next_record)

        try:
            await call()
        except MuseumConnectivityError as exc:
            _logger.debug("%s for exhibit %s deferred: %s", kind.value, exhibit_id, exc)
            self._queue.enqueue(kind, payload)
            return MutationResult(kind, exhibit_id, MutationOutcome.QUEUED, next_record)
        except MuseumRejectionError:
            # Only undo our own write; a newer mutation may have replaced it meanwhile.
            if self._cache.find(collection, exhibit_id) == next_record:
                self._cache.restore(collection, exhibit_id, previous)
            raise

        return MutationResult(kind, exhibit_id, MutationOutcome.CONFIRMED, next_record)
