"""Durable FIFO of mutations awaiting a manual sync."""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable, Mapping
from datetime import UTC, datetime
from typing import Any

from pydantic import ValidationError

from pymuseum._constants import PENDING_SYNC_KEY
from pymuseum.models.operations import OperationKind, PendingOperation
from pymuseum.state.storage import KeyValueStorage

_logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(UTC)


class PendingOperationQueue:
    """Append-only queue of :class:`PendingOperation`.

    ``drain`` reads and clears in a single synchronous step.  Because the
    caller runs on one event loop, an ``enqueue`` issued while the drained
    batch is being sent (i.e. at any ``await`` of the sync pass) lands in
    the next batch: it is neither lost nor delivered twice.

    The drained batch stays *in flight* until :meth:`settle` or
    :meth:`requeue_front` is called, and :meth:`has_pending_for` still
    reports it, so a newer mutation for the same exhibit queues behind it.
    """

    def __init__(
        self,
        storage: KeyValueStorage,
        *,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._storage = storage
        self._clock = clock
        self._items: list[PendingOperation] | None = None
        self._in_flight: list[PendingOperation] = []

    def _load(self) -> list[PendingOperation]:
        if self._items is not None:
            return self._items
        items: list[PendingOperation] = []
        raw = self._storage.get(PENDING_SYNC_KEY)
        if isinstance(raw, list):
            for entry in raw:
                try:
                    items.append(PendingOperation.model_validate(entry))
                except ValidationError:
                    _logger.debug("Skipping unreadable pending operation: %r", entry)
        self._items = items
        return items

    def _persist(self) -> None:
        items = self._load()
        if items:
            self._storage.set(PENDING_SYNC_KEY, [op.model_dump(mode="json") for op in items])
        else:
            self._storage.remove(PENDING_SYNC_KEY)

    def __len__(self) -> int:
        return len(self._load())

    def enqueue(self, kind: OperationKind, payload: Mapping[str, Any]) -> PendingOperation:
        """Append a mutation stamped with the current local time."""
        operation = PendingOperation(kind=kind, payload=dict(payload), local_timestamp=self._clock())
        self._load().append(operation)
        self._persist()
        _logger.debug("Queued %s payload=%s (pending=%d)", kind.value, operation.payload, len(self._load()))
        return operation

    @property
    def in_flight(self) -> bool:
        """Whether a drained batch is still awaiting its sync outcome."""
        return bool(self._in_flight)

    def drain(self) -> list[PendingOperation]:
        """Return every queued operation in FIFO order and empty the queue."""
        batch = list(self._load())
        self._items = []
        self._persist()
        self._in_flight = list(batch)
        return batch

    def settle(self) -> None:
        """Forget the in-flight batch once the backend has answered for it."""
        self._in_flight = []

    def requeue_front(self, operations: Iterable[PendingOperation]) -> None:
        """Put a drained batch back ahead of anything queued since."""
        batch = list(operations)
        self._in_flight = []
        if not batch:
            return
        self._items = batch + self._load()
        self._persist()

    def peek_all(self) -> list[PendingOperation]:
        return list(self._load())

    def has_pending_for(self, exhibit_id: int, kinds: Iterable[OperationKind]) -> bool:
        """Whether a queued or in-flight operation of one of *kinds* targets *exhibit_id*."""
        wanted = frozenset(kinds)
        return any(
            op.exhibit_id == exhibit_id and op.kind in wanted for op in (*self._in_flight, *self._load())
        )

    def clear(self) -> None:
        self._items = None
        self._in_flight = []
        self._storage.remove(PENDING_SYNC_KEY)
