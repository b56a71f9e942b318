"""Manual replay of the pending operation queue.

Nothing in pymuseum calls this on its own: the application decides when to
sync (typically a "sync now" action), which keeps the moment queued ratings
become visible server-side under the visitor's control.
"""

from __future__ import annotations

import dataclasses
import logging
from collections.abc import Callable, Sequence

from pymuseum.exceptions import MuseumRejectionError
from pymuseum.models.operations import PendingOperation
from pymuseum.remote import SyncRemote
from pymuseum.state.queue import PendingOperationQueue

_logger = logging.getLogger(__name__)

RejectedCallback = Callable[[Sequence[PendingOperation], MuseumRejectionError], None]


@dataclasses.dataclass(frozen=True, slots=True)
class SyncResult:
    """Outcome of one sync pass."""

    sent: tuple[PendingOperation, ...] = ()
    rejected: tuple[PendingOperation, ...] = ()
    error: MuseumRejectionError | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


async def sync_pending_operations(
    queue: PendingOperationQueue,
    remote: SyncRemote,
    *,
    on_rejected: RejectedCallback | None = None,
) -> SyncResult:
    """Drain *queue* and send the batch to the sync endpoint in FIFO order.

    Connectivity failure (or cancellation) puts the batch back at the head
    of the queue and re-raises.  A rejection drops the batch (it would be rejected again),
    notifies *on_rejected*, and is reported in the returned result; the
    local cache is not rolled back because later local changes may already
    build on it.

    A pass started while another is still waiting on the backend sends
    nothing, so a re-queued batch can never land behind newer operations.
    """
    if queue.in_flight:
        _logger.debug("Sync already in progress; skipping")
        return SyncResult()
    batch = queue.drain()
    if not batch:
        return SyncResult()

    _logger.debug("Syncing %d pending operation(s)", len(batch))
    try:
        await remote.sync_operations(batch)
    except MuseumRejectionError as exc:
        queue.settle()
        _logger.warning("Sync batch of %d operation(s) rejected and dropped: %s", len(batch), exc)
        if on_rejected is not None:
            try:
                on_rejected(batch, exc)
            except Exception:
                _logger.debug("on_rejected callback failed", exc_info=True)
        return SyncResult(rejected=tuple(batch), error=exc)
    except BaseException as exc:
        # Connectivity failures and cancellation both leave the outcome unknown.
        queue.requeue_front(batch)
        _logger.debug("Sync deferred; %d operation(s) re-queued: %r", len(batch), exc)
        raise

    queue.settle()
    return SyncResult(sent=tuple(batch))
