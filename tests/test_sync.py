from __future__ import annotations

import asyncio
from collections.abc import Sequence
from typing import Any

import pytest

from pymuseum.exceptions import MuseumConnectivityError, MuseumRejectionError, MuseumValidationError
from pymuseum.models.operations import OperationKind, PendingOperation
from pymuseum.state.queue import PendingOperationQueue
from pymuseum.state.storage import MemoryStorage
from pymuseum.sync import sync_pending_operations


class _SyncRemote:
    def __init__(
        self,
        error: Exception | None = None,
        *,
        enqueue_during: PendingOperationQueue | None = None,
        gate: asyncio.Event | None = None,
    ) -> None:
        self._error = error
        self._enqueue_during = enqueue_during
        self._gate = gate
        self.batches: list[list[PendingOperation]] = []

    async def sync_operations(self, operations: Sequence[PendingOperation]) -> Any:
        self.batches.append(list(operations))
        if self._gate is not None:
            await self._gate.wait()
        if self._enqueue_during is not None:
            self._enqueue_during.enqueue(OperationKind.RATE_EXHIBIT, {"exhibit_id": 99, "rating": 1})
        if self._error is not None:
            raise self._error
        return None


def _queue_with(*ratings: int) -> PendingOperationQueue:
    queue = PendingOperationQueue(MemoryStorage())
    for exhibit_id, rating in enumerate(ratings, start=1):
        queue.enqueue(OperationKind.RATE_EXHIBIT, {"exhibit_id": exhibit_id, "rating": rating})
    return queue


@pytest.mark.asyncio
async def test_empty_queue_sends_nothing() -> None:
    remote = _SyncRemote()

    result = await sync_pending_operations(_queue_with(), remote)

    assert result.ok
    assert result.sent == ()
    assert remote.batches == []


@pytest.mark.asyncio
async def test_success_sends_fifo_batch_and_empties_queue() -> None:
    queue = _queue_with(3, 4, 5)
    remote = _SyncRemote()

    result = await sync_pending_operations(queue, remote)

    assert [op.payload["rating"] for op in result.sent] == [3, 4, 5]
    assert len(queue) == 0


@pytest.mark.asyncio
async def test_connectivity_failure_requeues_batch_ahead_of_new_items() -> None:
    queue = _queue_with(3, 4)
    remote = _SyncRemote(MuseumConnectivityError("offline", endpoint="/sync"), enqueue_during=queue)

    with pytest.raises(MuseumConnectivityError):
        await sync_pending_operations(queue, remote)

    assert [op.exhibit_id for op in queue.peek_all()] == [1, 2, 99]


@pytest.mark.asyncio
async def test_enqueue_during_successful_sync_is_kept_for_next_pass() -> None:
    queue = _queue_with(3)
    remote = _SyncRemote(enqueue_during=queue)

    result = await sync_pending_operations(queue, remote)

    assert [op.exhibit_id for op in result.sent] == [1]
    assert [op.exhibit_id for op in queue.peek_all()] == [99]


@pytest.mark.asyncio
async def test_rejection_drops_batch_and_notifies() -> None:
    queue = _queue_with(3, 4)
    error = MuseumValidationError("bad batch", status_code=422, endpoint="/sync")
    remote = _SyncRemote(error)
    notified: list[tuple[list[PendingOperation], MuseumRejectionError]] = []

    result = await sync_pending_operations(
        queue,
        remote,
        on_rejected=lambda ops, exc: notified.append((list(ops), exc)),
    )

    assert not result.ok
    assert result.error is error
    assert len(result.rejected) == 2
    assert len(queue) == 0
    assert notified[0][1] is error
    assert len(notified[0][0]) == 2


@pytest.mark.asyncio
async def test_failing_rejection_callback_does_not_escape() -> None:
    queue = _queue_with(3)
    remote = _SyncRemote(MuseumRejectionError("nope", status_code=500, endpoint="/sync"))

    def _boom(_ops: Sequence[PendingOperation], _exc: MuseumRejectionError) -> None:
        raise RuntimeError("callback failure")

    result = await sync_pending_operations(queue, remote, on_rejected=_boom)

    assert result.error is not None


@pytest.mark.asyncio
async def test_second_pass_while_batch_in_flight_sends_nothing() -> None:
    gate = asyncio.Event()
    queue = _queue_with(3)
    remote = _SyncRemote(gate=gate)

    first = asyncio.create_task(sync_pending_operations(queue, remote))
    await asyncio.sleep(0)
    queue.enqueue(OperationKind.RATE_EXHIBIT, {"exhibit_id": 1, "rating": 5})

    overlapping = await sync_pending_operations(queue, remote)
    assert overlapping.sent == ()
    assert queue.has_pending_for(1, (OperationKind.RATE_EXHIBIT,))

    gate.set()
    result = await first

    assert [op.payload["rating"] for op in result.sent] == [3]
    assert not queue.in_flight
    assert [op.payload["rating"] for op in queue.peek_all()] == [5]
    assert len(remote.batches) == 1


@pytest.mark.asyncio
async def test_cancelled_sync_requeues_batch() -> None:
    queue = _queue_with(3, 4)
    remote = _SyncRemote(gate=asyncio.Event())

    task = asyncio.create_task(sync_pending_operations(queue, remote))
    await asyncio.sleep(0)
    assert queue.in_flight
    task.cancel()
    with pytest.raises(asyncio.CancelledError):
        await task

    assert not queue.in_flight
    assert [op.payload["rating"] for op in queue.peek_all()] == [3, 4]
