"""
Batching dispatcher.

``BatchAccumulator`` collects canonical records into the live batch and
flushes it through a ``BatchSender`` when either ``batch_count`` records have
accumulated or ``batch_interval`` has elapsed since the first record of the
batch, whichever comes first.

All state transitions (enqueue, timer expiry, count-triggered flush) run to
completion on the event loop thread. The batch is swapped for a fresh one
before the send task is created, so records enqueued while a request is in
flight always start the next batch. Several batches may be in flight at the
same time.

Result contract: every flush produces one ``FlushResult`` for the whole
batch. It resolves the future returned by ``enqueue`` for each record of the
batch, and it is passed once to the ``on_result`` callback captured from the
first record of the batch. Callbacks given with later records of the same
batch are not called.
"""

from __future__ import annotations

import asyncio
import time
from contextlib import AsyncExitStack
from dataclasses import dataclass, field
from typing import Any, Literal, Mapping

from ..metrics.metrics import MetricsCollector
from ..sinks import BatchSender
from . import diagnostics
from .errors import TransportError
from .results import Failure, FlushResult, ResultCallback, classify

FlushTrigger = Literal["count", "time", "manual"]


@dataclass
class PendingBatch:
    """The live batch and the consumers of its eventual result."""

    records: list[Mapping[str, Any]] = field(default_factory=list)
    on_result: ResultCallback | None = None
    result: asyncio.Future[FlushResult] | None = None


class BatchAccumulator:
    """Count/time batching in front of a single destination."""

    def __init__(
        self,
        sink: BatchSender,
        *,
        batch_count: int = 20,
        batch_interval_seconds: float = 5.0,
        max_concurrent_sends: int | None = None,
        metrics: MetricsCollector | None = None,
    ) -> None:
        if batch_count < 1:
            raise ValueError("batch_count must be >= 1")
        if batch_interval_seconds <= 0:
            raise ValueError("batch_interval_seconds must be > 0")
        self._sink = sink
        self._batch_count = batch_count
        self._batch_interval = batch_interval_seconds
        self._metrics = metrics
        self._batch = PendingBatch()
        self._loop: asyncio.AbstractEventLoop | None = None
        self._timer: asyncio.TimerHandle | None = None
        self._in_flight: set[asyncio.Task[FlushResult]] = set()
        self._max_concurrent_sends = max_concurrent_sends
        self._send_slots: asyncio.Semaphore | None = None
        if max_concurrent_sends is not None:
            if max_concurrent_sends < 1:
                raise ValueError("max_concurrent_sends must be >= 1")
            self._send_slots = asyncio.Semaphore(max_concurrent_sends)

    @property
    def batch_count(self) -> int:
        return self._batch_count

    @property
    def batch_interval_seconds(self) -> float:
        return self._batch_interval

    @property
    def pending(self) -> int:
        """Number of records in the live batch."""
        return len(self._batch.records)

    @property
    def in_flight(self) -> int:
        """Number of detached batches whose request has not completed."""
        return len(self._in_flight)

    @property
    def timer_armed(self) -> bool:
        return self._timer is not None

    def enqueue(
        self,
        record: Mapping[str, Any],
        on_result: ResultCallback | None = None,
    ) -> asyncio.Future[FlushResult]:
        """Append ``record`` to the live batch.

        Must be called from the event loop thread. Returns the future that
        resolves with the result of the flush this record ends up in.
        """
        loop = self._bind_loop()
        batch = self._batch
        batch.records.append(record)
        if len(batch.records) == 1:
            batch.on_result = on_result
            batch.result = loop.create_future()
            self._timer = loop.call_later(self._batch_interval, self._on_timer)
        result = batch.result
        assert result is not None
        if len(batch.records) >= self._batch_count:
            self._flush("count")
        return result

    def flush(self) -> asyncio.Task[FlushResult] | None:
        """Flush the live batch now; returns the send task, if any."""
        self._bind_loop()
        return self._flush("manual")

    async def drain(self) -> None:
        """Flush the live batch and wait for every in-flight send."""
        self._bind_loop()
        self._flush("manual")
        while self._in_flight:
            await asyncio.gather(*list(self._in_flight), return_exceptions=True)

    async def aclose(self) -> None:
        """Drain, then stop the sink if it has a lifecycle."""
        await self.drain()
        if hasattr(self._sink, "aclose"):
            await self._sink.aclose()

    def _bind_loop(self) -> asyncio.AbstractEventLoop:
        loop = asyncio.get_running_loop()
        if self._loop is not loop:
            if self._loop is not None and self._loop.is_closed():
                self._move_to_loop(loop)
            self._loop = loop
        return loop

    def _move_to_loop(self, loop: asyncio.AbstractEventLoop) -> None:
        """Re-home the live batch after the loop that armed its timer closed.

        A non-empty batch gets a fresh result future and a timer re-armed on
        ``loop`` with a full interval. Sends left behind on the closed loop
        are forgotten.
        """
        diagnostics.debug(
            "accumulator", "event loop changed", pending=len(self._batch.records)
        )
        for task in [t for t in self._in_flight if t.get_loop().is_closed()]:
            self._in_flight.discard(task)
        if self._max_concurrent_sends is not None:
            self._send_slots = asyncio.Semaphore(self._max_concurrent_sends)
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None
        batch = self._batch
        if batch.records:
            batch.result = loop.create_future()
            self._timer = loop.call_later(self._batch_interval, self._on_timer)

    def _on_timer(self) -> None:
        self._timer = None
        self._flush("time")

    def _flush(self, trigger: FlushTrigger) -> asyncio.Task[FlushResult] | None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None
        batch, self._batch = self._batch, PendingBatch()
        if not batch.records:
            return None
        diagnostics.debug(
            "accumulator", "flushing batch", trigger=trigger, records=len(batch.records)
        )
        task = asyncio.get_running_loop().create_task(self._dispatch(batch, trigger))
        self._in_flight.add(task)
        task.add_done_callback(self._in_flight.discard)
        return task

    async def _dispatch(self, batch: PendingBatch, trigger: FlushTrigger) -> FlushResult:
        try:
            async with AsyncExitStack() as stack:
                if self._send_slots is not None:
                    await stack.enter_async_context(self._send_slots)
                started = time.perf_counter()
                result = await self._send(batch)
                elapsed = time.perf_counter() - started
        except asyncio.CancelledError:
            if batch.result is not None and not batch.result.done():
                batch.result.cancel()
            raise

        if batch.result is not None and not batch.result.done():
            batch.result.set_result(result)
        if batch.on_result is not None:
            try:
                batch.on_result(result)
            except Exception as exc:
                diagnostics.warn(
                    "accumulator",
                    "flush result callback failed",
                    error=str(exc),
                    error_type=type(exc).__name__,
                )
        await self._record_metrics(batch, trigger, result, elapsed)
        return result

    async def _send(self, batch: PendingBatch) -> FlushResult:
        try:
            return await self._sink.send(batch.records)
        except Exception as exc:
            # Sinks should resolve Failure themselves; contain the ones that don't
            return Failure(TransportError(str(exc) or type(exc).__name__, cause=exc))

    async def _record_metrics(
        self,
        batch: PendingBatch,
        trigger: FlushTrigger,
        result: FlushResult,
        elapsed: float,
    ) -> None:
        if self._metrics is None:
            return
        try:
            await self._metrics.record_flush(
                trigger=trigger, size=len(batch.records), duration_seconds=elapsed
            )
            error = classify(result)
            if error is not None:
                await self._metrics.record_flush_failure(kind=error.category.value)
        except Exception:
            # Metrics must never break delivery
            pass


__all__ = ["BatchAccumulator", "FlushTrigger", "PendingBatch"]
