"""
Async-first delivery metrics for logserver.

Implements minimal Prometheus-compatible counters and a latency histogram
for batch flushes.

Design goals:
- Pure async/await, no blocking I/O
- Zero global state; instances are owned by whoever builds the accumulator
- Safe no-op exporters when metrics are disabled; in-memory counters are
  always kept for quick assertions
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import Any

from prometheus_client import CollectorRegistry, Counter, Histogram


@dataclass
class FlushMetrics:
    """Captured runtime metrics for quick assertions in tests."""

    batches_flushed: int = 0
    records_sent: int = 0
    failed_flushes: int = 0


class MetricsCollector:
    """Accumulator-scoped async metrics collector."""

    def __init__(self, *, enabled: bool = False) -> None:
        self._enabled = bool(enabled)
        self._lock = asyncio.Lock()
        self._state = FlushMetrics()

        self._c_batches: Any | None = None
        self._c_records: Any | None = None
        self._c_failures: Any | None = None
        self._h_flush_latency: Any | None = None
        self._registry: CollectorRegistry | None = None

        if self._enabled:
            # Isolated registry avoids duplicate registration across instances
            self._registry = CollectorRegistry()
            self._c_batches = Counter(
                "logserver_batches_flushed_total",
                "Total number of batches handed to the dispatch sink",
                ["trigger"],
                registry=self._registry,
            )
            self._c_records = Counter(
                "logserver_records_sent_total",
                "Total number of records contained in flushed batches",
                registry=self._registry,
            )
            self._c_failures = Counter(
                "logserver_failed_flushes_total",
                "Total number of flushes reported as failed",
                ["kind"],
                registry=self._registry,
            )
            self._h_flush_latency = Histogram(
                "logserver_flush_seconds",
                "Latency of a single batch request",
                buckets=(0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0),
                registry=self._registry,
            )

    @property
    def is_enabled(self) -> bool:
        return self._enabled

    @property
    def registry(self) -> CollectorRegistry | None:
        """Expose the isolated Prometheus registry when enabled."""
        return self._registry

    async def record_flush(
        self,
        *,
        trigger: str,
        size: int,
        duration_seconds: float | None = None,
    ) -> None:
        async with self._lock:
            self._state.batches_flushed += 1
            self._state.records_sent += size
        if not self._enabled:
            return
        if self._c_batches is not None:
            self._c_batches.labels(trigger=trigger).inc()
        if self._c_records is not None:
            self._c_records.inc(size)
        if duration_seconds is not None and self._h_flush_latency is not None:
            self._h_flush_latency.observe(duration_seconds)

    async def record_flush_failure(self, *, kind: str) -> None:
        async with self._lock:
            self._state.failed_flushes += 1
        if not self._enabled:
            return
        if self._c_failures is not None:
            self._c_failures.labels(kind=kind).inc()

    async def snapshot(self) -> FlushMetrics:
        async with self._lock:
            return FlushMetrics(
                batches_flushed=self._state.batches_flushed,
                records_sent=self._state.records_sent,
                failed_flushes=self._state.failed_flushes,
            )
