"""
Pull-style producer adapter.

``StreamTransport.consume`` drains a lazy, possibly endless sequence of
native entries (sync or async iterable) into the accumulator. Consumption
stops when the source is exhausted or yields a falsy item. The same
transport can consume further sources afterwards; the accumulator and its
live batch carry over.

This adapter has no listeners of its own: failed or rejected flushes are
written to stderr through ``diagnostics.warn``.
"""

from __future__ import annotations

from collections.abc import AsyncIterable, Iterable, Mapping
from typing import Any, Union

from ..core import diagnostics
from ..core.accumulator import BatchAccumulator
from ..core.normalize import RecordDefaults, normalize_stream_entry
from ..core.results import FlushResult, classify
from ..core.settings import LogserverSettings
from ..factory import create_accumulator, resolve_settings

EntrySource = Union[
    AsyncIterable[Mapping[str, Any] | None],
    Iterable[Mapping[str, Any] | None],
]

__all__ = ["EntrySource", "StreamTransport"]


class StreamTransport:
    """Normalize pulled entries and feed them to a ``BatchAccumulator``."""

    name = "logserver-stream"

    def __init__(
        self,
        accumulator: BatchAccumulator,
        *,
        defaults: RecordDefaults | None = None,
    ) -> None:
        self._accumulator = accumulator
        self._defaults = defaults or RecordDefaults()

    @classmethod
    def from_settings(
        cls, settings: LogserverSettings | None = None, **options: Any
    ) -> StreamTransport:
        cfg = resolve_settings(settings, **options)
        return cls(create_accumulator(cfg), defaults=cfg.record_defaults())

    @property
    def accumulator(self) -> BatchAccumulator:
        return self._accumulator

    async def consume(self, source: EntrySource) -> int:
        """Enqueue entries from ``source``; returns how many were enqueued."""
        count = 0
        if isinstance(source, AsyncIterable):
            async for entry in source:
                if not entry:
                    break
                self._enqueue(entry)
                count += 1
        else:
            for entry in source:
                if not entry:
                    break
                self._enqueue(entry)
                count += 1
        return count

    def _enqueue(self, entry: Mapping[str, Any]) -> None:
        record = normalize_stream_entry(entry, self._defaults)
        self._accumulator.enqueue(record, self._on_flush_result)

    def _on_flush_result(self, result: FlushResult) -> None:
        error = classify(result)
        if error is None:
            return
        diagnostics.warn(
            "stream-transport",
            "log batch not delivered",
            error=error.message,
            kind=error.category.value,
        )

    async def aclose(self) -> None:
        """Deliver everything still buffered, then close the sink."""
        await self._accumulator.aclose()
