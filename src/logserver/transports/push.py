"""
Push-style producer adapter.

Producers hand over one entry at a time with ``log``. The outcome of the
batch an entry lands in is announced to listeners registered with ``on``:

- ``"logged"`` with the original entry when the server accepted the batch
- ``"warn"`` with a message string when delivery failed or was rejected

One flush announces one outcome: listeners receive the entry that opened the
batch, not one event per entry.
"""

from __future__ import annotations

import asyncio
from functools import partial
from typing import Any, Callable, Literal, Mapping

from ..core import diagnostics
from ..core.accumulator import BatchAccumulator
from ..core.normalize import RecordDefaults, normalize_push_entry
from ..core.results import FlushResult, classify
from ..core.settings import LogserverSettings
from ..factory import create_accumulator, resolve_settings

PushEvent = Literal["logged", "warn"]
Listener = Callable[[Any], None]

__all__ = ["PushEvent", "PushTransport"]


class PushTransport:
    """Normalize pushed entries and feed them to a ``BatchAccumulator``."""

    name = "logserver-push"

    def __init__(
        self,
        accumulator: BatchAccumulator,
        *,
        defaults: RecordDefaults | None = None,
    ) -> None:
        self._accumulator = accumulator
        self._defaults = defaults or RecordDefaults()
        self._listeners: dict[str, list[Listener]] = {"logged": [], "warn": []}

    @classmethod
    def from_settings(
        cls, settings: LogserverSettings | None = None, **options: Any
    ) -> PushTransport:
        cfg = resolve_settings(settings, **options)
        return cls(create_accumulator(cfg), defaults=cfg.record_defaults())

    @property
    def accumulator(self) -> BatchAccumulator:
        return self._accumulator

    def on(self, event: PushEvent, listener: Listener) -> None:
        if event not in self._listeners:
            raise ValueError(f"Unknown event '{event}'")
        self._listeners[event].append(listener)

    def off(self, event: PushEvent, listener: Listener) -> None:
        try:
            self._listeners[event].remove(listener)
        except (KeyError, ValueError):
            return

    def log(
        self,
        entry: Mapping[str, Any],
        callback: Callable[[], None] | None = None,
    ) -> asyncio.Future[FlushResult]:
        """Queue ``entry`` for delivery.

        ``callback`` is scheduled on the loop right away, independent of the
        network outcome. Must be called from the event loop thread.
        """
        record = normalize_push_entry(entry, self._defaults)
        future = self._accumulator.enqueue(
            record, partial(self._on_flush_result, entry)
        )
        if callback is not None:
            asyncio.get_running_loop().call_soon(callback)
        return future

    def _on_flush_result(self, entry: Mapping[str, Any], result: FlushResult) -> None:
        error = classify(result)
        if error is None:
            self._emit("logged", entry)
        else:
            self._emit("warn", error.message)

    def _emit(self, event: PushEvent, payload: Any) -> None:
        for listener in list(self._listeners[event]):
            try:
                listener(payload)
            except Exception as exc:
                diagnostics.warn(
                    "push-transport",
                    "listener failed",
                    event=event,
                    error=str(exc),
                )

    async def aclose(self) -> None:
        """Deliver everything still buffered, then close the sink."""
        await self._accumulator.aclose()
