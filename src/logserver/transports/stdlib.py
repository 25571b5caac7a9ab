"""
Bridge from the stdlib ``logging`` module to a ``PushTransport``.

``LogserverHandler`` can be attached to any logger. ``emit`` may run on any
thread: the entry is handed to the event loop that hosts the accumulator.
That loop is, in order of preference, the one passed to the constructor,
the loop running in the thread of the first ``emit``, or a private loop on
a daemon thread.

``close()`` (also called by ``logging.shutdown()`` at interpreter exit)
delivers what is still buffered, bounded by ``drain_timeout_seconds``.
"""

from __future__ import annotations

import asyncio
import concurrent.futures
import logging
from datetime import datetime, timezone
from typing import Any

from ..core import diagnostics
from ..core.levels import stdlib_level_name
from ..core.loop import BackgroundLoop
from ..core.settings import LogserverSettings
from ..factory import create_accumulator, resolve_settings
from .push import PushTransport

__all__ = ["LogserverHandler"]

_RESERVED_ATTRS = frozenset(
    vars(logging.LogRecord("", logging.INFO, "", 0, "", (), None))
) | {"message", "asctime", "taskName"}

_DEFAULT_FORMATTER = logging.Formatter()

# Keep references to close tasks scheduled on a running loop
_PENDING_CLOSE_TASKS: set[asyncio.Task[None]] = set()


def _running_loop() -> asyncio.AbstractEventLoop | None:
    try:
        return asyncio.get_running_loop()
    except RuntimeError:
        return None


class LogserverHandler(logging.Handler):
    """Ship stdlib log records to the log server in batches."""

    def __init__(
        self,
        settings: LogserverSettings | None = None,
        *,
        level: int = logging.NOTSET,
        transport: PushTransport | None = None,
        loop: asyncio.AbstractEventLoop | None = None,
        **options: Any,
    ) -> None:
        super().__init__(level)
        drain_timeout = 2.0
        if transport is None:
            cfg = resolve_settings(settings, **options)
            transport = PushTransport(
                create_accumulator(cfg), defaults=cfg.record_defaults()
            )
            drain_timeout = cfg.drain_timeout_seconds
        elif settings is not None:
            drain_timeout = settings.drain_timeout_seconds
        self.transport = transport
        self._loop = loop
        self._background: BackgroundLoop | None = None
        self._drain_timeout = drain_timeout
        self._closed = False

    def to_entry(self, record: logging.LogRecord) -> dict[str, Any]:
        """Build a push entry from a ``LogRecord``; extras pass through."""
        entry: dict[str, Any] = {
            key: value
            for key, value in record.__dict__.items()
            if key not in _RESERVED_ATTRS and not key.startswith("_")
        }
        entry["message"] = record.getMessage()
        entry["logLevel"] = stdlib_level_name(record.levelno, record.levelname)
        entry["timestamp"] = datetime.fromtimestamp(record.created, tz=timezone.utc)
        entry["logger"] = record.name
        if record.exc_info:
            formatter = self.formatter or _DEFAULT_FORMATTER
            entry["exception"] = formatter.formatException(record.exc_info)
        if record.stack_info:
            entry["stack"] = record.stack_info
        return entry

    def emit(self, record: logging.LogRecord) -> None:
        try:
            entry = self.to_entry(record)
            loop = self._resolve_loop()
            if _running_loop() is loop:
                self.transport.log(entry)
            else:
                loop.call_soon_threadsafe(self.transport.log, entry)
        except RecursionError:
            raise
        except Exception:
            self.handleError(record)

    def _resolve_loop(self) -> asyncio.AbstractEventLoop:
        if self._loop is not None and not self._loop.is_closed():
            return self._loop
        running = _running_loop()
        if running is not None:
            self._loop = running
            return running
        if self._background is None:
            self._background = BackgroundLoop(name="logserver-handler").start()
        self._loop = self._background.loop
        return self._loop

    def flush(self) -> None:
        """Start a flush of the live batch without waiting for it."""
        loop = self._loop
        if loop is None or loop.is_closed():
            return
        accumulator = self.transport.accumulator
        if _running_loop() is loop:
            accumulator.flush()
        else:
            loop.call_soon_threadsafe(accumulator.flush)

    def close(self) -> None:
        try:
            if not self._closed:
                self._closed = True
                self._drain()
        finally:
            super().close()

    def _drain(self) -> None:
        loop = self._loop
        try:
            if loop is None or loop.is_closed():
                return
            if _running_loop() is loop:
                # Cannot block the loop we are running on; finish in background
                task = loop.create_task(self.transport.aclose())
                _PENDING_CLOSE_TASKS.add(task)
                task.add_done_callback(_PENDING_CLOSE_TASKS.discard)
                return
            if not loop.is_running():
                diagnostics.warn(
                    "stdlib-handler",
                    "event loop is not running, buffered records dropped",
                    pending=self.transport.accumulator.pending,
                )
                return
            future = asyncio.run_coroutine_threadsafe(self.transport.aclose(), loop)
            try:
                future.result(self._drain_timeout)
            except concurrent.futures.TimeoutError:
                future.cancel()
                diagnostics.warn(
                    "stdlib-handler",
                    "drain timed out",
                    timeout_seconds=self._drain_timeout,
                )
            except Exception as exc:
                diagnostics.warn("stdlib-handler", "drain failed", error=str(exc))
        finally:
            if self._background is not None:
                self._background.stop()
                self._background = None
