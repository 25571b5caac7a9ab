"""
Private event loop on a daemon thread.

Used when records are produced by synchronous code with no running loop to
host the accumulator and its timers.
"""

from __future__ import annotations

import asyncio
import threading


class BackgroundLoop:
    """Run an asyncio loop forever on a dedicated daemon thread."""

    def __init__(self, *, name: str = "logserver-loop") -> None:
        self._loop = asyncio.new_event_loop()
        self._ready = threading.Event()
        self._thread = threading.Thread(target=self._run, name=name, daemon=True)

    @property
    def loop(self) -> asyncio.AbstractEventLoop:
        return self._loop

    @property
    def is_running(self) -> bool:
        return self._thread.is_alive()

    def start(self) -> BackgroundLoop:
        if not self._thread.is_alive():
            self._thread.start()
            self._ready.wait()
        return self

    def _run(self) -> None:
        asyncio.set_event_loop(self._loop)
        self._loop.call_soon(self._ready.set)
        try:
            self._loop.run_forever()
        finally:
            pending = asyncio.all_tasks(self._loop)
            for task in pending:
                task.cancel()
            if pending:
                self._loop.run_until_complete(
                    asyncio.gather(*pending, return_exceptions=True)
                )
            self._loop.close()

    def stop(self, *, timeout: float | None = 2.0) -> None:
        if not self._thread.is_alive():
            return
        self._loop.call_soon_threadsafe(self._loop.stop)
        self._thread.join(timeout)
