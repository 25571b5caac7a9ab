from __future__ import annotations

import asyncio
import threading

from logserver.core.loop import BackgroundLoop


def test_runs_coroutines_on_its_own_thread() -> None:
    loop = BackgroundLoop(name="test-loop").start()
    try:
        async def _thread_name() -> str:
            await asyncio.sleep(0)
            return threading.current_thread().name

        assert loop.is_running is True
        future = asyncio.run_coroutine_threadsafe(_thread_name(), loop.loop)
        assert future.result(2.0) == "test-loop"
    finally:
        loop.stop()

    assert loop.is_running is False
    assert loop.loop.is_closed()


def test_start_is_idempotent() -> None:
    loop = BackgroundLoop()
    try:
        assert loop.start() is loop
        assert loop.start() is loop
        assert loop.is_running is True
    finally:
        loop.stop()


def test_stop_cancels_pending_tasks() -> None:
    loop = BackgroundLoop().start()
    cancelled = threading.Event()

    async def _forever() -> None:
        try:
            await asyncio.sleep(3600)
        except asyncio.CancelledError:
            cancelled.set()
            raise

    started = threading.Event()

    def _schedule() -> None:
        loop.loop.create_task(_forever())
        started.set()

    loop.loop.call_soon_threadsafe(_schedule)
    assert started.wait(2.0)
    loop.stop()

    assert cancelled.is_set()


def test_stop_before_start_is_noop() -> None:
    loop = BackgroundLoop()

    loop.stop()

    assert loop.is_running is False
    loop.loop.close()
