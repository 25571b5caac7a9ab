from __future__ import annotations

import asyncio
import json
import logging
import time
from typing import Any

import httpx
import pytest

from conftest import get_test_timeout
from logserver.core.accumulator import BatchAccumulator
from logserver.core.results import FlushResult, Success
from logserver.core.settings import LogserverSettings
from logserver.factory import create_accumulator
from logserver.transports.push import PushTransport
from logserver.transports.stdlib import LogserverHandler


class _StubSink:
    def __init__(self) -> None:
        self.batches: list[list[dict[str, Any]]] = []

    async def send(self, batch: list[dict[str, Any]]) -> FlushResult:
        self.batches.append(list(batch))
        return Success({"success": True})


def _logger(name: str, handler: logging.Handler) -> logging.Logger:
    logger = logging.getLogger(f"logserver-tests.{name}")
    logger.handlers.clear()
    logger.propagate = False
    logger.setLevel(logging.DEBUG)
    logger.addHandler(handler)
    return logger


def _handler(batch_count: int = 100) -> tuple[LogserverHandler, _StubSink]:
    sink = _StubSink()
    acc = BatchAccumulator(sink, batch_count=batch_count, batch_interval_seconds=5.0)
    return LogserverHandler(transport=PushTransport(acc)), sink


async def test_records_are_normalized() -> None:
    handler, sink = _handler()
    logger = _logger("normalized", handler)

    logger.warning("disk %s%% full", 91, extra={"volume": "/data", "meta": {"a": 1}})
    await handler.transport.accumulator.drain()

    (record,) = sink.batches[0]
    assert record["message"] == "disk 91% full"
    assert record["logLevel"] == "warn"
    assert record["logger"] == "logserver-tests.normalized"
    assert record["volume"] == "/data"
    assert record["meta"] == '{"a":1}'
    assert record["timestamp"].endswith("Z")
    assert "args" not in record
    assert "msg" not in record


@pytest.mark.parametrize(
    ("level", "expected"),
    [
        (logging.DEBUG, "debug"),
        (logging.INFO, "info"),
        (logging.WARNING, "warn"),
        (logging.ERROR, "error"),
        (logging.CRITICAL, "fatal"),
    ],
)
async def test_level_mapping(level: int, expected: str) -> None:
    handler, sink = _handler()
    logger = _logger(f"level-{level}", handler)

    logger.log(level, "x")
    await handler.transport.accumulator.drain()

    assert sink.batches[0][0]["logLevel"] == expected


async def test_exception_text_is_attached() -> None:
    handler, sink = _handler()
    logger = _logger("exc", handler)

    try:
        raise ValueError("bad input")
    except ValueError:
        logger.exception("failed")
    await handler.transport.accumulator.drain()

    record = sink.batches[0][0]
    assert "ValueError: bad input" in record["exception"]
    assert record["logLevel"] == "error"


async def test_emit_from_worker_thread() -> None:
    sink = _StubSink()
    acc = BatchAccumulator(sink, batch_count=100, batch_interval_seconds=5.0)
    handler = LogserverHandler(
        transport=PushTransport(acc), loop=asyncio.get_running_loop()
    )
    logger = _logger("threaded", handler)

    await asyncio.to_thread(logger.info, "from thread")
    await asyncio.sleep(0)
    await acc.drain()

    assert [r["message"] for r in sink.batches[0]] == ["from thread"]


async def test_flush_sends_live_batch() -> None:
    handler, sink = _handler()
    logger = _logger("flush", handler)

    logger.info("a")
    handler.flush()
    await handler.transport.accumulator.drain()

    assert len(sink.batches) == 1


def test_sync_logging_uses_background_loop_and_close_drains() -> None:
    bodies: list[dict[str, Any]] = []

    def _respond(request: httpx.Request) -> httpx.Response:
        bodies.append(json.loads(request.content))
        return httpx.Response(200, json={"success": True})

    settings = LogserverSettings(
        api_base_url="https://logs.example.com",
        api_key="k",
        batch_count=50,
        drain_timeout_seconds=5.0,
    )
    transport = PushTransport(
        create_accumulator(settings, transport=httpx.MockTransport(_respond)),
        defaults=settings.record_defaults(),
    )
    handler = LogserverHandler(settings, transport=transport)
    logger = _logger("sync", handler)

    logger.info("one")
    logger.info("two")
    handler.close()

    assert len(bodies) == 1
    assert [r["message"] for r in bodies[0]["logs"]] == ["one", "two"]


def test_close_without_emits_is_noop() -> None:
    handler, sink = _handler()

    handler.close()
    handler.close()

    assert sink.batches == []


async def test_handler_built_from_options() -> None:
    handler = LogserverHandler(
        api_base_url="https://logs.example.com",
        api_key="k",
        batch_count=4,
        drain_timeout_seconds=1.5,
    )

    assert handler.transport.accumulator.batch_count == 4
    assert handler._drain_timeout == 1.5
    await handler.transport.aclose()


def test_flush_timer_survives_loop_change() -> None:
    sink = _StubSink()
    acc = BatchAccumulator(sink, batch_count=10, batch_interval_seconds=0.1)
    handler = LogserverHandler(transport=PushTransport(acc))
    logger = _logger("loop-change", handler)

    async def _session() -> None:
        logger.info("inside")

    try:
        asyncio.run(_session())
        logger.info("outside")
        time.sleep(get_test_timeout(0.5))

        assert [[r["message"] for r in b] for b in sink.batches] == [
            ["inside", "outside"]
        ]
    finally:
        handler.close()
