"""
Wiring helpers that turn settings into a ready accumulator.
"""

from __future__ import annotations

from typing import Any

import httpx

from .core.accumulator import BatchAccumulator
from .core.settings import LogserverSettings
from .metrics.metrics import MetricsCollector
from .sinks.http import HttpDispatchSink


def resolve_settings(
    settings: LogserverSettings | None = None, **options: Any
) -> LogserverSettings:
    """Return ``settings`` or build them from camelCase/snake_case options."""
    if settings is None:
        return LogserverSettings.from_options(options)
    if options:
        # Re-validate so overrides go through the same bounds
        return LogserverSettings.from_options(settings.model_dump(), **options)
    return settings


def create_accumulator(
    settings: LogserverSettings | None = None,
    *,
    transport: httpx.AsyncBaseTransport | None = None,
    metrics: MetricsCollector | None = None,
    **options: Any,
) -> BatchAccumulator:
    """Build an accumulator posting to the destination in ``settings``.

    Each call creates an independent accumulator and HTTP client; callers own
    the result and should ``await accumulator.aclose()`` when done.
    """
    cfg = resolve_settings(settings, **options)
    if metrics is None and cfg.enable_metrics:
        metrics = MetricsCollector(enabled=True)
    sink = HttpDispatchSink(cfg, transport=transport)
    return BatchAccumulator(
        sink,
        batch_count=cfg.batch_count,
        batch_interval_seconds=cfg.batch_interval_seconds,
        max_concurrent_sends=cfg.max_concurrent_sends,
        metrics=metrics,
    )


__all__ = ["create_accumulator", "resolve_settings"]
