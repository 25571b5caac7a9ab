"""
Internal diagnostics for non-fatal delivery problems.

Writes one JSON object per line to ``sys.stderr``. Never routes through the
stdlib ``logging`` tree, so a ``LogserverHandler`` attached to the root
logger cannot feed its own failures back into the batch it failed to send.

``warn`` always writes; ``debug`` writes only when internal logging is
enabled through ``LOGSERVER_INTERNAL_LOGGING``. The flag is read once and
cached in ``_internal_logging_enabled``.
"""

from __future__ import annotations

import os
import sys
import time
from typing import Any

import orjson

_internal_logging_enabled: bool | None = None

_TRUTHY = {"1", "true", "yes", "on"}


def _is_internal_logging_enabled() -> bool:
    global _internal_logging_enabled
    if _internal_logging_enabled is None:
        raw = os.getenv("LOGSERVER_INTERNAL_LOGGING", "")
        _internal_logging_enabled = raw.strip().lower() in _TRUTHY
    return _internal_logging_enabled


def _emit(level: str, component: str, message: str, fields: dict[str, Any]) -> None:
    payload: dict[str, Any] = {
        "timestamp": time.time(),
        "level": level,
        "origin": "logserver",
        "component": component,
        "message": message,
    }
    payload.update(fields)
    try:
        line = orjson.dumps(payload, default=str)
        sys.stderr.write(line.decode("utf-8") + "\n")
        sys.stderr.flush()
    except Exception:
        # Diagnostics must never break delivery
        pass


def warn(component: str, message: str, **fields: Any) -> None:
    """Report a non-fatal problem on stderr."""
    _emit("WARN", component, message, fields)


def debug(component: str, message: str, **fields: Any) -> None:
    """Report internal activity when internal logging is enabled."""
    if not _is_internal_logging_enabled():
        return
    _emit("DEBUG", component, message, fields)
