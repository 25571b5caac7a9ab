"""
Public entrypoints for logserver.

Ships structured log records to a log server over HTTP in batches. A batch
is sent when ``batch_count`` records have accumulated or ``batch_interval``
milliseconds have passed since its first record, whichever comes first.

Example:
    import logging

    from logserver import LogserverHandler

    handler = LogserverHandler(
        api_base_url="https://logs.example.com/api",
        api_key="secret",
        service="billing",
    )
    logging.getLogger().addHandler(handler)
    logging.getLogger("billing").info("invoice sent", extra={"invoice": 42})
"""

from __future__ import annotations

from ._version import __version__
from .core.accumulator import BatchAccumulator
from .core.errors import ApplicationRejection, LogserverError, TransportError
from .core.levels import register_level
from .core.normalize import (
    CanonicalRecord,
    RecordDefaults,
    normalize_push_entry,
    normalize_stream_entry,
)
from .core.results import Failure, FlushResult, Success, classify
from .core.settings import LogserverSettings
from .factory import create_accumulator
from .sinks.http import HttpDispatchSink
from .transports import LogserverHandler, PushTransport, StreamTransport

__all__ = [
    "ApplicationRejection",
    "BatchAccumulator",
    "CanonicalRecord",
    "Failure",
    "FlushResult",
    "HttpDispatchSink",
    "LogserverError",
    "LogserverHandler",
    "LogserverSettings",
    "PushTransport",
    "RecordDefaults",
    "StreamTransport",
    "Success",
    "TransportError",
    "VERSION",
    "__version__",
    "classify",
    "create_accumulator",
    "normalize_push_entry",
    "normalize_stream_entry",
    "register_level",
]

VERSION = __version__
