"""Producer adapters feeding a ``BatchAccumulator``."""

from .push import PushTransport
from .stdlib import LogserverHandler
from .stream import StreamTransport

__all__ = ["LogserverHandler", "PushTransport", "StreamTransport"]
