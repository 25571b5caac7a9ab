from __future__ import annotations

from typing import Any, Mapping, Protocol, Sequence, runtime_checkable

from ..core.results import FlushResult


@runtime_checkable
class BatchSender(Protocol):
    """Async batch sink interface.

    Sinks deliver one detached batch per call and report the outcome as a
    ``FlushResult``. Implementations must contain their errors: ``send``
    resolves with ``Failure`` instead of raising.
    """

    async def send(self, batch: Sequence[Mapping[str, Any]]) -> FlushResult:
        """Deliver ``batch`` as a single request."""
        ...


__all__ = ["BatchSender"]
