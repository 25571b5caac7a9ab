"""
Per-flush outcomes.

A flush produces exactly one ``FlushResult`` which represents every record
of the detached batch.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Union

from .errors import ApplicationRejection, LogserverError

DEFAULT_REJECTION_MESSAGE = "log server rejected the batch"


@dataclass(frozen=True)
class Success:
    """The request completed; ``body`` is the decoded response payload."""

    body: Any

    @property
    def ok(self) -> bool:
        return True


@dataclass(frozen=True)
class Failure:
    """The request did not complete."""

    error: LogserverError

    @property
    def ok(self) -> bool:
        return False


FlushResult = Union[Success, Failure]
ResultCallback = Callable[[FlushResult], None]


def classify(result: FlushResult) -> LogserverError | None:
    """Return the error a producer should report for ``result``, if any.

    A ``Success`` whose body does not carry a truthy ``success`` flag is an
    application-level rejection even though the HTTP exchange succeeded.
    """
    if isinstance(result, Failure):
        return result.error
    body = result.body
    if isinstance(body, dict) and body.get("success"):
        return None
    message = None
    if isinstance(body, dict):
        message = body.get("message")
    return ApplicationRejection(
        str(message) if message else DEFAULT_REJECTION_MESSAGE, body=body
    )


__all__ = [
    "Failure",
    "FlushResult",
    "ResultCallback",
    "Success",
    "classify",
]
