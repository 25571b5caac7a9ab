"""
Error taxonomy for log delivery.

Neither error is raised into producer code: both travel inside a
``Failure`` result or are derived from a ``Success`` body by ``classify``.
"""

from __future__ import annotations

from enum import Enum
from typing import Any


class ErrorCategory(str, Enum):
    TRANSPORT = "transport"
    REJECTION = "rejection"


class LogserverError(Exception):
    """Base class for delivery errors carrying a human-readable message."""

    category: ErrorCategory = ErrorCategory.TRANSPORT

    def __init__(self, message: str, *, cause: BaseException | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.cause = cause

    def __str__(self) -> str:
        return self.message


class TransportError(LogserverError):
    """Network or HTTP layer failure: connect, timeout, non-2xx, bad body."""

    category = ErrorCategory.TRANSPORT

    def __init__(
        self,
        message: str,
        *,
        status_code: int | None = None,
        cause: BaseException | None = None,
    ) -> None:
        super().__init__(message, cause=cause)
        self.status_code = status_code


class ApplicationRejection(LogserverError):
    """The request completed but the endpoint answered ``success: false``."""

    category = ErrorCategory.REJECTION

    def __init__(self, message: str, *, body: Any = None) -> None:
        super().__init__(message)
        self.body = body


__all__ = [
    "ApplicationRejection",
    "ErrorCategory",
    "LogserverError",
    "TransportError",
]
