from __future__ import annotations

import pytest

from logserver.core.errors import (
    ApplicationRejection,
    ErrorCategory,
    TransportError,
)
from logserver.core.results import Failure, Success, classify


def test_success_with_truthy_flag_has_no_error() -> None:
    assert classify(Success({"success": True, "received": 3})) is None


def test_failure_error_is_returned() -> None:
    error = TransportError("Request failed with status code 502", status_code=502)

    assert classify(Failure(error)) is error
    assert Failure(error).ok is False


@pytest.mark.parametrize(
    ("body", "message"),
    [
        ({"success": False, "message": "quota exceeded"}, "quota exceeded"),
        ({"success": False}, "log server rejected the batch"),
        ({}, "log server rejected the batch"),
        (["unexpected"], "log server rejected the batch"),
        (None, "log server rejected the batch"),
    ],
)
def test_rejections(body: object, message: str) -> None:
    error = classify(Success(body))

    assert isinstance(error, ApplicationRejection)
    assert error.message == message
    assert error.body == body
    assert error.category is ErrorCategory.REJECTION
    assert Success(body).ok is True


def test_transport_error_carries_cause() -> None:
    cause = OSError("connection reset")
    error = TransportError("connection reset", cause=cause)

    assert str(error) == "connection reset"
    assert error.cause is cause
    assert error.status_code is None
    assert error.category is ErrorCategory.TRANSPORT
