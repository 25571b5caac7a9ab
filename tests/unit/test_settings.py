from __future__ import annotations

import os

import pytest
from pydantic import ValidationError

from logserver.core.normalize import RecordDefaults
from logserver.core.settings import LogserverSettings


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for key in list(os.environ):
        if key.upper().startswith("LOGSERVER_"):
            monkeypatch.delenv(key, raising=False)


def test_defaults() -> None:
    settings = LogserverSettings(api_base_url="https://logs.example.com", api_key="k")

    assert settings.api_log_endpoint == "log"
    assert settings.batch_count == 20
    assert settings.batch_interval_ms == 5000
    assert settings.batch_interval_seconds == 5.0
    assert settings.max_concurrent_sends is None
    assert settings.connect_retries == 0
    assert settings.enable_metrics is False
    assert settings.host is None


def test_from_options_accepts_camel_case() -> None:
    settings = LogserverSettings.from_options(
        {
            "apiBaseUrl": "https://logs.example.com",
            "apiKey": "secret",
            "apiLogEndpoint": "ingest",
            "batchCount": 5,
            "batchInterval": 1000,
            "application": "shop",
            "environment": None,
        }
    )

    assert settings.api_base_url == "https://logs.example.com"
    assert settings.api_key.get_secret_value() == "secret"
    assert settings.api_log_endpoint == "ingest"
    assert settings.batch_count == 5
    assert settings.batch_interval_ms == 1000
    assert settings.batch_interval_seconds == 1.0
    assert settings.application == "shop"
    assert settings.environment is None


def test_overrides_win_over_options() -> None:
    settings = LogserverSettings.from_options(
        {"apiBaseUrl": "https://a.example.com", "apiKey": "k", "batchCount": 5},
        batch_count=7,
    )

    assert settings.batch_count == 7


def test_environment_variables(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("LOGSERVER_API_BASE_URL", "https://env.example.com")
    monkeypatch.setenv("LOGSERVER_API_KEY", "from-env")
    monkeypatch.setenv("LOGSERVER_BATCH_COUNT", "3")
    monkeypatch.setenv("LOGSERVER_SERVICE", "billing")

    settings = LogserverSettings()

    assert settings.api_base_url == "https://env.example.com"
    assert settings.api_key.get_secret_value() == "from-env"
    assert settings.batch_count == 3
    assert settings.service == "billing"


def test_api_key_is_not_exposed_in_repr() -> None:
    settings = LogserverSettings(api_base_url="https://x.example.com", api_key="hunter2")

    assert "hunter2" not in repr(settings)
    assert "hunter2" not in str(settings.model_dump())


def test_blank_endpoint_falls_back_to_default() -> None:
    settings = LogserverSettings(
        api_base_url="https://x.example.com", api_key="k", api_log_endpoint="  "
    )

    assert settings.api_log_endpoint == "log"


@pytest.mark.parametrize(
    "overrides",
    [
        {"api_base_url": "   "},
        {"batch_count": -1},
        {"batch_interval_ms": -5},
        {"max_concurrent_sends": 0},
        {"http_timeout_seconds": 0},
        {"connect_retries": -1},
    ],
)
def test_invalid_values_rejected(overrides: dict[str, object]) -> None:
    options: dict[str, object] = {"api_base_url": "https://x.example.com", "api_key": "k"}
    options.update(overrides)
    with pytest.raises(ValidationError):
        LogserverSettings(**options)


def test_missing_required_fields_rejected() -> None:
    with pytest.raises(ValidationError):
        LogserverSettings()


def test_record_defaults() -> None:
    settings = LogserverSettings(
        api_base_url="https://x.example.com",
        api_key="k",
        service="billing",
        application="shop",
        environment="prod",
        version="1.0.0",
        host="web-1",
    )

    assert settings.record_defaults() == RecordDefaults(
        service="billing",
        application="shop",
        environment="prod",
        version="1.0.0",
        host="web-1",
    )


def test_zero_batch_policy_selects_defaults(monkeypatch: pytest.MonkeyPatch) -> None:
    settings = LogserverSettings.from_options(
        {
            "apiBaseUrl": "https://x.example.com",
            "apiKey": "k",
            "batchCount": 0,
            "batchInterval": 0,
        }
    )

    assert settings.batch_count == 20
    assert settings.batch_interval_ms == 5000

    monkeypatch.setenv("LOGSERVER_API_BASE_URL", "https://env.example.com")
    monkeypatch.setenv("LOGSERVER_API_KEY", "k")
    monkeypatch.setenv("LOGSERVER_BATCH_COUNT", "0")

    assert LogserverSettings().batch_count == 20
