"""
Configuration models for logserver using Pydantic v2 Settings.

One ``LogserverSettings`` instance describes one destination: a base URL,
its API key and the batching policy used to reach it. Values come from
keyword arguments or ``LOGSERVER_*`` environment variables.
"""

from __future__ import annotations

from typing import Any, Mapping

from pydantic import Field, SecretStr, ValidationInfo, field_validator
from pydantic.alias_generators import to_snake
from pydantic_settings import BaseSettings, SettingsConfigDict

from .normalize import RecordDefaults

# Option names whose snake_case form differs from the field name
_OPTION_RENAMES = {
    "batch_interval": "batch_interval_ms",
}


class LogserverSettings(BaseSettings):
    """Destination, batching policy and static record enrichment."""

    api_base_url: str = Field(description="Base URL of the log server")
    api_key: SecretStr = Field(description="Value sent in the x-api-key header")
    api_log_endpoint: str = Field(
        default="log",
        description="Path of the ingestion endpoint, relative to api_base_url",
    )
    batch_count: int = Field(
        default=20,
        ge=1,
        description="Number of records that triggers an immediate flush",
    )
    batch_interval_ms: int = Field(
        default=5000,
        ge=1,
        description="Milliseconds after the first record of a batch before it is flushed",
    )
    max_concurrent_sends: int | None = Field(
        default=None,
        ge=1,
        description="Optional cap on in-flight batch requests; unbounded when unset",
    )
    http_timeout_seconds: float = Field(
        default=5.0,
        gt=0.0,
        description="Timeout applied to each batch request",
    )
    connect_retries: int = Field(
        default=0,
        ge=0,
        description="Connection attempts retried by the HTTP transport",
    )
    drain_timeout_seconds: float = Field(
        default=2.0,
        gt=0.0,
        description="Upper bound on blocking drains performed by handler close()",
    )
    enable_metrics: bool = Field(
        default=False,
        description="Enable Prometheus-compatible metrics",
    )

    # Static enrichment
    application: str | None = Field(default=None, description="Application name")
    environment: str | None = Field(default=None, description="Deployment environment")
    service: str | None = Field(default=None, description="Service name")
    host: str | None = Field(default=None, description="Host name")
    version: str | None = Field(default=None, description="Application version")

    model_config = SettingsConfigDict(
        env_prefix="LOGSERVER_",
        extra="ignore",
        case_sensitive=False,
    )

    @field_validator("api_base_url")
    @classmethod
    def _ensure_base_url(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("api_base_url must not be empty")
        return value

    @field_validator("api_log_endpoint")
    @classmethod
    def _ensure_endpoint(cls, value: str) -> str:
        value = value.strip()
        return value or "log"

    @field_validator("batch_count", "batch_interval_ms", mode="before")
    @classmethod
    def _zero_means_default(cls, value: Any, info: ValidationInfo) -> Any:
        # 0 (or "0" from the environment) selects the default policy
        if value in (0, "0") and not isinstance(value, bool):
            return cls.model_fields[info.field_name].default
        return value

    @property
    def batch_interval_seconds(self) -> float:
        return self.batch_interval_ms / 1000.0

    def record_defaults(self) -> RecordDefaults:
        return RecordDefaults(
            service=self.service,
            application=self.application,
            environment=self.environment,
            version=self.version,
            host=self.host,
        )

    @classmethod
    def from_options(
        cls, options: Mapping[str, Any] | None = None, **overrides: Any
    ) -> LogserverSettings:
        """Build settings from camelCase or snake_case option names.

        ``{"apiBaseUrl": ..., "batchInterval": 1000}`` and
        ``api_base_url=..., batch_interval_ms=1000`` are equivalent. Options
        set to ``None`` are ignored so defaults apply.
        """
        merged: dict[str, Any] = {}
        for source in (options or {}, overrides):
            for key, value in source.items():
                if value is None:
                    continue
                name = to_snake(key)
                merged[_OPTION_RENAMES.get(name, name)] = value
        return cls(**merged)


__all__ = ["LogserverSettings"]
