"""
Record normalization.

Turns framework-native log entries into canonical records: flat mappings of
field name to primitive value, with falsy fields dropped and nested values
stored as their JSON text. The fixed part of the schema is validated and
default-filled by ``RecordSchema``; any other field passes through.

Two variants exist:

- ``normalize_push_entry`` for push-style producers whose entries carry a
  level name and a ``message`` field.
- ``normalize_stream_entry`` for pull-style producers whose entries carry a
  numeric severity, a ``msg`` field and an epoch-millisecond ``time``.
"""

from __future__ import annotations

import json
from datetime import datetime, timezone
from typing import Any, Dict, Literal, Mapping, Union

import orjson
from pydantic import BaseModel, ConfigDict, Field, model_validator

from .levels import resolve_level

Primitive = Union[str, int, float, bool]
CanonicalRecord = Dict[str, Primitive]

EpochUnit = Literal["s", "ms"]

_PRIMITIVES = (str, int, float, bool)
# orjson only encodes signed 64-bit integers
_INT64_MIN = -(2**63)
_INT64_MAX = 2**63 - 1
_DEFAULTED_FIELDS = ("version", "service", "application", "environment", "host")
_TEXT_FIELDS = ("timestamp", "logLevel", "message") + _DEFAULTED_FIELDS


class RecordDefaults(BaseModel):
    """Static enrichment applied when a native entry lacks the field."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    service: str | None = None
    application: str | None = None
    environment: str | None = None
    version: str | None = None
    host: str | None = None


class RecordSchema(BaseModel):
    """Typed builder for a canonical record."""

    model_config = ConfigDict(frozen=True, extra="allow")

    timestamp: str
    log_level: str | None = Field(default=None, alias="logLevel")
    message: str | None = None
    service: str | None = None
    application: str | None = None
    environment: str | None = None
    version: str | None = None
    host: str | None = None

    @model_validator(mode="before")
    @classmethod
    def _compact(cls, data: Any) -> Any:
        if not isinstance(data, Mapping):
            return data
        compacted: dict[str, Any] = compact_fields(data)
        for key in _TEXT_FIELDS:
            value = compacted.get(key)
            if value is not None and not isinstance(value, str):
                compacted[key] = str(value)
        return compacted

    def to_record(self) -> CanonicalRecord:
        return self.model_dump(by_alias=True, exclude_none=True)


def _is_falsy(value: Any) -> bool:
    try:
        return not value
    except Exception:
        # Objects with ambiguous truth values are kept and stringified
        return False


def stringify(value: Any) -> str:
    """Serialize a non-primitive value to compact JSON text."""
    try:
        return orjson.dumps(
            value, default=str, option=orjson.OPT_NON_STR_KEYS
        ).decode("utf-8")
    except TypeError:
        pass
    # Integers beyond 64 bits and keys orjson refuses
    try:
        return json.dumps(
            _with_str_keys(value),
            separators=(",", ":"),
            default=str,
            ensure_ascii=False,
        )
    except (TypeError, ValueError, RecursionError):
        return str(value)


def _with_str_keys(value: Any) -> Any:
    if isinstance(value, Mapping):
        return {str(k): _with_str_keys(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_with_str_keys(v) for v in value]
    return value


def _is_wide_int(value: Any) -> bool:
    return (
        isinstance(value, int)
        and not isinstance(value, bool)
        and not _INT64_MIN <= value <= _INT64_MAX
    )


def compact_fields(fields: Mapping[str, Any]) -> dict[str, Primitive]:
    """Drop falsy values and stringify everything that is not a primitive.

    Integers outside the signed 64-bit range are kept as their decimal
    string so the record always serializes.
    """
    compacted: dict[str, Primitive] = {}
    for key, value in fields.items():
        if _is_falsy(value):
            continue
        if _is_wide_int(value):
            compacted[str(key)] = str(value)
        elif isinstance(value, _PRIMITIVES):
            compacted[str(key)] = value
        else:
            compacted[str(key)] = stringify(value)
    return compacted


def _format_utc(moment: datetime) -> str:
    return (
        moment.astimezone(timezone.utc)
        .isoformat(timespec="milliseconds")
        .replace("+00:00", "Z")
    )


def now_iso8601() -> str:
    return _format_utc(datetime.now(timezone.utc))


def to_iso8601(value: Any, *, epoch_unit: EpochUnit = "ms") -> str | None:
    """Normalize a timestamp to ISO-8601 UTC with millisecond precision.

    Accepts datetimes, epoch numbers (``epoch_unit`` selects seconds or
    milliseconds) and ISO-8601 strings. Strings that do not parse are
    returned unchanged; unusable values return ``None``.
    """
    if isinstance(value, datetime):
        return _format_utc(value)
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        seconds = value / 1000.0 if epoch_unit == "ms" else float(value)
        try:
            return _format_utc(datetime.fromtimestamp(seconds, tz=timezone.utc))
        except (OverflowError, OSError, ValueError):
            return None
    if isinstance(value, str):
        text = value.strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        try:
            return _format_utc(datetime.fromisoformat(text))
        except ValueError:
            return value
    return None


def build_record(
    fields: Mapping[str, Any],
    defaults: RecordDefaults,
    *,
    timestamp: str | None,
    level: str | None,
    message: Any,
) -> CanonicalRecord:
    """Assemble a canonical record from already-compacted native fields."""
    data: dict[str, Any] = dict(fields)
    for name in _DEFAULTED_FIELDS:
        if not data.get(name):
            data[name] = getattr(defaults, name)
    data["timestamp"] = timestamp or now_iso8601()
    data["logLevel"] = level or data.get("logLevel")
    data["message"] = message
    return RecordSchema.model_validate(data).to_record()


def normalize_push_entry(
    entry: Mapping[str, Any],
    defaults: RecordDefaults | None = None,
) -> CanonicalRecord:
    """Normalize an entry from a push-style producer.

    ``level`` holds the level name; ``message`` holds the text. A supplied
    ``timestamp`` is normalized (epoch numbers are read as seconds).
    """
    defaults = defaults or RecordDefaults()
    raw_timestamp = entry.get("timestamp")
    fields = compact_fields(entry)
    timestamp = None
    if not _is_falsy(raw_timestamp):
        timestamp = to_iso8601(raw_timestamp, epoch_unit="s")
    return build_record(
        fields,
        defaults,
        timestamp=timestamp,
        level=resolve_level(fields.get("level")),
        message=fields.get("message"),
    )


def normalize_stream_entry(
    entry: Mapping[str, Any],
    defaults: RecordDefaults | None = None,
) -> CanonicalRecord:
    """Normalize an entry from a pull-style producer.

    ``level`` is a numeric severity (names pass through), ``msg`` holds the
    text and ``time`` is epoch milliseconds; it wins over ``timestamp``.
    """
    defaults = defaults or RecordDefaults()
    raw_time = entry.get("time")
    raw_timestamp = entry.get("timestamp")
    fields = compact_fields(entry)
    timestamp = None
    if not _is_falsy(raw_time):
        timestamp = to_iso8601(raw_time, epoch_unit="ms")
    elif not _is_falsy(raw_timestamp):
        timestamp = to_iso8601(raw_timestamp, epoch_unit="ms")
    return build_record(
        fields,
        defaults,
        timestamp=timestamp,
        level=resolve_level(entry.get("level")),
        message=fields.get("msg") or fields.get("message"),
    )


__all__ = [
    "CanonicalRecord",
    "RecordDefaults",
    "RecordSchema",
    "compact_fields",
    "normalize_push_entry",
    "normalize_stream_entry",
    "to_iso8601",
]
