"""Log level resolution for canonical records.

Stream producers report numeric severities which are mapped through a fixed
table; push producers already carry level names, which pass through
unchanged. Custom numeric severities can be registered before records that
use them are normalized.

Example:
    from logserver import register_level

    register_level("audit", severity=35)
    resolve_level(35)  # "audit"
    resolve_level("warn")  # "warn"
"""

from __future__ import annotations

import logging
from typing import Final

_DEFAULT_SEVERITIES: Final[dict[int, str]] = {
    10: "trace",
    20: "debug",
    30: "info",
    40: "warn",
    50: "error",
    60: "fatal",
}

# stdlib logging levels expressed with the same vocabulary
_STDLIB_LEVELS: Final[dict[int, str]] = {
    logging.DEBUG: "debug",
    logging.INFO: "info",
    logging.WARNING: "warn",
    logging.ERROR: "error",
    logging.CRITICAL: "fatal",
}

_custom_severities: dict[int, str] = {}


def register_level(name: str, severity: int) -> None:
    """Register a custom numeric severity.

    Args:
        name: Level name as it should appear in ``logLevel``. Lowercased.
        severity: Numeric severity used by the producing framework.

    Raises:
        ValueError: If the name or severity is already registered, or the
            name is empty.
    """
    name_lower = name.strip().lower()
    if not name_lower:
        raise ValueError("Level name must not be empty")
    if severity in _DEFAULT_SEVERITIES or severity in _custom_severities:
        raise ValueError(f"Severity {severity} already exists")
    if name_lower in get_all_levels().values():
        raise ValueError(f"Level '{name_lower}' already exists")
    _custom_severities[severity] = name_lower


def get_all_levels() -> dict[int, str]:
    """Get all registered severities (default + custom)."""
    return {**_DEFAULT_SEVERITIES, **_custom_severities}


def resolve_level(level: object) -> str | None:
    """Resolve a native level to its canonical name.

    Strings pass through unchanged. Integral numbers are looked up in the
    severity table; unknown severities and other types resolve to ``None``
    so the field is omitted from the record.
    """
    if isinstance(level, str):
        return level or None
    if isinstance(level, bool):
        return None
    if isinstance(level, float) and level.is_integer():
        level = int(level)
    if isinstance(level, int):
        return get_all_levels().get(level)
    return None


def stdlib_level_name(levelno: int, levelname: str) -> str:
    """Map a stdlib ``LogRecord`` level to the canonical vocabulary."""
    return _STDLIB_LEVELS.get(levelno, levelname.lower())


def _reset_registry() -> None:
    """Reset custom severities (for testing only)."""
    _custom_severities.clear()
