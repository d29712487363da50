"""Coercion helpers for Flask config values and request bodies."""
from __future__ import annotations

from typing import Any, Optional

_TRUTHY = {"true", "1", "yes", "on"}
_EMPTY = {"", "none", "null"}


def to_bool(value: Any) -> bool:
    """Interpret env-style flags (``"1"``, ``"yes"``, ``True``)."""

    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        return bool(value)
    if isinstance(value, str):
        return value.strip().lower() in _TRUTHY
    return False


def to_optional_float(value: Any) -> Optional[float]:
    """Return ``None`` for blank, ``none`` or unparsable values."""

    if value is None or (isinstance(value, str) and value.strip().lower() in _EMPTY):
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def to_optional_str(value: Any) -> Optional[str]:
    text = str(value).strip() if value is not None else ""
    return text or None


def coerce_int(value: Any, fallback: int) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        return fallback


def coerce_float(value: Any, fallback: float) -> float:
    try:
        return float(value)
    except (TypeError, ValueError):
        return fallback


def coerce_port(value: Any, fallback: int) -> int:
    """Return a UDP port number, falling back when outside 1-65535."""

    port = coerce_int(value, fallback)
    return port if 0 < port < 65536 else fallback


__all__ = [
    "to_bool",
    "to_optional_float",
    "to_optional_str",
    "coerce_int",
    "coerce_float",
    "coerce_port",
]
