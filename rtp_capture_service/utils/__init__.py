"""Utility helpers shared across the capture service."""
from __future__ import annotations

from .coerce import (
    coerce_float,
    coerce_int,
    coerce_port,
    to_bool,
    to_optional_float,
    to_optional_str,
)
from .strings import sanitize_component

__all__ = [
    "to_bool",
    "to_optional_float",
    "to_optional_str",
    "coerce_float",
    "coerce_int",
    "coerce_port",
    "sanitize_component",
]
