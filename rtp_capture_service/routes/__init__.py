"""HTTP blueprints for the capture service."""
from __future__ import annotations

from .capture import api_bp

__all__ = ["api_bp"]
