"""Service layer shared by routes and Celery tasks."""
from __future__ import annotations

from .capture_runtime import CaptureRuntime, TrackSelection, get_runtime, parse_track_selection
from .settings_builder import build_capture_settings, build_stop_strategy

__all__ = [
    "CaptureRuntime",
    "TrackSelection",
    "build_capture_settings",
    "build_stop_strategy",
    "get_runtime",
    "parse_track_selection",
]
