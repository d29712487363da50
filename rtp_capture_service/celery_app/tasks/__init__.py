"""Celery task entrypoints."""
from __future__ import annotations

from .lifecycle import stop_combined_task, stop_recording_task, stop_stream_task
from .recording import start_combined_task, start_recording_task, start_stream_task

__all__ = [
    "start_combined_task",
    "start_recording_task",
    "start_stream_task",
    "stop_combined_task",
    "stop_recording_task",
    "stop_stream_task",
]
