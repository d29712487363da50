"""Helpers shared by the HTTP and Celery surfaces of the capture service."""
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Mapping, Optional

from flask import Flask

from ..engine import CaptureSessionManager
from ..logging_config import current_log_file
from ..utils import to_bool


@dataclass(frozen=True)
class TrackSelection:
    """Producer ids plus the room/peer naming context of a request."""

    room: Optional[str]
    peer: Optional[str]
    producer_id: Optional[str] = None
    audio_producer_id: Optional[str] = None
    video_producer_id: Optional[str] = None

    def require_single(self) -> "TrackSelection":
        if not self.producer_id:
            raise ValueError("producer_id is required")
        return self

    def require_pair(self) -> "TrackSelection":
        if not self.audio_producer_id or not self.video_producer_id:
            raise ValueError("audio_producer_id and video_producer_id are required")
        return self

    def require_context(self) -> "TrackSelection":
        if not self.room or not self.peer:
            raise ValueError("room and peer are required")
        return self

    def to_dict(self) -> dict[str, Any]:
        return {
            key: value
            for key, value in {
                "room": self.room,
                "peer": self.peer,
                "producer_id": self.producer_id,
                "audio_producer_id": self.audio_producer_id,
                "video_producer_id": self.video_producer_id,
            }.items()
            if value is not None
        }


_ALIASES = {
    "room": ("room", "room_name", "roomName"),
    "peer": ("peer", "peer_id", "peerId"),
    "producer_id": ("producer_id", "producerId"),
    "audio_producer_id": ("audio_producer_id", "audioProducerId"),
    "video_producer_id": ("video_producer_id", "videoProducerId"),
}


def parse_track_selection(payload: Optional[Mapping[str, Any]]) -> TrackSelection:
    """Read a request body, accepting both snake_case and camelCase field names."""

    data = payload if isinstance(payload, Mapping) else {}
    values: dict[str, Optional[str]] = {}
    for field_name, aliases in _ALIASES.items():
        values[field_name] = None
        for alias in aliases:
            raw = data.get(alias)
            if raw is None:
                continue
            text = str(raw).strip()
            if text:
                values[field_name] = text
                break
    return TrackSelection(**values)


class CaptureRuntime:
    """Domain-facing helpers bound to one Flask application."""

    def __init__(self, app: Flask) -> None:
        self._app = app

    @property
    def app(self) -> Flask:
        return self._app

    @property
    def manager(self) -> CaptureSessionManager:
        manager = self._app.extensions.get("capture_manager")
        if manager is None:
            raise RuntimeError("Capture manager not initialised on Flask app.")
        return manager

    def status_payload(self, *, local: bool = False) -> Mapping[str, Any]:
        """Render capture status for API responses.

        Sessions live in the Celery worker, so unless tasks run eagerly in this
        process (or ``local`` is requested by code running inside the worker)
        the snapshot the worker published to Redis is served instead.
        """

        payload: Optional[dict[str, Any]] = None
        if not local and not to_bool(self._app.config.get("CAPTURE_TASKS_EAGER")):
            payload = self._shared_snapshot()
        if payload is None:
            payload = self.manager.status().to_payload(
                origin="rtp_capture",
                updated_at=datetime.now(timezone.utc).isoformat(),
            )
            payload["source"] = "local"
        else:
            payload["source"] = "shared"
        log_path = current_log_file()
        payload["log_file"] = str(log_path) if log_path else None
        return payload

    def _shared_snapshot(self) -> Optional[dict[str, Any]]:
        broadcaster = self._app.extensions.get("capture_status_broadcaster")
        if broadcaster is None:
            return None
        return broadcaster.read()


def get_runtime(app: Flask) -> CaptureRuntime:
    runtime = app.extensions.get("capture_runtime")
    if isinstance(runtime, CaptureRuntime):
        return runtime
    runtime = CaptureRuntime(app)
    app.extensions["capture_runtime"] = runtime
    return runtime


__all__ = [
    "CaptureRuntime",
    "TrackSelection",
    "get_runtime",
    "parse_track_selection",
]
