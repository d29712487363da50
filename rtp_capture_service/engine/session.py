"""Data structures describing capture requests and live sessions."""
from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import Any, Iterable, List, Optional, Tuple

from rtp_capture import (
    AbnormalExitError,
    CaptureGoal,
    CaptureMode,
    Endpoint,
    MediaKind,
    TrackRequest,
    close_endpoints,
)

from .supervisor import TranscoderProcess

LOGGER = logging.getLogger(__name__)


class SessionState(str, Enum):
    PROVISIONING = "provisioning"
    RUNNING = "running"
    STOPPING = "stopping"
    TERMINATED = "terminated"


def session_key(producer_ids: Iterable[str], goal: CaptureGoal = CaptureGoal.ARCHIVE) -> str:
    """Registry key for the given producers; streams live in their own namespace."""

    producers = "_".join(producer_ids)
    if goal is CaptureGoal.STREAM:
        return f"stream_{producers}"
    return producers


@dataclass(frozen=True)
class CaptureRequest:
    """What to capture, for whom, and where it should go."""

    room: str
    peer: str
    tracks: Tuple[TrackRequest, ...]
    goal: CaptureGoal = CaptureGoal.ARCHIVE

    def __post_init__(self) -> None:
        if not self.room or not self.peer:
            raise ValueError("room and peer are required")
        if not 1 <= len(self.tracks) <= 2:
            raise ValueError("A capture session binds one or two tracks")
        if any(not track.producer_id for track in self.tracks):
            raise ValueError("Every track needs a producer id")

    @classmethod
    def recording(cls, room: str, peer: str, producer_id: str) -> "CaptureRequest":
        return cls(room=room, peer=peer, tracks=(TrackRequest(producer_id),))

    @classmethod
    def combined(
        cls,
        room: str,
        peer: str,
        audio_producer_id: str,
        video_producer_id: str,
        *,
        goal: CaptureGoal = CaptureGoal.ARCHIVE,
    ) -> "CaptureRequest":
        return cls(
            room=room,
            peer=peer,
            tracks=(
                TrackRequest(audio_producer_id, MediaKind.AUDIO),
                TrackRequest(video_producer_id, MediaKind.VIDEO),
            ),
            goal=goal,
        )

    @property
    def mode(self) -> CaptureMode:
        return CaptureMode.SINGLE if len(self.tracks) == 1 else CaptureMode.COMBINED

    @property
    def session_key(self) -> str:
        return session_key((track.producer_id for track in self.tracks), self.goal)


class CaptureSession:
    """Bundle of resources owned by one capture, from provisioning to teardown."""

    def __init__(self, request: CaptureRequest, *, timestamp: int) -> None:
        self.request = request
        self.key = request.session_key
        self.timestamp = timestamp
        self.started_at = datetime.now(timezone.utc)
        self.ended_at: Optional[datetime] = None
        self.state = SessionState.PROVISIONING
        self.endpoints: List[Endpoint] = []
        self.identifier: Optional[str] = None
        self.descriptor_path: Optional[Path] = None
        self.output_path: Optional[Path] = None
        self.stream_target: Optional[str] = None
        self._process: Optional[TranscoderProcess] = None
        self._lock = threading.Lock()
        self._descriptor_removed = False

    # ------------------------------------------------------------------
    # State accessors
    # ------------------------------------------------------------------
    @property
    def mode(self) -> CaptureMode:
        return self.request.mode

    @property
    def goal(self) -> CaptureGoal:
        return self.request.goal

    @property
    def process(self) -> Optional[TranscoderProcess]:
        return self._process

    @property
    def destination(self) -> Optional[str]:
        if self.output_path is not None:
            return str(self.output_path)
        return self.stream_target

    @property
    def exit_code(self) -> Optional[int]:
        return self._process.returncode if self._process else None

    @property
    def exit_signal(self) -> Optional[str]:
        return self._process.exit_signal if self._process else None

    @property
    def diagnostics(self) -> str:
        return self._process.diagnostics if self._process else ""

    @property
    def terminated(self) -> bool:
        return self.state is SessionState.TERMINATED

    # ------------------------------------------------------------------
    # Mutators
    # ------------------------------------------------------------------
    def attach_process(self, handle: TranscoderProcess) -> None:
        with self._lock:
            if self._process is not None:
                raise RuntimeError(f"Session {self.key} already owns a transcoder process")
            self._process = handle

    def transition(self, state: SessionState) -> None:
        with self._lock:
            if self.state is SessionState.TERMINATED:
                return
            LOGGER.debug("Session %s: %s -> %s", self.key, self.state.value, state.value)
            self.state = state
            if state is SessionState.TERMINATED:
                self.ended_at = datetime.now(timezone.utc)

    def discard_descriptor(self) -> None:
        """Delete the session description artifact; only the first call acts."""

        with self._lock:
            if self._descriptor_removed or self.descriptor_path is None:
                return
            self._descriptor_removed = True
            path = self.descriptor_path
        try:
            path.unlink(missing_ok=True)
            LOGGER.debug("Removed session description %s", path)
        except OSError:
            LOGGER.exception("Failed to remove session description %s", path)

    def release_endpoints(self) -> None:
        close_endpoints(self.endpoints)

    def raise_for_exit(self) -> None:
        """Raise :class:`AbnormalExitError` if FFmpeg exited non-zero."""

        code = self.exit_code
        if code is not None and code != 0:
            raise AbnormalExitError(code, self.diagnostics)

    def to_dict(self, *, include_diagnostics: bool = False) -> dict[str, Any]:
        process = self._process
        payload: dict[str, Any] = {
            "key": self.key,
            "identifier": self.identifier,
            "room": self.request.room,
            "peer": self.request.peer,
            "mode": self.mode.value,
            "goal": self.goal.value,
            "state": self.state.value,
            "destination": self.destination,
            "descriptor_path": str(self.descriptor_path) if self.descriptor_path else None,
            "pid": process.pid if process else None,
            "exit_code": self.exit_code,
            "exit_signal": self.exit_signal,
            "endpoints": [endpoint.describe() for endpoint in self.endpoints],
            "started_at": self.started_at.isoformat(),
            "ended_at": self.ended_at.isoformat() if self.ended_at else None,
        }
        if include_diagnostics:
            payload["diagnostics"] = self.diagnostics
        return payload


__all__ = ["CaptureRequest", "CaptureSession", "SessionState", "session_key"]
