"""Engine layer for the capture runtime."""
from __future__ import annotations

from .manager import CaptureSessionManager
from .registry import SessionRegistry
from .session import CaptureRequest, CaptureSession, SessionState, session_key
from .status import CaptureStatusBroadcaster
from .status_snapshot import CaptureStatus
from .stop_strategy import StopResult, StopStrategy
from .supervisor import ProcessSupervisor, TranscoderProcess

__all__ = [
    "CaptureSessionManager",
    "CaptureRequest",
    "CaptureSession",
    "SessionState",
    "session_key",
    "SessionRegistry",
    "CaptureStatus",
    "CaptureStatusBroadcaster",
    "ProcessSupervisor",
    "TranscoderProcess",
    "StopStrategy",
    "StopResult",
]
