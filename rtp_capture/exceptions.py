"""Custom exceptions raised by the capture package."""
from __future__ import annotations

from typing import Optional


class CaptureError(RuntimeError):
    """Base error for the capture package."""


class ProvisioningError(CaptureError):
    """Raised when the media router rejects a transport or consumer request."""


class MediaRouterError(ProvisioningError):
    """Raised when the media router control API cannot be reached or answers badly."""


class DescriptorWriteError(CaptureError):
    """Raised when the session description artifact cannot be written."""


class LaunchError(CaptureError):
    """Raised when the FFmpeg process cannot be spawned."""


class AbnormalExitError(CaptureError):
    """Raised when FFmpeg exits with a non-zero status."""

    def __init__(self, returncode: Optional[int], diagnostics: str = "") -> None:
        super().__init__(f"FFmpeg exited with {returncode}")
        self.returncode = returncode
        self.diagnostics = diagnostics


class DuplicateSessionError(CaptureError):
    """Raised when a session is already registered under the requested key."""

    def __init__(self, key: str) -> None:
        super().__init__(f"Capture session already active: {key}")
        self.key = key


class SessionNotFoundError(CaptureError):
    """Raised when no live session is registered under the requested key."""

    def __init__(self, key: str) -> None:
        super().__init__(f"No active capture session: {key}")
        self.key = key


__all__ = [
    "AbnormalExitError",
    "CaptureError",
    "DescriptorWriteError",
    "DuplicateSessionError",
    "LaunchError",
    "MediaRouterError",
    "ProvisioningError",
    "SessionNotFoundError",
]
