"""Root package for the capture service codebase."""
from __future__ import annotations

from .app import create_app
from .celery_app import celery, init_celery
from .engine import CaptureSessionManager, CaptureStatus, CaptureStatusBroadcaster
from .routes import api_bp

__all__ = [
    "create_app",
    "celery",
    "init_celery",
    "api_bp",
    "CaptureSessionManager",
    "CaptureStatus",
    "CaptureStatusBroadcaster",
]
