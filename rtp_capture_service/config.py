"""Configuration helpers for the capture microservice."""
from __future__ import annotations

import os
from pathlib import Path
from typing import Any, Dict, Optional

from dotenv import find_dotenv, load_dotenv

_dotenv_path = find_dotenv(usecwd=True)
if _dotenv_path:
    load_dotenv(_dotenv_path, override=False)

PROJECT_ROOT = Path(__file__).resolve().parents[1]


def _coerce_int(value: Optional[str], fallback: int) -> int:
    if value is None:
        return fallback
    try:
        return int(value)
    except (TypeError, ValueError):
        return fallback


def _coerce_float(value: Optional[str], fallback: float) -> float:
    if value is None:
        return fallback
    try:
        return float(value)
    except (TypeError, ValueError):
        return fallback


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}


DEFAULT_OUTPUT_DIR = os.getenv("CAPTURE_OUTPUT_DIR", "./recordings")
DEFAULT_SCRATCH_DIR = os.getenv("CAPTURE_SCRATCH_DIR", "./temp")
DEFAULT_FFMPEG_BINARY = os.getenv("CAPTURE_FFMPEG_BINARY", "ffmpeg")
DEFAULT_FFMPEG_LOGLEVEL = os.getenv("CAPTURE_FFMPEG_LOGLEVEL", "info")

DEFAULT_LISTEN_IP = os.getenv("CAPTURE_LISTEN_IP", "127.0.0.1")
DEFAULT_ANNOUNCED_IP = os.getenv("CAPTURE_ANNOUNCED_IP") or None
DEFAULT_REMOTE_IP = os.getenv("CAPTURE_REMOTE_IP", "127.0.0.1")
DEFAULT_AUDIO_PORT = _coerce_int(os.getenv("CAPTURE_AUDIO_PORT"), 20000)
DEFAULT_VIDEO_PORT = _coerce_int(os.getenv("CAPTURE_VIDEO_PORT"), 20002)
DEFAULT_STREAM_BASE_URL = os.getenv("CAPTURE_STREAM_BASE_URL", "rtmp://localhost/live")

DEFAULT_MEDIA_ROUTER_URL = os.getenv("CAPTURE_MEDIA_ROUTER_URL", "http://127.0.0.1:3000/api")
DEFAULT_MEDIA_ROUTER_TIMEOUT = _coerce_float(os.getenv("CAPTURE_MEDIA_ROUTER_TIMEOUT"), 10.0)

# Raw value: "none" or an empty string selects an unbounded graceful wait.
DEFAULT_STOP_GRACEFUL_TIMEOUT: Optional[str] = os.getenv("CAPTURE_STOP_GRACEFUL_TIMEOUT", "10")
DEFAULT_STOP_TERMINATE_TIMEOUT = _coerce_float(os.getenv("CAPTURE_STOP_TERMINATE_TIMEOUT"), 5.0)
DEFAULT_STOP_KILL_TIMEOUT = _coerce_float(os.getenv("CAPTURE_STOP_KILL_TIMEOUT"), 2.0)
DEFAULT_DIAGNOSTICS_MAX_LINES = _coerce_int(os.getenv("CAPTURE_DIAGNOSTICS_MAX_LINES"), 500)

DEFAULT_CORS_ORIGIN = os.getenv("CAPTURE_CORS_ORIGIN", "*")

DEFAULT_REDIS_URL = (
    os.getenv("CAPTURE_REDIS_URL")
    or os.getenv("REDIS_URL")
    or os.getenv("CELERY_BROKER_URL")
    or "redis://127.0.0.1:6379/0"
)
DEFAULT_CELERY_RESULT_BACKEND = os.getenv("CELERY_RESULT_BACKEND") or DEFAULT_REDIS_URL
DEFAULT_CELERY_QUEUE = os.getenv("CELERY_TASK_DEFAULT_QUEUE", "capture")
DEFAULT_CELERY_TASK_TIMEOUT = _coerce_int(os.getenv("CELERY_TASK_TIMEOUT_SECONDS"), 60)
DEFAULT_TASKS_EAGER = _env_bool("CAPTURE_TASKS_EAGER", False)
# Sessions live in worker memory, so the worker must stay a single process.
DEFAULT_CELERY_WORKER_POOL = os.getenv("CELERY_WORKER_POOL", "threads")
DEFAULT_CELERY_WORKER_CONCURRENCY = _coerce_int(os.getenv("CELERY_WORKER_CONCURRENCY"), 4)

DEFAULT_STATUS_REDIS_URL = os.getenv("CAPTURE_STATUS_REDIS_URL", DEFAULT_REDIS_URL)
DEFAULT_STATUS_PREFIX = os.getenv("CAPTURE_STATUS_PREFIX", "rtp_capture")
DEFAULT_STATUS_NAMESPACE = os.getenv("CAPTURE_STATUS_NAMESPACE", "capture")
DEFAULT_STATUS_KEY = os.getenv("CAPTURE_STATUS_KEY", "status")
DEFAULT_STATUS_CHANNEL = os.getenv("CAPTURE_STATUS_CHANNEL", "rtp_capture:capture:status")
DEFAULT_STATUS_TTL_SECONDS = _coerce_int(os.getenv("CAPTURE_STATUS_TTL_SECONDS"), 30)

DEFAULT_WORKER_PROCESSES = _coerce_int(os.getenv("CAPTURE_WORKER_PROCESSES"), 1)


def build_default_config() -> Dict[str, Any]:
    """Return the base configuration mapping for the microservice."""

    cfg: Dict[str, Any] = {
        "CAPTURE_OUTPUT_DIR": DEFAULT_OUTPUT_DIR,
        "CAPTURE_SCRATCH_DIR": DEFAULT_SCRATCH_DIR,
        "CAPTURE_FFMPEG_BINARY": DEFAULT_FFMPEG_BINARY,
        "CAPTURE_FFMPEG_LOGLEVEL": DEFAULT_FFMPEG_LOGLEVEL,
        "CAPTURE_LISTEN_IP": DEFAULT_LISTEN_IP,
        "CAPTURE_ANNOUNCED_IP": DEFAULT_ANNOUNCED_IP,
        "CAPTURE_REMOTE_IP": DEFAULT_REMOTE_IP,
        "CAPTURE_AUDIO_PORT": DEFAULT_AUDIO_PORT,
        "CAPTURE_VIDEO_PORT": DEFAULT_VIDEO_PORT,
        "CAPTURE_STREAM_BASE_URL": DEFAULT_STREAM_BASE_URL,
        "CAPTURE_MEDIA_ROUTER_URL": DEFAULT_MEDIA_ROUTER_URL,
        "CAPTURE_MEDIA_ROUTER_TIMEOUT": DEFAULT_MEDIA_ROUTER_TIMEOUT,
        "CAPTURE_MEDIA_ROUTER_TOKEN": os.getenv("CAPTURE_MEDIA_ROUTER_TOKEN"),
        "CAPTURE_STOP_GRACEFUL_TIMEOUT": DEFAULT_STOP_GRACEFUL_TIMEOUT,
        "CAPTURE_STOP_TERMINATE_TIMEOUT": DEFAULT_STOP_TERMINATE_TIMEOUT,
        "CAPTURE_STOP_KILL_TIMEOUT": DEFAULT_STOP_KILL_TIMEOUT,
        "CAPTURE_DIAGNOSTICS_MAX_LINES": DEFAULT_DIAGNOSTICS_MAX_LINES,
        "CAPTURE_CORS_ORIGIN": DEFAULT_CORS_ORIGIN,
        "CAPTURE_TASKS_EAGER": DEFAULT_TASKS_EAGER,
        "CAPTURE_WORKER_PROCESSES": DEFAULT_WORKER_PROCESSES,
        "CELERY_BROKER_URL": DEFAULT_REDIS_URL,
        "CELERY_RESULT_BACKEND": DEFAULT_CELERY_RESULT_BACKEND,
        "CELERY_TASK_DEFAULT_QUEUE": DEFAULT_CELERY_QUEUE,
        "CELERY_TASK_TIMEOUT_SECONDS": DEFAULT_CELERY_TASK_TIMEOUT,
        "CELERY_WORKER_POOL": DEFAULT_CELERY_WORKER_POOL,
        "CELERY_WORKER_CONCURRENCY": DEFAULT_CELERY_WORKER_CONCURRENCY,
        "CAPTURE_STATUS_REDIS_URL": DEFAULT_STATUS_REDIS_URL,
        "CAPTURE_STATUS_PREFIX": DEFAULT_STATUS_PREFIX,
        "CAPTURE_STATUS_NAMESPACE": DEFAULT_STATUS_NAMESPACE,
        "CAPTURE_STATUS_KEY": DEFAULT_STATUS_KEY,
        "CAPTURE_STATUS_CHANNEL": DEFAULT_STATUS_CHANNEL,
        "CAPTURE_STATUS_TTL_SECONDS": DEFAULT_STATUS_TTL_SECONDS,
    }
    return cfg


__all__ = ["PROJECT_ROOT", "build_default_config"]
