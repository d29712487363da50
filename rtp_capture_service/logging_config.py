"""Logging helpers for the capture service."""
from __future__ import annotations

import logging
import os
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import Iterable, Optional

_LOG_FILE: Optional[Path] = None
_CONFIGURED = False

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# Per-request chatter from the router client and the Redis/Celery plumbing.
_NOISY_LOGGERS = ("urllib3", "kombu", "amqp")


def _resolve_level(raw: Optional[str]) -> int:
    if not raw:
        return logging.INFO
    level = logging.getLevelName(raw.strip().upper())
    return level if isinstance(level, int) else logging.INFO


def _log_directory(log_dir: Optional[Path]) -> Path:
    if log_dir is not None:
        return Path(log_dir)
    env_dir = os.getenv("CAPTURE_SERVICE_LOG_DIR")
    if env_dir:
        return Path(env_dir).expanduser()
    return Path(__file__).resolve().parents[1] / "logs"


def _quiet(names: Iterable[str]) -> None:
    for name in names:
        logging.getLogger(name).setLevel(logging.WARNING)


def configure_logging(prefix: str, *, log_dir: Optional[Path] = None) -> Path:
    """Send root logging to a timestamped file and stdout.

    Only the first call installs handlers; later calls return the same file so
    the HTTP app, the Celery worker and the CLI can all ask for logging safely.
    ``CAPTURE_LOG_LEVEL`` overrides the default ``INFO`` level, which is how
    FFmpeg's stderr lines (logged at DEBUG) are made visible.
    """

    global _CONFIGURED, _LOG_FILE

    if _CONFIGURED and _LOG_FILE is not None:
        return _LOG_FILE

    directory = _log_directory(log_dir)
    directory.mkdir(parents=True, exist_ok=True)
    stamp = datetime.now(timezone.utc).strftime("%Y%m%d-%H%M%S")
    log_file = directory / f"{prefix}-{stamp}.log"

    root = logging.getLogger()
    root.setLevel(_resolve_level(os.getenv("CAPTURE_LOG_LEVEL")))
    for handler in list(root.handlers):
        root.removeHandler(handler)

    formatter = logging.Formatter(fmt=LOG_FORMAT, datefmt=LOG_DATE_FORMAT)
    for handler in (
        logging.FileHandler(log_file, encoding="utf-8"),
        logging.StreamHandler(sys.stdout),
    ):
        handler.setFormatter(formatter)
        root.addHandler(handler)
    _quiet(_NOISY_LOGGERS)

    _CONFIGURED = True
    _LOG_FILE = log_file
    root.info("Capture service logging to %s", log_file)
    return log_file


def current_log_file() -> Optional[Path]:
    return _LOG_FILE


__all__ = ["LOG_DATE_FORMAT", "LOG_FORMAT", "configure_logging", "current_log_file"]
