"""Bootstrap helpers for the capture Flask application."""
from __future__ import annotations

import os
from typing import Any, Mapping, Optional

from flask import Flask

from ..config import build_default_config
from ..logging_config import configure_logging
from ..utils import coerce_int, to_bool
from .redis import ensure_connection

SINGLE_PROCESS_POOLS = ("solo", "threads")
_POOL_MODULES = {
    "celery.concurrency.solo": "solo",
    "celery.concurrency.thread": "threads",
}


def init_logging() -> None:
    """Configure logging for the capture service."""

    configure_logging("rtp-capture")


def load_configuration(app: Flask, overrides: Optional[Mapping[str, Any]] = None) -> None:
    """Populate the default configuration values on the Flask app."""

    app.config.from_mapping(build_default_config())
    if overrides:
        app.config.update(overrides)


def ensure_single_worker(app: Flask) -> None:
    """Validate that the service is running with a single worker process.

    Sessions live in process memory, so a second worker would never see the
    sessions the first one started.
    """

    raw_worker_count = (
        os.getenv("GUNICORN_WORKERS")
        or os.getenv("WEB_CONCURRENCY")
        or app.config.get("CAPTURE_WORKER_PROCESSES")
    )
    worker_count = max(1, coerce_int(raw_worker_count, 1))
    if worker_count != 1:
        raise RuntimeError(
            "Capture microservice requires a single worker process. "
            "Set GUNICORN_WORKERS=1 (or WEB_CONCURRENCY=1) before launching. "
            f"Detected {worker_count}."
        )
    ensure_single_process_pool(app.config.get("CELERY_WORKER_POOL") or "threads")


def pool_name(pool: object) -> str:
    """Return the alias for a Celery pool given as a name or a pool class."""

    if isinstance(pool, str):
        return pool.strip().lower()
    module = getattr(pool, "__module__", "")
    return _POOL_MODULES.get(module, module)


def ensure_single_process_pool(pool: object) -> None:
    """Refuse Celery pools that fork, since each child would get its own registry."""

    name = pool_name(pool)
    if name not in SINGLE_PROCESS_POOLS:
        raise RuntimeError(
            f"Celery pool {name!r} would split capture sessions across processes; "
            "use 'threads' or 'solo'."
        )


def ensure_broker_connection(app: Flask) -> None:
    """Verify that the Celery broker is reachable before serving traffic."""

    if to_bool(app.config.get("CAPTURE_TASKS_EAGER")):
        app.logger.info("Celery tasks run eagerly; skipping broker check")
        return
    ensure_connection(app.config.get("CELERY_BROKER_URL"), label="Celery broker")


__all__ = [
    "ensure_broker_connection",
    "SINGLE_PROCESS_POOLS",
    "ensure_single_process_pool",
    "ensure_single_worker",
    "pool_name",
    "init_logging",
    "load_configuration",
]
