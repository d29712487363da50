"""Celery entrypoint that ensures the Flask app is initialised.

Run with ``celery -A rtp_capture_service.celery_app.worker worker``. The pool
defaults to ``threads`` so every task shares this process's session registry.
"""
from __future__ import annotations

from celery.signals import celeryd_init
from flask import Flask

from ..app import create_app
from ..app.bootstrap import ensure_single_process_pool


def _create_bound_app() -> Flask:
    """Instantiate the capture Flask app for the worker process."""

    app = create_app()
    # The worker owns the sessions, so it publishes the initial snapshot.
    app.extensions["capture_manager"].broadcast_status()
    return app


@celeryd_init.connect
def _check_worker_pool(sender=None, conf=None, options=None, **_kwargs) -> None:
    pool = (options or {}).get("pool_cls") or (conf.worker_pool if conf is not None else None)
    if pool is not None:
        ensure_single_process_pool(pool)


flask_app = _create_bound_app()
celery = flask_app.extensions["celery"]


__all__ = ["celery", "flask_app"]
