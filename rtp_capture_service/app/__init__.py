"""Capture application factory."""
from __future__ import annotations

from typing import Any, Mapping, Optional

from flask import Flask

from .bootstrap import (
    ensure_broker_connection,
    ensure_single_worker,
    init_logging,
    load_configuration,
)
from .extensions import (
    configure_cors,
    init_capture_manager,
    init_celery_app,
    init_status_broadcaster,
    register_blueprints,
    register_shutdown,
)


def create_app(config_overrides: Optional[Mapping[str, Any]] = None) -> Flask:
    """Create and configure the capture Flask application."""

    init_logging()
    app = Flask(__name__)
    load_configuration(app, config_overrides)

    ensure_broker_connection(app)
    ensure_single_worker(app)

    status_broadcaster = init_status_broadcaster(app)
    init_capture_manager(app, status_broadcaster=status_broadcaster)
    init_celery_app(app)

    register_blueprints(app)
    configure_cors(app, app.config.get("CAPTURE_CORS_ORIGIN", "*"))
    register_shutdown(app)

    return app


__all__ = ["create_app"]
