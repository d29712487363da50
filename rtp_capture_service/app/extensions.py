"""Extension wiring for the capture Flask application."""
from __future__ import annotations

import atexit
import logging
from typing import Optional

from flask import Flask, Response, request

from rtp_capture import MediaServerClient

from ..celery_app import init_celery
from ..engine import CaptureSessionManager, CaptureStatusBroadcaster
from ..routes import api_bp
from ..services import build_capture_settings, build_stop_strategy
from ..utils import coerce_float, coerce_int, to_bool, to_optional_str

LOGGER = logging.getLogger(__name__)


def init_status_broadcaster(app: Flask) -> Optional[CaptureStatusBroadcaster]:
    redis_url = to_optional_str(app.config.get("CAPTURE_STATUS_REDIS_URL"))
    if not redis_url:
        LOGGER.info("CAPTURE_STATUS_REDIS_URL not set; status broadcasting disabled")
        return None
    status_broadcaster = CaptureStatusBroadcaster(
        redis_url=redis_url,
        prefix=app.config.get("CAPTURE_STATUS_PREFIX", "rtp_capture"),
        namespace=app.config.get("CAPTURE_STATUS_NAMESPACE", "capture"),
        key=app.config.get("CAPTURE_STATUS_KEY", "status"),
        channel=app.config.get("CAPTURE_STATUS_CHANNEL"),
        ttl_seconds=coerce_int(app.config.get("CAPTURE_STATUS_TTL_SECONDS"), 30),
    )
    app.extensions["capture_status_broadcaster"] = status_broadcaster
    if not status_broadcaster.available:
        raise RuntimeError(
            status_broadcaster.last_error or "Unable to establish Redis connection for status broadcasting."
        )
    return status_broadcaster


def init_capture_manager(
    app: Flask,
    *,
    status_broadcaster: Optional[CaptureStatusBroadcaster],
) -> CaptureSessionManager:
    settings = build_capture_settings(app.config)
    settings.ensure_directories()
    client = MediaServerClient(
        app.config["CAPTURE_MEDIA_ROUTER_URL"],
        timeout=coerce_float(app.config.get("CAPTURE_MEDIA_ROUTER_TIMEOUT"), 10.0),
        token=app.config.get("CAPTURE_MEDIA_ROUTER_TOKEN"),
    )
    manager = CaptureSessionManager(
        settings,
        client.router,
        stop_strategy=build_stop_strategy(app.config),
        status_broadcaster=status_broadcaster,
    )
    app.extensions["media_server_client"] = client
    app.extensions["capture_manager"] = manager
    if to_bool(app.config.get("CAPTURE_TASKS_EAGER")):
        # Otherwise the Celery worker owns the sessions and publishes on startup.
        manager.broadcast_status()
    return manager


def init_celery_app(app: Flask) -> None:
    celery_app = init_celery(app)
    # Ensure Celery tasks are registered
    from ..celery_app import tasks as _tasks  # noqa: F401

    app.extensions["celery_app"] = celery_app


def register_blueprints(app: Flask) -> None:
    app.register_blueprint(api_bp)


def register_shutdown(app: Flask) -> None:
    """Stop live sessions and release clients when the process exits."""

    def _shutdown() -> None:
        manager = app.extensions.get("capture_manager")
        if manager is not None:
            stopped = manager.stop_all()
            if stopped:
                LOGGER.info("Stopped %d capture session(s) on shutdown", len(stopped))
        client = app.extensions.get("media_server_client")
        if client is not None:
            client.close()
        broadcaster = app.extensions.get("capture_status_broadcaster")
        if broadcaster is not None:
            broadcaster.close()

    atexit.register(_shutdown)
    app.extensions["capture_shutdown"] = _shutdown


def configure_cors(app: Flask, cors_origin: str | None) -> None:
    allowed_default = cors_origin or "*"

    @app.after_request
    def add_cors_headers(response: Response) -> Response:
        origin = request.headers.get("Origin")
        allowed_origin = allowed_default
        if allowed_default == "*" and origin:
            allowed_origin = origin
        response.headers["Access-Control-Allow-Origin"] = allowed_origin
        response.headers.setdefault("Access-Control-Allow-Headers", "Content-Type")
        response.headers.setdefault("Access-Control-Allow-Methods", "GET,POST,OPTIONS")
        if allowed_origin != "*":
            response.headers.setdefault("Access-Control-Allow-Credentials", "true")
        if origin:
            response.headers.add("Vary", "Origin")
        return response


__all__ = [
    "configure_cors",
    "init_capture_manager",
    "init_celery_app",
    "init_status_broadcaster",
    "register_blueprints",
    "register_shutdown",
]
