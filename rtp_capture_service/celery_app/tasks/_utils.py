"""Shared helpers for Celery task modules."""
from __future__ import annotations

import logging
from http import HTTPStatus
from typing import Any, Callable, Mapping

from rtp_capture import (
    CaptureError,
    DescriptorWriteError,
    DuplicateSessionError,
    LaunchError,
    ProvisioningError,
    SessionNotFoundError,
)

from ...engine import CaptureSessionManager
from ...services import get_runtime

_ERROR_STATUSES: tuple[tuple[type[BaseException], HTTPStatus], ...] = (
    (DuplicateSessionError, HTTPStatus.CONFLICT),
    (SessionNotFoundError, HTTPStatus.NOT_FOUND),
    (ProvisioningError, HTTPStatus.BAD_GATEWAY),
    (DescriptorWriteError, HTTPStatus.INTERNAL_SERVER_ERROR),
    (LaunchError, HTTPStatus.INTERNAL_SERVER_ERROR),
    (CaptureError, HTTPStatus.INTERNAL_SERVER_ERROR),
    (ValueError, HTTPStatus.BAD_REQUEST),
)


def manager(app) -> CaptureSessionManager:
    return get_runtime(app).manager


def status_payload(app) -> Mapping[str, Any]:
    """Return the latest status payload rendered for API responses."""

    return get_runtime(app).status_payload(local=True)


def error_status(exc: BaseException) -> HTTPStatus:
    for exc_type, status in _ERROR_STATUSES:
        if isinstance(exc, exc_type):
            return status
    return HTTPStatus.INTERNAL_SERVER_ERROR


def run_capture_call(
    logger: logging.Logger,
    task_id: str,
    action: str,
    call: Callable[[], Mapping[str, Any]],
    *,
    success: HTTPStatus = HTTPStatus.OK,
) -> dict[str, Any]:
    """Run ``call`` and wrap its outcome as ``{"status": ..., "payload": ...}``."""

    try:
        payload = dict(call())
    except (CaptureError, ValueError) as exc:
        status = error_status(exc)
        logger.warning("[task:%s] %s failed (%s): %s", task_id, action, status.value, exc)
        body: dict[str, Any] = {"error": str(exc), "error_type": type(exc).__name__}
        key = getattr(exc, "key", None)
        if key:
            body["key"] = key
        return {"status": status, "payload": body}
    logger.info("[task:%s] %s succeeded", task_id, action)
    return {"status": success, "payload": payload}


__all__ = ["error_status", "manager", "run_capture_call", "status_payload"]
