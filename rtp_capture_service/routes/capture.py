"""HTTP routes that drive capture sessions."""
from __future__ import annotations

from datetime import datetime, timezone
from http import HTTPStatus
from typing import Any, Mapping

from celery.exceptions import TimeoutError as CeleryTimeoutError
from flask import Blueprint, current_app, jsonify, request

from ..celery_app import celery
from ..celery_app.tasks import (
    start_combined_task,
    start_recording_task,
    start_stream_task,
    stop_combined_task,
    stop_recording_task,
    stop_stream_task,
)
from ..services import get_runtime

api_bp = Blueprint("capture_api", __name__)


def _task_timeout_seconds() -> float:
    """Return a positive timeout for Celery task sync calls."""

    raw_value = current_app.config.get("CELERY_TASK_TIMEOUT_SECONDS")
    try:
        timeout = float(raw_value)
    except (TypeError, ValueError):
        current_app.logger.warning(
            "Invalid CELERY_TASK_TIMEOUT_SECONDS=%r; falling back to 60s",
            raw_value,
        )
        timeout = 60.0
    return max(timeout, 0.1)


def _coerce_status_code(value: object, default: HTTPStatus = HTTPStatus.OK) -> int:
    if isinstance(value, HTTPStatus):
        return value.value
    if isinstance(value, int):
        return value
    try:
        return int(value)  # type: ignore[arg-type]
    except (TypeError, ValueError):
        return default.value


def _normalize_task_result(result: Any) -> tuple[int, Any]:
    if isinstance(result, Mapping):
        status_code = _coerce_status_code(result.get("status"), HTTPStatus.OK)
        payload_section = result.get("payload")
        if isinstance(payload_section, Mapping):
            return status_code, dict(payload_section)
        if payload_section is not None:
            return status_code, payload_section
        trimmed = {key: value for key, value in result.items() if key != "status"}
        return status_code, trimmed
    return HTTPStatus.OK.value, result


def _dispatch(task) -> tuple[Any, int]:
    body = request.get_json(silent=True) or {}
    async_result = task.delay(body)
    try:
        result = async_result.get(timeout=_task_timeout_seconds())
    except CeleryTimeoutError:
        return (
            jsonify({"status": HTTPStatus.ACCEPTED.value, "task_id": async_result.id}),
            HTTPStatus.ACCEPTED,
        )
    status_code, payload = _normalize_task_result(result)
    return jsonify(payload), status_code


@api_bp.route("/health", methods=["GET"])
def health_endpoint():
    now = datetime.now(timezone.utc)
    payload = {
        "status": "ok",
        "service": "rtp_capture",
        "timestamp": now.isoformat(),
        "task_timeout_seconds": _task_timeout_seconds(),
        "queues": {"default": current_app.config.get("CELERY_TASK_DEFAULT_QUEUE")},
    }
    return jsonify(payload), HTTPStatus.OK


@api_bp.route("/status", methods=["GET"])
def status_endpoint():
    payload = get_runtime(current_app).status_payload()
    return jsonify(payload), HTTPStatus.OK


@api_bp.route("/recordings", methods=["POST"])
def start_recording_endpoint():
    return _dispatch(start_recording_task)


@api_bp.route("/recordings/stop", methods=["POST"])
def stop_recording_endpoint():
    return _dispatch(stop_recording_task)


@api_bp.route("/recordings/combined", methods=["POST"])
def start_combined_endpoint():
    return _dispatch(start_combined_task)


@api_bp.route("/recordings/combined/stop", methods=["POST"])
def stop_combined_endpoint():
    return _dispatch(stop_combined_task)


@api_bp.route("/streams", methods=["POST"])
def start_stream_endpoint():
    return _dispatch(start_stream_task)


@api_bp.route("/streams/stop", methods=["POST"])
def stop_stream_endpoint():
    return _dispatch(stop_stream_task)


@api_bp.route("/tasks/<string:task_id>", methods=["GET"])
def task_status_endpoint(task_id: str):
    async_result = celery.AsyncResult(task_id)
    payload: dict[str, Any] = {
        "task_id": task_id,
        "state": async_result.state,
        "ready": async_result.ready(),
        "successful": async_result.successful(),
    }

    if async_result.failed():
        error_message = str(async_result.result)
        payload["result"] = error_message
        payload["error"] = error_message
        payload["status"] = HTTPStatus.INTERNAL_SERVER_ERROR.value
        return jsonify(payload), HTTPStatus.INTERNAL_SERVER_ERROR

    if not async_result.ready():
        payload["result"] = None
        payload["status"] = HTTPStatus.ACCEPTED.value
        return jsonify(payload), HTTPStatus.ACCEPTED

    status_code, result_payload = _normalize_task_result(async_result.result)
    payload["result"] = result_payload
    payload["status"] = status_code
    return jsonify(payload), HTTPStatus.OK


__all__ = ["api_bp"]
