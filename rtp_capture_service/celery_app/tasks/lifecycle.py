"""Celery tasks that stop capture sessions."""
from __future__ import annotations

from typing import Any, Mapping

from celery.utils.log import get_task_logger
from flask import current_app

from rtp_capture import CaptureGoal

from .. import celery
from ...engine import CaptureSession, session_key
from ...services import parse_track_selection
from ._utils import manager, run_capture_call, status_payload

LOGGER = get_task_logger(__name__)


def _stopped_payload(app, session: CaptureSession) -> dict[str, Any]:
    """Describe a finished session; FFmpeg output is attached only on failure."""

    abnormal = session.exit_code not in (None, 0)
    return {
        "key": session.key,
        "exit_code": session.exit_code,
        "session": session.to_dict(include_diagnostics=abnormal),
        "capture_status": status_payload(app),
    }


@celery.task(bind=True, name="capture.stop_recording")
def stop_recording_task(self, request_payload: Mapping[str, Any]) -> Mapping[str, Any]:
    app = current_app._get_current_object()

    def _stop() -> Mapping[str, Any]:
        selection = parse_track_selection(request_payload).require_single()
        LOGGER.info("[task:%s] Stop requested for producer %s", self.request.id, selection.producer_id)
        session = manager(app).stop(session_key((selection.producer_id,)))
        payload = _stopped_payload(app, session)
        payload["output_path"] = str(session.output_path) if session.output_path else None
        return payload

    return run_capture_call(LOGGER, self.request.id, "stop_recording", _stop)


@celery.task(bind=True, name="capture.stop_combined")
def stop_combined_task(self, request_payload: Mapping[str, Any]) -> Mapping[str, Any]:
    app = current_app._get_current_object()

    def _stop() -> Mapping[str, Any]:
        selection = parse_track_selection(request_payload).require_pair()
        session = manager(app).stop(
            session_key((selection.audio_producer_id, selection.video_producer_id))
        )
        payload = _stopped_payload(app, session)
        payload["output_path"] = str(session.output_path) if session.output_path else None
        return payload

    return run_capture_call(LOGGER, self.request.id, "stop_combined", _stop)


@celery.task(bind=True, name="capture.stop_stream")
def stop_stream_task(self, request_payload: Mapping[str, Any]) -> Mapping[str, Any]:
    app = current_app._get_current_object()

    def _stop() -> Mapping[str, Any]:
        selection = parse_track_selection(request_payload).require_pair()
        session = manager(app).stop(
            session_key(
                (selection.audio_producer_id, selection.video_producer_id), CaptureGoal.STREAM
            )
        )
        payload = _stopped_payload(app, session)
        payload["stream_url"] = session.stream_target
        return payload

    return run_capture_call(LOGGER, self.request.id, "stop_stream", _stop)


__all__ = ["stop_combined_task", "stop_recording_task", "stop_stream_task"]
