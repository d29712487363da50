"""Celery tasks that start capture sessions."""
from __future__ import annotations

from http import HTTPStatus
from typing import Any, Mapping

from celery.utils.log import get_task_logger
from flask import current_app

from rtp_capture import CaptureGoal

from .. import celery
from ...engine import session_key
from ...services import parse_track_selection
from ._utils import manager, run_capture_call, status_payload

LOGGER = get_task_logger(__name__)


@celery.task(bind=True, name="capture.start_recording")
def start_recording_task(self, request_payload: Mapping[str, Any]) -> Mapping[str, Any]:
    """Archive a single producer to a file."""

    app = current_app._get_current_object()

    def _start() -> Mapping[str, Any]:
        selection = parse_track_selection(request_payload).require_single().require_context()
        LOGGER.info("[task:%s] Starting recording for producer %s", self.request.id, selection.producer_id)
        identifier = manager(app).start_recording(selection.producer_id, selection.room, selection.peer)
        return {"key": selection.producer_id, "file_name": identifier, "capture_status": status_payload(app)}

    return run_capture_call(LOGGER, self.request.id, "start_recording", _start, success=HTTPStatus.CREATED)


@celery.task(bind=True, name="capture.start_combined")
def start_combined_task(self, request_payload: Mapping[str, Any]) -> Mapping[str, Any]:
    """Archive an audio/video pair into one Matroska file."""

    app = current_app._get_current_object()

    def _start() -> Mapping[str, Any]:
        selection = parse_track_selection(request_payload).require_pair().require_context()
        LOGGER.info(
            "[task:%s] Starting combined recording for %s/%s",
            self.request.id,
            selection.audio_producer_id,
            selection.video_producer_id,
        )
        identifier = manager(app).start_combined_recording(
            selection.audio_producer_id,
            selection.video_producer_id,
            selection.room,
            selection.peer,
        )
        return {
            "key": session_key((selection.audio_producer_id, selection.video_producer_id)),
            "file_name": identifier,
            "capture_status": status_payload(app),
        }

    return run_capture_call(LOGGER, self.request.id, "start_combined", _start, success=HTTPStatus.CREATED)


@celery.task(bind=True, name="capture.start_stream")
def start_stream_task(self, request_payload: Mapping[str, Any]) -> Mapping[str, Any]:
    """Re-encode an audio/video pair to the live streaming endpoint."""

    app = current_app._get_current_object()

    def _start() -> Mapping[str, Any]:
        selection = parse_track_selection(request_payload).require_pair().require_context()
        capture = manager(app)
        stream_key = capture.start_streaming(
            selection.audio_producer_id,
            selection.video_producer_id,
            selection.room,
            selection.peer,
        )
        LOGGER.info("[task:%s] Streaming %s", self.request.id, stream_key)
        return {
            "key": session_key(
                (selection.audio_producer_id, selection.video_producer_id), CaptureGoal.STREAM
            ),
            "stream_key": stream_key,
            "stream_url": capture.settings.stream_target(stream_key),
            "capture_status": status_payload(app),
        }

    return run_capture_call(LOGGER, self.request.id, "start_stream", _start, success=HTTPStatus.CREATED)


__all__ = ["start_combined_task", "start_recording_task", "start_stream_task"]
