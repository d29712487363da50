"""Runtime manager that owns every live capture session of the service."""
from __future__ import annotations

import logging
import threading
import time
from pathlib import Path
from typing import Callable, List, Optional

from rtp_capture import (
    CaptureError,
    CaptureGoal,
    CaptureMode,
    CaptureSettings,
    DuplicateSessionError,
    EndpointProvisioner,
    FFmpegCommandBuilder,
    RouterResolver,
    SessionNotFoundError,
    build_session_description,
    check_recording_files,
    write_session_description,
)

from .registry import SessionRegistry
from .session import CaptureRequest, CaptureSession, SessionState, session_key
from .status import CaptureStatusBroadcaster
from .status_snapshot import CaptureStatus
from .stop_strategy import StopStrategy
from .supervisor import ProcessSupervisor, TranscoderProcess
from ..utils import sanitize_component

LOGGER = logging.getLogger(__name__)

Clock = Callable[[], float]


class CaptureSessionManager:
    """Coordinate provisioning, FFmpeg supervision and teardown per session."""

    def __init__(
        self,
        settings: CaptureSettings,
        routers: RouterResolver,
        *,
        registry: Optional[SessionRegistry[CaptureSession]] = None,
        supervisor: Optional[ProcessSupervisor] = None,
        stop_strategy: Optional[StopStrategy] = None,
        status_broadcaster: Optional[CaptureStatusBroadcaster] = None,
        clock: Clock = time.time,
    ) -> None:
        self.settings = settings
        self._routers = routers
        self._registry: SessionRegistry[CaptureSession] = registry or SessionRegistry()
        self._provisioner = EndpointProvisioner(settings)
        self._commands = FFmpegCommandBuilder(settings)
        self._supervisor = supervisor or ProcessSupervisor(
            diagnostics_max_lines=settings.diagnostics_max_lines
        )
        self._stopper = stop_strategy or StopStrategy()
        self._status_broadcaster = status_broadcaster
        self._clock = clock
        self._restreams: List[TranscoderProcess] = []
        self._restreams_lock = threading.Lock()

    @property
    def registry(self) -> SessionRegistry[CaptureSession]:
        return self._registry

    # ------------------------------------------------------------------
    # Start flows
    # ------------------------------------------------------------------
    def start_recording(self, producer_id: str, room: str, peer: str) -> str:
        """Archive one producer to ``<room>_<peer>_<kind>_<ts>.<ext>``."""

        session = self.start(CaptureRequest.recording(room, peer, producer_id))
        return session.identifier or ""

    def start_combined_recording(
        self,
        audio_producer_id: str,
        video_producer_id: str,
        room: str,
        peer: str,
    ) -> str:
        request = CaptureRequest.combined(room, peer, audio_producer_id, video_producer_id)
        session = self.start(request)
        return session.identifier or ""

    def start_streaming(
        self,
        audio_producer_id: str,
        video_producer_id: str,
        room: str,
        peer: str,
    ) -> str:
        """Re-stream an audio/video pair; returns the stream key."""

        request = CaptureRequest.combined(
            room,
            peer,
            audio_producer_id,
            video_producer_id,
            goal=CaptureGoal.STREAM,
        )
        session = self.start(request)
        return session.identifier or ""

    def start(self, request: CaptureRequest) -> CaptureSession:
        """Provision, describe, launch and register one capture session.

        Any failure before registration releases everything allocated by the
        attempt and propagates to the caller.
        """

        key = request.session_key
        with self._registry.locked(key):
            if self._registry.contains(key):
                LOGGER.info("Capture session %s already running; start rejected", key)
                raise DuplicateSessionError(key)

            session = CaptureSession(request, timestamp=int(self._clock() * 1000))
            router = self._routers(request.room)
            session.endpoints = self._provisioner.provision(router, request.tracks)
            try:
                self._describe(session)
                self._assign_destination(session)
                command = self._commands.build_command(
                    descriptor_path=session.descriptor_path,
                    destination=session.destination,
                    kinds=[endpoint.kind for endpoint in session.endpoints],
                    goal=session.goal,
                )
                LOGGER.info("Launching FFmpeg for %s: %s", key, self._commands.dry_run(command))
                handle = self._supervisor.launch(
                    command,
                    label=key,
                    cleanup_callbacks=(session.discard_descriptor,),
                )
                session.attach_process(handle)
                session.transition(SessionState.RUNNING)
                self._registry.insert(key, session)
            except Exception:
                LOGGER.warning("Capture session %s failed to start; releasing resources", key)
                self._abort(session)
                raise

        LOGGER.info(
            "Capture session %s running (identifier=%s destination=%s)",
            key,
            session.identifier,
            session.destination,
        )
        handle.add_exit_listener(lambda _handle: self._on_process_exit(session))
        self._broadcast_status()
        return session

    # ------------------------------------------------------------------
    # Stop flows
    # ------------------------------------------------------------------
    def stop_recording(self, producer_id: str) -> Optional[Path]:
        return self.stop(producer_id).output_path

    def stop_combined_recording(self, audio_producer_id: str, video_producer_id: str) -> Optional[Path]:
        return self.stop(session_key((audio_producer_id, video_producer_id))).output_path

    def stop_streaming(self, audio_producer_id: str, video_producer_id: str) -> Optional[str]:
        key = session_key((audio_producer_id, video_producer_id), CaptureGoal.STREAM)
        return self.stop(key).stream_target

    def stop(self, key: str) -> CaptureSession:
        """Interrupt FFmpeg, await its exit, then release the session's resources.

        Raises :class:`SessionNotFoundError` for unknown or finished keys.
        """

        with self._registry.locked(key):
            session = self._registry.lookup(key)
            session.transition(SessionState.STOPPING)
            self._broadcast_status()
            handle = session.process
            if handle is not None:
                result = self._stopper.shutdown(handle)
                if result.escalation:
                    LOGGER.warning("Capture session %s required %s to stop", key, result.escalation)
            self._finalize(session)

        if session.exit_code not in (None, 0):
            LOGGER.warning(
                "Capture session %s ended abnormally (code=%s signal=%s)",
                key,
                session.exit_code,
                session.exit_signal,
            )
        self._broadcast_status()
        return session

    def stop_all(self) -> List[CaptureSession]:
        """Stop every live session and re-stream; used on service shutdown."""

        stopped: List[CaptureSession] = []
        for key in self._registry.keys():
            try:
                stopped.append(self.stop(key))
            except SessionNotFoundError:
                LOGGER.debug("Capture session %s finished before shutdown reached it", key)
            except Exception:
                LOGGER.exception("Failed to stop capture session %s during shutdown", key)
        for handle in self.restreams:
            try:
                self._stopper.shutdown(handle)
            except Exception:
                LOGGER.exception("Failed to stop %s during shutdown", handle.label)
        return stopped

    # ------------------------------------------------------------------
    # Re-stream from stored descriptors
    # ------------------------------------------------------------------
    def restream(self, directory: str | Path, *, stream_name: str = "stream") -> TranscoderProcess:
        """Launch FFmpeg on ``video.sdp`` and ``audio.sdp`` found in ``directory``."""

        files = check_recording_files(directory)
        if not files.is_ready:
            raise CaptureError(f"Audio and video descriptors are required in {files.directory}")
        destination = self.settings.stream_target(stream_name)
        command = self._commands.build_restream_command(
            video_descriptor=files.video_path,
            audio_descriptor=files.audio_path,
            destination=destination,
        )
        LOGGER.info("Re-streaming %s to %s: %s", files.directory, destination, self._commands.dry_run(command))
        handle = self._supervisor.launch(command, label=f"restream:{stream_name}")
        with self._restreams_lock:
            self._restreams.append(handle)
        handle.add_exit_listener(self._forget_restream)
        return handle

    @property
    def restreams(self) -> List[TranscoderProcess]:
        """Re-stream processes that have not exited yet."""

        with self._restreams_lock:
            return list(self._restreams)

    def _forget_restream(self, handle: TranscoderProcess) -> None:
        with self._restreams_lock:
            if handle in self._restreams:
                self._restreams.remove(handle)

    # ------------------------------------------------------------------
    # Status
    # ------------------------------------------------------------------
    def get(self, key: str) -> CaptureSession:
        return self._registry.lookup(key)

    def status(self) -> CaptureStatus:
        """Return an immutable snapshot of every live session."""

        sessions = sorted(self._registry.values(), key=lambda item: item.started_at)
        return CaptureStatus(sessions=tuple(session.to_dict() for session in sessions))

    def broadcast_status(self) -> None:
        """Force an immediate status broadcast if configured."""

        self._broadcast_status()

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------
    def _describe(self, session: CaptureSession) -> None:
        description = build_session_description([endpoint.binding() for endpoint in session.endpoints])
        token = f"{sanitize_component(session.key, fallback='session')}_{session.timestamp}"
        session.descriptor_path = write_session_description(
            description,
            self.settings.scratch_dir,
            token,
        )

    def _assign_destination(self, session: CaptureSession) -> None:
        request = session.request
        prefix = "_".join(
            sanitize_component(part, fallback="unknown") for part in (request.room, request.peer)
        )
        if session.goal is CaptureGoal.STREAM:
            stream_key = f"{prefix}_{session.timestamp}"
            session.identifier = stream_key
            session.stream_target = self.settings.stream_target(stream_key)
            return

        kinds = [endpoint.kind for endpoint in session.endpoints]
        if session.mode is CaptureMode.SINGLE:
            label = kinds[0].value
        else:
            label = "combined"
        extension = self._commands.output_extension(kinds)
        session.identifier = f"{prefix}_{label}_{session.timestamp}.{extension}"
        self.settings.output_dir.mkdir(parents=True, exist_ok=True)
        session.output_path = self.settings.output_dir / session.identifier

    def _abort(self, session: CaptureSession) -> None:
        handle = session.process
        if handle is not None and handle.running:
            self._stopper.shutdown(handle)
        session.release_endpoints()
        session.discard_descriptor()
        session.transition(SessionState.TERMINATED)

    def _finalize(self, session: CaptureSession) -> None:
        """Release endpoints and drop the registry entry once FFmpeg is gone."""

        session.release_endpoints()
        session.discard_descriptor()
        session.transition(SessionState.TERMINATED)
        self._registry.remove(session.key)
        LOGGER.info(
            "Capture session %s terminated (code=%s)",
            session.key,
            session.exit_code,
        )

    def _on_process_exit(self, session: CaptureSession) -> None:
        if session.state is not SessionState.RUNNING:
            return
        with self._registry.locked(session.key):
            # A stop that held the lock has already finalized the session.
            if session.state is not SessionState.RUNNING:
                return
            LOGGER.warning(
                "FFmpeg for capture session %s exited on its own (code=%s)",
                session.key,
                session.exit_code,
            )
            self._finalize(session)
        self._broadcast_status()

    def _broadcast_status(self) -> None:
        broadcaster = self._status_broadcaster
        if broadcaster is None or not broadcaster.available:
            return
        try:
            broadcaster.publish(self.status())
        except Exception:
            LOGGER.debug("Failed to broadcast capture status", exc_info=True)


__all__ = ["CaptureSessionManager"]
