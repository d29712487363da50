"""Launch FFmpeg and watch it from background threads."""
from __future__ import annotations

import logging
import shlex
import signal
import subprocess
import threading
from collections import deque
from typing import Callable, Optional, Sequence

from rtp_capture import LaunchError

LOGGER = logging.getLogger(__name__)

ExitListener = Callable[["TranscoderProcess"], None]


class TranscoderProcess:
    """Wrap a running FFmpeg process, its diagnostics, and its exit notification."""

    def __init__(
        self,
        process: subprocess.Popen[str],
        *,
        label: str,
        diagnostics_max_lines: int = 500,
        cleanup_callbacks: Sequence[Callable[[], None]] = (),
    ) -> None:
        self.process = process
        self.label = label
        self._diagnostics: deque[str] = deque(maxlen=max(1, int(diagnostics_max_lines)))
        self._diagnostics_lock = threading.Lock()
        self._cleanup_callbacks = tuple(cleanup_callbacks)
        self._listeners: list[ExitListener] = []
        self._listeners_lock = threading.Lock()
        self._exited = threading.Event()
        self._returncode: Optional[int] = None
        self._reader: Optional[threading.Thread] = None
        self._waiter: Optional[threading.Thread] = None

    # ------------------------------------------------------------------
    # State accessors
    # ------------------------------------------------------------------
    @property
    def pid(self) -> int:
        return self.process.pid

    @property
    def running(self) -> bool:
        return not self._exited.is_set()

    @property
    def returncode(self) -> Optional[int]:
        return self._returncode

    @property
    def exit_signal(self) -> Optional[str]:
        """Name of the signal that terminated the process, if any."""

        code = self._returncode
        if code is None or code >= 0:
            return None
        try:
            return signal.Signals(-code).name
        except ValueError:
            return str(-code)

    @property
    def diagnostics(self) -> str:
        with self._diagnostics_lock:
            return "\n".join(self._diagnostics)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------
    def add_exit_listener(self, listener: ExitListener) -> None:
        """Register ``listener``; it runs immediately if the process already exited."""

        with self._listeners_lock:
            if not self._exited.is_set():
                self._listeners.append(listener)
                return
        self._notify(listener)

    def wait(self, timeout: Optional[float] = None) -> Optional[int]:
        """Block until exit handling finished; ``None`` if ``timeout`` elapsed first."""

        if not self._exited.wait(timeout):
            return None
        return self._returncode

    def send_signal(self, sig: int) -> None:
        if self._exited.is_set():
            return
        self.process.send_signal(sig)

    def terminate(self) -> None:
        if self._exited.is_set():
            return
        self.process.terminate()

    def kill(self) -> None:
        if self._exited.is_set():
            return
        self.process.kill()

    def start_monitoring(self) -> None:
        self._reader = threading.Thread(
            target=self._read_diagnostics,
            name=f"ffmpeg-stderr-{self.pid}",
            daemon=True,
        )
        self._waiter = threading.Thread(
            target=self._wait_for_exit,
            name=f"ffmpeg-waiter-{self.pid}",
            daemon=True,
        )
        self._reader.start()
        self._waiter.start()

    # ------------------------------------------------------------------
    # Background workers
    # ------------------------------------------------------------------
    def _read_diagnostics(self) -> None:
        stream = self.process.stderr
        if stream is None:
            return
        try:
            for raw_line in stream:
                line = raw_line.rstrip("\r\n")
                if not line:
                    continue
                with self._diagnostics_lock:
                    self._diagnostics.append(line)
                LOGGER.debug("FFmpeg[%s]: %s", self.label, line)
        except (OSError, ValueError):
            LOGGER.debug("Diagnostic stream for %s closed unexpectedly", self.label, exc_info=True)

    def _wait_for_exit(self) -> None:
        returncode = self.process.wait()
        if self._reader is not None:
            self._reader.join(timeout=5)
        self._returncode = returncode
        if returncode == 0:
            LOGGER.info("FFmpeg for %s exited cleanly", self.label)
        else:
            LOGGER.error(
                "FFmpeg for %s exited with code=%s signal=%s; diagnostics:\n%s",
                self.label,
                returncode,
                self.exit_signal,
                self.diagnostics,
            )
        for callback in self._cleanup_callbacks:
            try:
                callback()
            except Exception:
                LOGGER.exception("Cleanup callback failed for %s", self.label)

        with self._listeners_lock:
            self._exited.set()
            listeners = list(self._listeners)
            self._listeners.clear()
        for listener in listeners:
            self._notify(listener)

    def _notify(self, listener: ExitListener) -> None:
        try:
            listener(self)
        except Exception:
            LOGGER.exception("Exit listener failed for %s", self.label)


class ProcessSupervisor:
    """Spawn FFmpeg processes and attach diagnostics capture to them."""

    def __init__(self, *, diagnostics_max_lines: int = 500) -> None:
        self._diagnostics_max_lines = max(1, int(diagnostics_max_lines))

    def launch(
        self,
        command: Sequence[str],
        *,
        label: str,
        cleanup_callbacks: Sequence[Callable[[], None]] = (),
    ) -> TranscoderProcess:
        """Start ``command``; raises :class:`LaunchError` if it cannot be spawned."""

        LOGGER.info("Starting FFmpeg for %s: %s", label, shlex.join(command))
        try:
            process = subprocess.Popen(
                list(command),
                stdin=subprocess.DEVNULL,
                stdout=subprocess.DEVNULL,
                stderr=subprocess.PIPE,
                text=True,
                errors="replace",
                bufsize=1,
            )
        except (OSError, ValueError) as exc:
            raise LaunchError(f"Unable to start FFmpeg for {label}: {exc}") from exc

        handle = TranscoderProcess(
            process,
            label=label,
            diagnostics_max_lines=self._diagnostics_max_lines,
            cleanup_callbacks=cleanup_callbacks,
        )
        handle.start_monitoring()
        LOGGER.info("Started FFmpeg for %s (pid=%s)", label, process.pid)
        return handle


__all__ = ["ExitListener", "ProcessSupervisor", "TranscoderProcess"]
