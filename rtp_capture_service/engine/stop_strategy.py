"""Signal orchestration used to stop capture transcoders."""
from __future__ import annotations

import logging
import signal
from dataclasses import dataclass
from typing import Optional

from .supervisor import TranscoderProcess

LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True)
class StopResult:
    """Outcome of attempting to stop an FFmpeg process."""

    returncode: Optional[int]
    exit_signal: Optional[str]
    escalation: Optional[str] = None

    @property
    def clean(self) -> bool:
        return self.returncode == 0


class StopStrategy:
    """Interrupt FFmpeg so it finalizes its output, escalating if it hangs.

    ``graceful_timeout=None`` waits for the interrupt to be honoured with no
    escalation at all.
    """

    def __init__(
        self,
        *,
        graceful_timeout: Optional[float] = 10.0,
        terminate_timeout: float = 5.0,
        kill_timeout: float = 2.0,
    ) -> None:
        self._graceful_timeout = None if graceful_timeout is None else max(0.0, graceful_timeout)
        self._terminate_timeout = max(0.0, terminate_timeout)
        self._kill_timeout = max(0.0, kill_timeout)

    def shutdown(self, handle: TranscoderProcess) -> StopResult:
        """Stop ``handle`` and wait until its exit handling has completed."""

        if not handle.running:
            return StopResult(returncode=handle.returncode, exit_signal=handle.exit_signal)

        try:
            LOGGER.info("Sending SIGINT to FFmpeg for %s (pid=%s)", handle.label, handle.pid)
            handle.send_signal(signal.SIGINT)
        except OSError as exc:
            LOGGER.warning("Failed to signal FFmpeg for %s: %s", handle.label, exc)

        escalation: Optional[str] = None
        returncode = handle.wait(self._graceful_timeout)
        if returncode is None and handle.running:
            escalation = "SIGTERM"
            LOGGER.warning("FFmpeg for %s still running after SIGINT; sending SIGTERM", handle.label)
            try:
                handle.terminate()
            except OSError as exc:
                LOGGER.warning("Failed to terminate FFmpeg for %s: %s", handle.label, exc)
            returncode = handle.wait(self._terminate_timeout)

        if returncode is None and handle.running:
            escalation = "SIGKILL"
            LOGGER.error("FFmpeg for %s ignored SIGTERM; sending SIGKILL", handle.label)
            try:
                handle.kill()
            except OSError as exc:
                LOGGER.error("Failed to kill FFmpeg for %s: %s", handle.label, exc)
            returncode = handle.wait(self._kill_timeout)
            if returncode is None:
                # Cleanup must not run before exit, so keep waiting on the reaper.
                LOGGER.error("FFmpeg for %s still running after SIGKILL attempt", handle.label)
                returncode = handle.wait()

        LOGGER.info("FFmpeg for %s stopped with %s", handle.label, returncode)
        return StopResult(returncode=returncode, exit_signal=handle.exit_signal, escalation=escalation)


__all__ = ["StopResult", "StopStrategy"]
