from __future__ import annotations

from pathlib import Path

import pytest

from rtp_capture_service.engine import ProcessSupervisor, StopStrategy


def test_graceful_interrupt_needs_no_escalation(fake_ffmpeg: Path, wait_for) -> None:
    handle = ProcessSupervisor().launch([str(fake_ffmpeg)], label="P1")
    assert wait_for(lambda: "ready" in handle.diagnostics)

    result = StopStrategy(graceful_timeout=5).shutdown(handle)

    assert result.clean
    assert result.escalation is None
    assert not handle.running


def test_ignored_interrupt_escalates_to_sigterm(fake_ffmpeg: Path, monkeypatch: pytest.MonkeyPatch, wait_for) -> None:
    monkeypatch.setenv("FAKE_FFMPEG_MODE", "stubborn")
    handle = ProcessSupervisor().launch([str(fake_ffmpeg)], label="P1")
    assert wait_for(lambda: "ready" in handle.diagnostics)

    result = StopStrategy(graceful_timeout=0.3, terminate_timeout=5).shutdown(handle)

    assert result.escalation == "SIGTERM"
    assert result.exit_signal == "SIGTERM"
    assert not result.clean


def test_already_exited_process_is_left_alone(fake_ffmpeg: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("FAKE_FFMPEG_MODE", "crash")
    handle = ProcessSupervisor().launch([str(fake_ffmpeg)], label="P1")
    handle.wait(5)

    result = StopStrategy().shutdown(handle)

    assert result.returncode == 1
    assert result.escalation is None
