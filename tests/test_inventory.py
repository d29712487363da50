from __future__ import annotations

from pathlib import Path

import pytest

from rtp_capture import check_recording_files


def test_reports_ready_when_both_files_exist(tmp_path: Path) -> None:
    (tmp_path / "Audio.sdp").write_text("v=0\n", encoding="utf-8")
    (tmp_path / "video.sdp").write_text("v=0\n", encoding="utf-8")
    (tmp_path / "notes.txt").write_text("", encoding="utf-8")

    files = check_recording_files(tmp_path)

    assert files.is_ready
    assert files.audio_path == tmp_path / "Audio.sdp"
    assert files.video_path == tmp_path / "video.sdp"
    assert files.to_dict()["details"]["audio_found"] is True


def test_reports_missing_video(tmp_path: Path) -> None:
    (tmp_path / "audio.sdp").write_text("v=0\n", encoding="utf-8")

    files = check_recording_files(tmp_path)

    assert not files.is_ready
    assert files.video is None
    assert files.to_dict()["files"] == {"audio": "audio.sdp", "video": None}


def test_missing_directory_raises(tmp_path: Path) -> None:
    with pytest.raises(FileNotFoundError):
        check_recording_files(tmp_path / "absent")
