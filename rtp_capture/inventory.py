"""Inspect a recordings directory for stored audio/video descriptors."""
from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Optional


@dataclass(frozen=True)
class RecordingFiles:
    """Result of scanning a directory for ``audio*`` and ``video*`` entries."""

    directory: Path
    audio: Optional[str]
    video: Optional[str]

    @property
    def is_ready(self) -> bool:
        return bool(self.audio and self.video)

    @property
    def audio_path(self) -> Optional[Path]:
        return self.directory / self.audio if self.audio else None

    @property
    def video_path(self) -> Optional[Path]:
        return self.directory / self.video if self.video else None

    def to_dict(self) -> dict[str, Any]:
        return {
            "is_ready": self.is_ready,
            "files": {"audio": self.audio, "video": self.video},
            "details": {
                "audio_found": self.audio is not None,
                "video_found": self.video is not None,
                "audio_path": str(self.audio_path) if self.audio_path else None,
                "video_path": str(self.video_path) if self.video_path else None,
            },
        }


def check_recording_files(directory: str | Path) -> RecordingFiles:
    """Find the first ``audio*`` and ``video*`` entries (case-insensitive)."""

    root = Path(directory).expanduser()
    if not root.is_dir():
        raise FileNotFoundError(f"Directory {root} does not exist")

    names = sorted(entry.name for entry in root.iterdir() if entry.is_file())
    audio = next((name for name in names if name.lower().startswith("audio")), None)
    video = next((name for name in names if name.lower().startswith("video")), None)
    return RecordingFiles(directory=root, audio=audio, video=video)


__all__ = ["RecordingFiles", "check_recording_files"]
