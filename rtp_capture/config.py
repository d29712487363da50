"""Configuration objects for the RTP capture pipeline."""
from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Optional, Sequence

from .tracks import MediaKind


class CaptureMode(str, Enum):
    """How many tracks a session binds."""

    SINGLE = "single"
    COMBINED = "combined"


class CaptureGoal(str, Enum):
    """Whether FFmpeg archives the tracks or re-streams them."""

    ARCHIVE = "archive"
    STREAM = "stream"


@dataclass(slots=True)
class ArchiveOptions:
    """Muxer settings used when copying RTP payloads into files."""

    fflags: Optional[str] = "+genpts"
    reset_timestamps: bool = True
    flush_packets: bool = True
    audio_format: str = "opus"
    audio_extension: str = "opus"
    video_format: str = "matroska"
    video_extension: str = "mkv"
    cluster_size_limit: Optional[str] = "2M"
    cluster_time_limit: Optional[int] = 5000
    extra_args: Sequence[str] = field(default_factory=tuple)


@dataclass(slots=True)
class StreamEncodingOptions:
    """Re-encode profile used when forwarding to a live streaming endpoint.

    Defaults mirror the profile the media server operators tuned for RTMP
    ingest: x264 veryfast at 3 Mbit/s with a two second GOP at 30 fps and
    mono AAC audio.
    """

    realtime_input: bool = True
    video_codec: str = "libx264"
    preset: Optional[str] = "veryfast"
    video_bitrate: Optional[str] = "3000k"
    maxrate: Optional[str] = "3000k"
    bufsize: Optional[str] = "6000k"
    pixel_format: Optional[str] = "yuv420p"
    gop_size: Optional[int] = 60
    profile: Optional[str] = "main"
    audio_codec: str = "aac"
    sample_rate: Optional[int] = 44100
    channels: Optional[int] = 1
    audio_bitrate: Optional[str] = "128k"
    output_format: str = "flv"
    extra_args: Sequence[str] = field(default_factory=tuple)


@dataclass(slots=True)
class CaptureSettings:
    """High level configuration for capture sessions."""

    output_dir: Path
    scratch_dir: Path
    ffmpeg_binary: str = "ffmpeg"
    loglevel: Optional[str] = "info"
    protocol_whitelist: Sequence[str] = ("file", "rtp", "udp")
    listen_ip: str = "127.0.0.1"
    announced_ip: Optional[str] = None
    remote_ip: str = "127.0.0.1"
    audio_port: int = 20000
    video_port: int = 20002
    stream_base_url: str = "rtmp://localhost/live"
    diagnostics_max_lines: int = 500
    archive: ArchiveOptions = field(default_factory=ArchiveOptions)
    stream: StreamEncodingOptions = field(default_factory=StreamEncodingOptions)

    def __post_init__(self) -> None:
        self.output_dir = Path(self.output_dir).expanduser().resolve()
        self.scratch_dir = Path(self.scratch_dir).expanduser().resolve()
        self.audio_port = int(self.audio_port)
        self.video_port = int(self.video_port)
        if self.audio_port == self.video_port:
            raise ValueError("Audio and video ports must differ")
        self.diagnostics_max_lines = max(1, int(self.diagnostics_max_lines))
        self.stream_base_url = self.stream_base_url.rstrip("/")

    def port_for(self, kind: MediaKind) -> int:
        """Return the pre-agreed remote port for ``kind``."""

        return self.audio_port if kind is MediaKind.AUDIO else self.video_port

    def stream_target(self, stream_key: str) -> str:
        return f"{self.stream_base_url}/{stream_key}"

    def ensure_directories(self) -> None:
        self.output_dir.mkdir(parents=True, exist_ok=True)
        self.scratch_dir.mkdir(parents=True, exist_ok=True)


__all__ = [
    "ArchiveOptions",
    "CaptureGoal",
    "CaptureMode",
    "CaptureSettings",
    "StreamEncodingOptions",
]
