"""Build capture settings and stop policy from the Flask configuration."""
from __future__ import annotations

from pathlib import Path
from typing import Any, Mapping

from rtp_capture import CaptureSettings

from ..engine import StopStrategy
from ..utils import coerce_float, coerce_int, coerce_port, to_optional_float, to_optional_str

__all__ = ["build_capture_settings", "build_stop_strategy"]


def build_capture_settings(config: Mapping[str, Any]) -> CaptureSettings:
    """Return :class:`CaptureSettings` with configuration defaults applied."""

    return CaptureSettings(
        output_dir=Path(str(config.get("CAPTURE_OUTPUT_DIR") or "./recordings")),
        scratch_dir=Path(str(config.get("CAPTURE_SCRATCH_DIR") or "./temp")),
        ffmpeg_binary=to_optional_str(config.get("CAPTURE_FFMPEG_BINARY")) or "ffmpeg",
        loglevel=to_optional_str(config.get("CAPTURE_FFMPEG_LOGLEVEL")),
        listen_ip=to_optional_str(config.get("CAPTURE_LISTEN_IP")) or "127.0.0.1",
        announced_ip=to_optional_str(config.get("CAPTURE_ANNOUNCED_IP")),
        remote_ip=to_optional_str(config.get("CAPTURE_REMOTE_IP")) or "127.0.0.1",
        audio_port=coerce_port(config.get("CAPTURE_AUDIO_PORT"), 20000),
        video_port=coerce_port(config.get("CAPTURE_VIDEO_PORT"), 20002),
        stream_base_url=to_optional_str(config.get("CAPTURE_STREAM_BASE_URL")) or "rtmp://localhost/live",
        diagnostics_max_lines=coerce_int(config.get("CAPTURE_DIAGNOSTICS_MAX_LINES"), 500),
    )


def build_stop_strategy(config: Mapping[str, Any]) -> StopStrategy:
    """Return the stop policy; an empty graceful timeout waits without escalating."""

    return StopStrategy(
        graceful_timeout=to_optional_float(config.get("CAPTURE_STOP_GRACEFUL_TIMEOUT", 10.0)),
        terminate_timeout=coerce_float(config.get("CAPTURE_STOP_TERMINATE_TIMEOUT"), 5.0),
        kill_timeout=coerce_float(config.get("CAPTURE_STOP_KILL_TIMEOUT"), 2.0),
    )
