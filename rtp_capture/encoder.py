"""FFmpeg command construction for RTP capture sessions."""
from __future__ import annotations

import shlex
from pathlib import Path
from typing import Collection, List, Sequence

from .config import CaptureGoal, CaptureSettings
from .tracks import MediaKind


class FFmpegCommandBuilder:
    """Build FFmpeg argument vectors that read a session description."""

    def __init__(self, settings: CaptureSettings) -> None:
        self.settings = settings

    def build_command(
        self,
        *,
        descriptor_path: str | Path,
        destination: str | Path,
        kinds: Collection[MediaKind],
        goal: CaptureGoal,
    ) -> List[str]:
        """Construct the FFmpeg CLI for one descriptor and one destination."""

        if not kinds:
            raise ValueError("At least one media kind is required")
        cmd: List[str] = self._global_args()
        cmd.extend(self._input_args(descriptor_path, goal))
        if goal is CaptureGoal.ARCHIVE:
            cmd.extend(self._archive_args(kinds))
        else:
            cmd.extend(self._stream_args(kinds))
        cmd.append(str(destination))
        return cmd

    def build_restream_command(
        self,
        *,
        video_descriptor: str | Path,
        audio_descriptor: str | Path,
        destination: str,
    ) -> List[str]:
        """Construct a re-stream from separate video and audio descriptors."""

        cmd: List[str] = self._global_args()
        cmd.extend(self._input_args(video_descriptor, CaptureGoal.STREAM))
        cmd.extend(self._input_args(audio_descriptor, CaptureGoal.STREAM))
        opts = self.settings.stream
        cmd.extend(["-c:v", opts.video_codec, "-c:a", opts.audio_codec])
        if opts.sample_rate is not None:
            cmd.extend(["-ar", str(opts.sample_rate)])
        if opts.channels is not None:
            cmd.extend(["-ac", str(opts.channels)])
        cmd.extend(["-f", opts.output_format, destination])
        return cmd

    def output_extension(self, kinds: Collection[MediaKind]) -> str:
        """Return the file extension produced for an archive of ``kinds``."""

        archive = self.settings.archive
        if set(kinds) == {MediaKind.AUDIO}:
            return archive.audio_extension
        return archive.video_extension

    def dry_run(self, command: Sequence[str]) -> str:
        """Return a shell-escaped command string without executing it."""

        return shlex.join(command)

    def _global_args(self) -> List[str]:
        cmd = [self.settings.ffmpeg_binary]
        if self.settings.loglevel:
            cmd.extend(["-loglevel", self.settings.loglevel])
        return cmd

    def _input_args(self, descriptor_path: str | Path, goal: CaptureGoal) -> List[str]:
        args: List[str] = []
        whitelist = ",".join(self.settings.protocol_whitelist)
        if whitelist:
            args.extend(["-protocol_whitelist", whitelist])
        if goal is CaptureGoal.ARCHIVE:
            if self.settings.archive.fflags:
                args.extend(["-fflags", self.settings.archive.fflags])
        elif self.settings.stream.realtime_input:
            args.append("-re")
        args.extend(["-i", str(descriptor_path)])
        if goal is CaptureGoal.ARCHIVE:
            archive = self.settings.archive
            if archive.reset_timestamps:
                args.extend(["-reset_timestamps", "1"])
            if archive.flush_packets:
                args.extend(["-flush_packets", "1"])
        return args

    def _archive_args(self, kinds: Collection[MediaKind]) -> List[str]:
        opts = self.settings.archive
        has_audio = MediaKind.AUDIO in kinds
        has_video = MediaKind.VIDEO in kinds
        args: List[str] = []
        if has_video:
            args.extend(["-c:v", "copy"])
        if has_audio:
            args.extend(["-c:a", "copy"])
        if not has_audio:
            args.append("-an")
        if not has_video:
            args.append("-vn")

        if has_video:
            args.extend(["-f", opts.video_format])
            if opts.cluster_size_limit:
                args.extend(["-cluster_size_limit", opts.cluster_size_limit])
            if opts.cluster_time_limit is not None:
                args.extend(["-cluster_time_limit", str(opts.cluster_time_limit)])
        else:
            args.extend(["-f", opts.audio_format])
            if opts.flush_packets:
                args.extend(["-flush_packets", "1"])
        args.extend(str(arg) for arg in opts.extra_args)
        return args

    def _stream_args(self, kinds: Collection[MediaKind]) -> List[str]:
        opts = self.settings.stream
        args: List[str] = []
        if MediaKind.VIDEO in kinds:
            args.extend(["-c:v", opts.video_codec])
            if opts.preset:
                args.extend(["-preset", opts.preset])
            if opts.video_bitrate:
                args.extend(["-b:v", opts.video_bitrate])
            if opts.maxrate:
                args.extend(["-maxrate", opts.maxrate])
            if opts.bufsize:
                args.extend(["-bufsize", opts.bufsize])
            if opts.pixel_format:
                args.extend(["-pix_fmt", opts.pixel_format])
            if opts.gop_size is not None:
                args.extend(["-g", str(opts.gop_size)])
            if opts.profile:
                args.extend(["-profile:v", opts.profile])
        else:
            args.append("-vn")
        if MediaKind.AUDIO in kinds:
            args.extend(["-c:a", opts.audio_codec])
            if opts.sample_rate is not None:
                args.extend(["-ar", str(opts.sample_rate)])
            if opts.channels is not None:
                args.extend(["-ac", str(opts.channels)])
            if opts.audio_bitrate:
                args.extend(["-b:a", opts.audio_bitrate])
        else:
            args.append("-an")
        args.extend(str(arg) for arg in opts.extra_args)
        args.extend(["-f", opts.output_format])
        return args


__all__ = ["FFmpegCommandBuilder"]
