from __future__ import annotations

from pathlib import Path

from rtp_capture import CaptureGoal, CaptureSettings, FFmpegCommandBuilder, MediaKind


def _builder(tmp_path: Path) -> FFmpegCommandBuilder:
    return FFmpegCommandBuilder(CaptureSettings(output_dir=tmp_path / "out", scratch_dir=tmp_path / "tmp"))


def test_archive_audio_copies_into_opus(tmp_path: Path) -> None:
    command = _builder(tmp_path).build_command(
        descriptor_path="/tmp/P1.sdp",
        destination="/rec/R1_Pe1_audio_1.opus",
        kinds=[MediaKind.AUDIO],
        goal=CaptureGoal.ARCHIVE,
    )

    assert command == [
        "ffmpeg",
        "-loglevel", "info",
        "-protocol_whitelist", "file,rtp,udp",
        "-fflags", "+genpts",
        "-i", "/tmp/P1.sdp",
        "-reset_timestamps", "1",
        "-flush_packets", "1",
        "-c:a", "copy",
        "-vn",
        "-f", "opus",
        "-flush_packets", "1",
        "/rec/R1_Pe1_audio_1.opus",
    ]


def test_archive_video_copies_into_matroska(tmp_path: Path) -> None:
    command = _builder(tmp_path).build_command(
        descriptor_path="/tmp/V1.sdp",
        destination="/rec/out.mkv",
        kinds=[MediaKind.VIDEO],
        goal=CaptureGoal.ARCHIVE,
    )

    tail = command[command.index("/tmp/V1.sdp") + 1:]
    assert tail == [
        "-reset_timestamps", "1",
        "-flush_packets", "1",
        "-c:v", "copy",
        "-an",
        "-f", "matroska",
        "-cluster_size_limit", "2M",
        "-cluster_time_limit", "5000",
        "/rec/out.mkv",
    ]


def test_archive_combined_keeps_both_streams(tmp_path: Path) -> None:
    command = _builder(tmp_path).build_command(
        descriptor_path="/tmp/A1_V1.sdp",
        destination="/rec/out.mkv",
        kinds=[MediaKind.AUDIO, MediaKind.VIDEO],
        goal=CaptureGoal.ARCHIVE,
    )

    assert "-an" not in command
    assert "-vn" not in command
    assert command[command.index("-c:v") + 1] == "copy"
    assert command[command.index("-c:a") + 1] == "copy"
    assert command[command.index("-f") + 1] == "matroska"


def test_stream_reencodes_to_flv(tmp_path: Path) -> None:
    command = _builder(tmp_path).build_command(
        descriptor_path="/tmp/stream.sdp",
        destination="rtmp://localhost/live/R1_Pe1_1",
        kinds=[MediaKind.AUDIO, MediaKind.VIDEO],
        goal=CaptureGoal.STREAM,
    )

    assert command.index("-re") < command.index("-i")
    assert "-fflags" not in command
    expected_pairs = {
        "-c:v": "libx264",
        "-preset": "veryfast",
        "-b:v": "3000k",
        "-maxrate": "3000k",
        "-bufsize": "6000k",
        "-pix_fmt": "yuv420p",
        "-g": "60",
        "-profile:v": "main",
        "-c:a": "aac",
        "-ar": "44100",
        "-ac": "1",
        "-b:a": "128k",
        "-f": "flv",
    }
    for flag, value in expected_pairs.items():
        assert command[command.index(flag) + 1] == value
    assert command[-1] == "rtmp://localhost/live/R1_Pe1_1"


def test_restream_command_reads_two_descriptors(tmp_path: Path) -> None:
    builder = _builder(tmp_path)
    command = builder.build_restream_command(
        video_descriptor="/data/video.sdp",
        audio_descriptor="/data/audio.sdp",
        destination="rtmp://localhost/live/stream",
    )

    inputs = [command[index + 1] for index, arg in enumerate(command) if arg == "-i"]
    assert inputs == ["/data/video.sdp", "/data/audio.sdp"]
    assert command.count("-re") == 2
    assert command[-3:] == ["-f", "flv", "rtmp://localhost/live/stream"]
    assert builder.dry_run(command).startswith("ffmpeg -loglevel info")


def test_output_extension(tmp_path: Path) -> None:
    builder = _builder(tmp_path)

    assert builder.output_extension([MediaKind.AUDIO]) == "opus"
    assert builder.output_extension([MediaKind.VIDEO]) == "mkv"
    assert builder.output_extension([MediaKind.AUDIO, MediaKind.VIDEO]) == "mkv"
