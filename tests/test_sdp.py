from __future__ import annotations

import re
from pathlib import Path

import pytest

from rtp_capture import (
    CodecParameters,
    DescriptorWriteError,
    MediaKind,
    TrackBinding,
    build_session_description,
    write_session_description,
)
from rtp_capture.sdp import DEFAULT_VIDEO_FMTP, normalize_line_endings


def _audio(port: int = 20000, ssrc: int = 1111) -> TrackBinding:
    codec = CodecParameters(payload_type=100, mime_type="audio/opus", clock_rate=48000, ssrc=ssrc, channels=2)
    return TrackBinding(kind=MediaKind.AUDIO, port=port, codec=codec)


def _video(port: int = 20002, ssrc: int = 2222, parameters=None) -> TrackBinding:
    codec = CodecParameters(
        payload_type=101,
        mime_type="video/VP8",
        clock_rate=90000,
        ssrc=ssrc,
        parameters=parameters or {},
    )
    return TrackBinding(kind=MediaKind.VIDEO, port=port, codec=codec)


def test_single_audio_description_matches_ffmpeg_layout() -> None:
    text = build_session_description([_audio()]).render()

    assert text == (
        "v=0\n"
        "o=- 0 0 IN IP4 127.0.0.1\n"
        "s=FFmpeg\n"
        "c=IN IP4 127.0.0.1\n"
        "t=0 0\n"
        "m=audio 20000 RTP/AVPF 100\n"
        "a=rtcp:20000\n"
        "a=rtpmap:100 opus/48000/2\n"
        "a=recvonly\n"
        "a=rtcp-mux\n"
        "a=ssrc:1111 cname:FFmpeg\n"
        "a=ssrc:1111 msid:FFmpeg FFmpeg\n"
        "a=ssrc:1111 mslabel:FFmpeg\n"
        "a=ssrc:1111 label:FFmpeg\n"
    )


def test_video_block_uses_default_bitrate_hints() -> None:
    description = build_session_description([_video()])
    block = description.media[0]

    fmtp = block.attribute("fmtp")
    assert fmtp is not None
    assert fmtp.value == f"101 {DEFAULT_VIDEO_FMTP}"
    assert "a=rtpmap:101 VP8/90000" in block.lines()


def test_video_block_prefers_codec_parameters() -> None:
    description = build_session_description([_video(parameters={"profile-level-id": "42e01f", "packetization-mode": 1})])

    fmtp = description.media[0].attribute("fmtp")
    assert fmtp is not None
    assert fmtp.value == "101 profile-level-id=42e01f;packetization-mode=1"


def test_combined_description_has_one_block_per_track_with_consistent_ssrc() -> None:
    description = build_session_description([_video(ssrc=4444), _audio(ssrc=3333)])

    assert [block.kind for block in description.media] == [MediaKind.AUDIO, MediaKind.VIDEO]
    for block, ssrc in zip(description.media, (3333, 4444)):
        ssrc_lines = block.ssrc_attributes()
        assert [attr.name for attr in ssrc_lines] == ["cname", "msid", "mslabel", "label"]
        assert {attr.ssrc for attr in ssrc_lines} == {ssrc}

    text = description.render()
    assert len(re.findall(r"^m=", text, flags=re.MULTILINE)) == 2
    assert "a=fmtp" not in text.split("m=video")[0]


def test_audio_without_channels_omits_channel_suffix() -> None:
    codec = CodecParameters(payload_type=0, mime_type="audio/PCMU", clock_rate=8000, ssrc=5)
    text = build_session_description([TrackBinding(MediaKind.AUDIO, 20000, codec)]).render()

    assert "a=rtpmap:0 PCMU/8000\n" in text


def test_duplicate_ports_are_rejected() -> None:
    with pytest.raises(ValueError):
        build_session_description([_audio(port=20000), _video(port=20000)])
    with pytest.raises(ValueError):
        build_session_description([])


def test_normalize_line_endings_collapses_crlf() -> None:
    assert normalize_line_endings("v=0\r\ns=x \r\rt=0 0\r\n\r\n") == "v=0\ns=x\n\nt=0 0\n"


def test_write_session_description(tmp_path: Path) -> None:
    target = write_session_description(build_session_description([_audio()]), tmp_path / "scratch", "P1_1700000000000")

    assert target == tmp_path / "scratch" / "P1_1700000000000.sdp"
    content = target.read_bytes()
    assert b"\r" not in content
    assert content.endswith(b"a=ssrc:1111 label:FFmpeg\n")


def test_write_session_description_rejects_path_tokens(tmp_path: Path) -> None:
    with pytest.raises(ValueError):
        write_session_description(build_session_description([_audio()]), tmp_path, "../escape")


def test_write_failure_raises_descriptor_error(tmp_path: Path) -> None:
    blocker = tmp_path / "not-a-directory"
    blocker.write_text("", encoding="utf-8")

    with pytest.raises(DescriptorWriteError):
        write_session_description(build_session_description([_audio()]), blocker, "token")
