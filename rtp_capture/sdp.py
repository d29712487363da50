"""Session description documents that bind router endpoints to FFmpeg.

The description is modeled as an ordered list of typed records and only
rendered to text when it is written to disk. FFmpeg's SDP demuxer is picky
about mixed line terminators, so rendering always emits bare ``\\n``.
"""
from __future__ import annotations

import logging
import os
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Mapping, Optional, Sequence

from .exceptions import DescriptorWriteError
from .tracks import CodecParameters, MediaKind

LOGGER = logging.getLogger(__name__)

DEFAULT_VIDEO_FMTP = "x-google-min-bitrate=1000;x-google-max-bitrate=3000;x-google-start-bitrate=2000"
DEFAULT_ADDRESS = "127.0.0.1"
DEFAULT_SESSION_NAME = "FFmpeg"
SSRC_LABEL = "FFmpeg"
TRANSPORT_PROFILE = "RTP/AVPF"

_LINE_BREAKS = re.compile(r"\r\n|\r")


@dataclass(frozen=True, slots=True)
class SdpAttribute:
    """A single ``a=`` line."""

    name: str
    value: Optional[str] = None

    def render(self) -> str:
        if self.value is None:
            return f"a={self.name}"
        return f"a={self.name}:{self.value}"


@dataclass(frozen=True, slots=True)
class SsrcAttribute(SdpAttribute):
    """An ``a=ssrc:<id> <attribute>:<value>`` line."""

    ssrc: int = 0

    def render(self) -> str:
        return f"a=ssrc:{self.ssrc} {self.name}:{self.value}"


@dataclass(frozen=True, slots=True)
class TrackBinding:
    """Endpoint port plus codec metadata for one inbound track."""

    kind: MediaKind
    port: int
    codec: CodecParameters


@dataclass(slots=True)
class MediaBlock:
    """One ``m=`` section and its attributes."""

    kind: MediaKind
    port: int
    payload_type: int
    attributes: List[SdpAttribute] = field(default_factory=list)
    profile: str = TRANSPORT_PROFILE

    def ssrc_attributes(self) -> List[SsrcAttribute]:
        return [attr for attr in self.attributes if isinstance(attr, SsrcAttribute)]

    def attribute(self, name: str) -> Optional[SdpAttribute]:
        for attr in self.attributes:
            if attr.name == name and not isinstance(attr, SsrcAttribute):
                return attr
        return None

    def lines(self) -> List[str]:
        header = f"m={self.kind.value} {self.port} {self.profile} {self.payload_type}"
        return [header, *(attr.render() for attr in self.attributes)]


@dataclass(slots=True)
class SessionDescription:
    """Global header plus the ordered media blocks."""

    media: List[MediaBlock]
    address: str = DEFAULT_ADDRESS
    session_name: str = DEFAULT_SESSION_NAME

    def lines(self) -> List[str]:
        header = [
            "v=0",
            f"o=- 0 0 IN IP4 {self.address}",
            f"s={self.session_name}",
            f"c=IN IP4 {self.address}",
            "t=0 0",
        ]
        body: List[str] = []
        for block in self.media:
            body.extend(block.lines())
        return header + body

    def render(self) -> str:
        return normalize_line_endings("\n".join(self.lines()))


def normalize_line_endings(text: str) -> str:
    """Collapse CRLF/CR terminators to LF and strip stray whitespace per line."""

    unified = _LINE_BREAKS.sub("\n", text)
    lines = [line.strip() for line in unified.split("\n")]
    while lines and not lines[-1]:
        lines.pop()
    return "\n".join(lines) + "\n"


def format_fmtp(parameters: Optional[Mapping[str, object]]) -> str:
    """Render codec-specific parameters, falling back to the bitrate hint triple."""

    if not parameters:
        return DEFAULT_VIDEO_FMTP
    return ";".join(f"{key}={value}" for key, value in parameters.items())


def build_media_block(binding: TrackBinding) -> MediaBlock:
    codec = binding.codec
    payload = codec.payload_type
    rtpmap = f"{payload} {codec.subtype}/{codec.clock_rate}"
    if codec.channels:
        rtpmap = f"{rtpmap}/{codec.channels}"

    attributes: List[SdpAttribute] = [
        SdpAttribute("rtcp", str(binding.port)),
        SdpAttribute("rtpmap", rtpmap),
    ]
    if binding.kind is MediaKind.VIDEO:
        attributes.append(SdpAttribute("fmtp", f"{payload} {format_fmtp(codec.parameters)}"))
    attributes.extend(
        [
            SdpAttribute("recvonly"),
            SdpAttribute("rtcp-mux"),
            SsrcAttribute("cname", SSRC_LABEL, ssrc=codec.ssrc),
            SsrcAttribute("msid", f"{SSRC_LABEL} {SSRC_LABEL}", ssrc=codec.ssrc),
            SsrcAttribute("mslabel", SSRC_LABEL, ssrc=codec.ssrc),
            SsrcAttribute("label", SSRC_LABEL, ssrc=codec.ssrc),
        ]
    )
    return MediaBlock(
        kind=binding.kind,
        port=binding.port,
        payload_type=payload,
        attributes=attributes,
    )


def build_session_description(
    bindings: Sequence[TrackBinding],
    *,
    address: str = DEFAULT_ADDRESS,
) -> SessionDescription:
    """Return the description for one or two tracks, audio block first."""

    if not bindings:
        raise ValueError("At least one track binding is required")
    ports = [binding.port for binding in bindings]
    if len(set(ports)) != len(ports):
        raise ValueError(f"Track bindings must use distinct ports: {ports}")
    ordered = sorted(bindings, key=lambda binding: 0 if binding.kind is MediaKind.AUDIO else 1)
    return SessionDescription(media=[build_media_block(binding) for binding in ordered], address=address)


def write_session_description(
    description: SessionDescription,
    directory: Path,
    token: str,
) -> Path:
    """Write ``description`` to ``<directory>/<token>.sdp`` and return the path."""

    if not token or os.sep in token or (os.altsep and os.altsep in token):
        raise ValueError(f"Invalid descriptor token: {token!r}")
    target = Path(directory) / f"{token}.sdp"
    try:
        target.parent.mkdir(parents=True, exist_ok=True)
        with target.open("w", encoding="utf-8", newline="\n") as handle:
            handle.write(description.render())
    except OSError as exc:
        raise DescriptorWriteError(f"Unable to write session description {target}: {exc}") from exc
    LOGGER.debug("Wrote session description %s (%d media block(s))", target, len(description.media))
    return target


__all__ = [
    "DEFAULT_VIDEO_FMTP",
    "MediaBlock",
    "SdpAttribute",
    "SessionDescription",
    "SsrcAttribute",
    "TrackBinding",
    "build_media_block",
    "build_session_description",
    "format_fmtp",
    "normalize_line_endings",
    "write_session_description",
]
