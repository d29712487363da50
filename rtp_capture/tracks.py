"""Utilities for modeling the media tracks carried by router consumers."""
from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Mapping, Optional

from .exceptions import ProvisioningError


class MediaKind(str, Enum):
    """Track kinds the capture pipeline knows how to bind."""

    AUDIO = "audio"
    VIDEO = "video"

    @classmethod
    def from_value(cls, value: Any) -> "MediaKind":
        try:
            return cls(str(value).strip().lower())
        except ValueError as exc:
            raise ProvisioningError(f"Unsupported media kind: {value}") from exc


@dataclass(frozen=True, slots=True)
class CodecParameters:
    """RTP codec metadata reported by a router consumer."""

    payload_type: int
    mime_type: str
    clock_rate: int
    ssrc: int
    channels: Optional[int] = None
    parameters: Mapping[str, Any] = field(default_factory=dict)

    @property
    def subtype(self) -> str:
        """Return the media subtype, e.g. ``opus`` for ``audio/opus``."""

        _, _, subtype = self.mime_type.partition("/")
        return subtype or self.mime_type

    @classmethod
    def from_rtp_parameters(cls, rtp_parameters: Mapping[str, Any]) -> "CodecParameters":
        """Extract the first codec and encoding from consumer ``rtpParameters``."""

        try:
            codec = rtp_parameters["codecs"][0]
            encoding = rtp_parameters["encodings"][0]
            channels = codec.get("channels")
            return cls(
                payload_type=int(codec["payloadType"]),
                mime_type=str(codec["mimeType"]),
                clock_rate=int(codec["clockRate"]),
                ssrc=int(encoding["ssrc"]),
                channels=int(channels) if channels else None,
                parameters=dict(codec.get("parameters") or {}),
            )
        except (KeyError, IndexError, TypeError, ValueError) as exc:
            raise ProvisioningError(f"Consumer RTP parameters are incomplete: {exc}") from exc


__all__ = ["CodecParameters", "MediaKind"]
