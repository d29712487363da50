"""Interfaces the capture pipeline expects from the media router."""
from __future__ import annotations

from typing import Any, Callable, Mapping, Optional, Protocol


class Consumer(Protocol):
    """A router consumer forwarding one producer's RTP stream."""

    @property
    def id(self) -> str: ...

    @property
    def kind(self) -> str: ...

    @property
    def rtp_parameters(self) -> Mapping[str, Any]: ...

    def close(self) -> None: ...


class Transport(Protocol):
    """A plain (non-ICE, non-DTLS) RTP transport allocated on the router."""

    @property
    def id(self) -> str: ...

    def consume(
        self,
        *,
        producer_id: str,
        rtp_capabilities: Mapping[str, Any],
        paused: bool = False,
    ) -> Consumer: ...

    def connect(self, *, ip: str, port: int) -> None: ...

    def close(self) -> None: ...


class MediaRouter(Protocol):
    """The subset of router operations used to provision capture endpoints."""

    @property
    def rtp_capabilities(self) -> Mapping[str, Any]: ...

    def create_plain_transport(
        self,
        *,
        listen_ip: str,
        announced_ip: Optional[str] = None,
        rtcp_mux: bool = True,
        comedia: bool = False,
    ) -> Transport: ...


RouterResolver = Callable[[str], MediaRouter]


__all__ = ["Consumer", "MediaRouter", "RouterResolver", "Transport"]
