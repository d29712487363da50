"""Allocate router transports and consumers for capture sessions."""
from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from typing import List, Optional, Sequence

from .config import CaptureSettings
from .exceptions import ProvisioningError
from .router import Consumer, MediaRouter, Transport
from .sdp import TrackBinding
from .tracks import CodecParameters, MediaKind

LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class TrackRequest:
    """A producer to capture, optionally pinned to an expected kind."""

    producer_id: str
    kind: Optional[MediaKind] = None


class Endpoint:
    """A connected plain transport and the consumer it carries."""

    def __init__(
        self,
        *,
        kind: MediaKind,
        port: int,
        transport: Transport,
        consumer: Consumer,
        codec: CodecParameters,
        producer_id: str,
    ) -> None:
        self.kind = kind
        self.port = port
        self.transport = transport
        self.consumer = consumer
        self.codec = codec
        self.producer_id = producer_id
        self._lock = threading.Lock()
        self._closed = False

    @property
    def closed(self) -> bool:
        with self._lock:
            return self._closed

    def binding(self) -> TrackBinding:
        return TrackBinding(kind=self.kind, port=self.port, codec=self.codec)

    def close(self) -> None:
        """Close the consumer, then the transport. Subsequent calls are no-ops."""

        with self._lock:
            if self._closed:
                return
            self._closed = True
        _close_quietly(self.consumer, "consumer", self.producer_id)
        _close_quietly(self.transport, "transport", self.producer_id)

    def describe(self) -> dict[str, object]:
        return {
            "kind": self.kind.value,
            "port": self.port,
            "producer_id": self.producer_id,
            "transport_id": getattr(self.transport, "id", None),
            "consumer_id": getattr(self.consumer, "id", None),
            "ssrc": self.codec.ssrc,
            "closed": self.closed,
        }


class EndpointProvisioner:
    """Request transports/consumers from the router and wire them to FFmpeg ports."""

    def __init__(self, settings: CaptureSettings) -> None:
        self._settings = settings

    def provision(self, router: MediaRouter, requests: Sequence[TrackRequest]) -> List[Endpoint]:
        """Provision one endpoint per request, all-or-nothing."""

        if not requests:
            raise ProvisioningError("No tracks requested")
        endpoints: List[Endpoint] = []
        try:
            for request in requests:
                endpoint = self._provision_one(router, request)
                endpoints.append(endpoint)
                if len({item.port for item in endpoints}) != len(endpoints):
                    raise ProvisioningError(
                        f"Requested tracks collide on port {endpoint.port} ({endpoint.kind.value})"
                    )
        except Exception:
            if endpoints:
                LOGGER.warning("Provisioning failed; closing %d endpoint(s)", len(endpoints))
            close_endpoints(endpoints)
            raise
        return endpoints

    def _provision_one(self, router: MediaRouter, request: TrackRequest) -> Endpoint:
        settings = self._settings
        try:
            transport = router.create_plain_transport(
                listen_ip=settings.listen_ip,
                announced_ip=settings.announced_ip,
                rtcp_mux=True,
                comedia=False,
            )
        except ProvisioningError:
            raise
        except Exception as exc:
            raise ProvisioningError(
                f"Router refused plain transport for producer {request.producer_id}: {exc}"
            ) from exc

        consumer: Optional[Consumer] = None
        try:
            consumer = transport.consume(
                producer_id=request.producer_id,
                rtp_capabilities=router.rtp_capabilities,
                paused=False,
            )
            kind = MediaKind.from_value(consumer.kind)
            if request.kind is not None and kind is not request.kind:
                raise ProvisioningError(
                    f"Producer {request.producer_id} is {kind.value}, expected {request.kind.value}"
                )
            codec = CodecParameters.from_rtp_parameters(consumer.rtp_parameters)
            port = settings.port_for(kind)
            transport.connect(ip=settings.remote_ip, port=port)
        except Exception as exc:
            if consumer is not None:
                _close_quietly(consumer, "consumer", request.producer_id)
            _close_quietly(transport, "transport", request.producer_id)
            if isinstance(exc, ProvisioningError):
                raise
            raise ProvisioningError(
                f"Unable to consume producer {request.producer_id}: {exc}"
            ) from exc

        LOGGER.info(
            "Provisioned %s endpoint for producer %s (transport=%s port=%s ssrc=%s)",
            kind.value,
            request.producer_id,
            getattr(transport, "id", None),
            port,
            codec.ssrc,
        )
        return Endpoint(
            kind=kind,
            port=port,
            transport=transport,
            consumer=consumer,
            codec=codec,
            producer_id=request.producer_id,
        )


def close_endpoints(endpoints: Sequence[Endpoint]) -> None:
    """Close endpoints in reverse allocation order."""

    for endpoint in reversed(list(endpoints)):
        endpoint.close()


def _close_quietly(resource: object, label: str, producer_id: str) -> None:
    try:
        resource.close()  # type: ignore[attr-defined]
    except Exception:
        LOGGER.exception("Failed to close %s for producer %s", label, producer_id)


__all__ = ["Endpoint", "EndpointProvisioner", "TrackRequest", "close_endpoints"]
