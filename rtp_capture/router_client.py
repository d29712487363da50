"""HTTP client for the media server's router control API."""
from __future__ import annotations

import logging
from typing import Any, Mapping, MutableMapping, Optional

import requests

from .exceptions import MediaRouterError

LOGGER = logging.getLogger(__name__)


class MediaServerClient:
    """Thin wrapper around the media server control API."""

    def __init__(
        self,
        base_url: str,
        *,
        timeout: float = 10.0,
        token: Optional[str] = None,
        session: Optional[requests.Session] = None,
    ) -> None:
        if not base_url or not base_url.strip():
            raise ValueError("Media server base URL is required")
        self._base_url = base_url.strip().rstrip("/")
        self._timeout = timeout
        self._session = session or requests.Session()
        cleaned = token.strip() if isinstance(token, str) else None
        self._token = cleaned or None

    @property
    def base_url(self) -> str:
        return self._base_url

    def _url(self, path: str) -> str:
        return f"{self._base_url}/{path.lstrip('/')}"

    def request(
        self,
        method: str,
        path: str,
        *,
        json: Optional[Mapping[str, Any]] = None,
    ) -> MutableMapping[str, Any]:
        url = self._url(path)
        headers = {"Accept": "application/json"}
        if self._token:
            headers["Authorization"] = f"Bearer {self._token}"
        try:
            response = self._session.request(
                method,
                url,
                json=json,
                headers=headers,
                timeout=self._timeout,
            )
        except requests.RequestException as exc:
            LOGGER.error("Media server request %s %s failed: %s", method, url, exc)
            raise MediaRouterError(f"media server unavailable: {exc}") from exc

        try:
            payload = response.json() if response.content else {}
        except ValueError:
            payload = {}
        if response.status_code >= 400:
            detail = payload.get("error") if isinstance(payload, Mapping) else None
            raise MediaRouterError(
                f"{method} {path} rejected with {response.status_code}: {detail or response.reason}"
            )
        if not isinstance(payload, MutableMapping):
            raise MediaRouterError(f"{method} {path} returned a non-object payload")
        return payload

    def router(self, room: str) -> "HttpMediaRouter":
        return HttpMediaRouter(self, room)

    def close(self) -> None:
        self._session.close()


class HttpConsumer:
    """Consumer handle backed by the control API."""

    def __init__(self, client: MediaServerClient, payload: Mapping[str, Any]) -> None:
        try:
            self._id = str(payload["id"])
            self._kind = str(payload["kind"])
            self._rtp_parameters: Mapping[str, Any] = dict(payload["rtpParameters"])
        except (KeyError, TypeError, ValueError) as exc:
            raise MediaRouterError(f"Malformed consumer payload: {exc}") from exc
        self._client = client
        self.closed = False

    @property
    def id(self) -> str:
        return self._id

    @property
    def kind(self) -> str:
        return self._kind

    @property
    def rtp_parameters(self) -> Mapping[str, Any]:
        return self._rtp_parameters

    def close(self) -> None:
        if self.closed:
            return
        self.closed = True
        self._client.request("DELETE", f"/consumers/{self._id}")


class HttpTransport:
    """Plain transport handle backed by the control API."""

    def __init__(self, client: MediaServerClient, transport_id: str) -> None:
        self._client = client
        self._id = transport_id
        self.closed = False

    @property
    def id(self) -> str:
        return self._id

    def consume(
        self,
        *,
        producer_id: str,
        rtp_capabilities: Mapping[str, Any],
        paused: bool = False,
    ) -> HttpConsumer:
        payload = self._client.request(
            "POST",
            f"/transports/{self._id}/consume",
            json={
                "producerId": producer_id,
                "rtpCapabilities": dict(rtp_capabilities),
                "paused": paused,
            },
        )
        return HttpConsumer(self._client, payload)

    def connect(self, *, ip: str, port: int) -> None:
        self._client.request(
            "POST",
            f"/transports/{self._id}/connect",
            json={"ip": ip, "port": int(port)},
        )

    def close(self) -> None:
        if self.closed:
            return
        self.closed = True
        self._client.request("DELETE", f"/transports/{self._id}")


class HttpMediaRouter:
    """Router for a single room, reached through :class:`MediaServerClient`."""

    def __init__(self, client: MediaServerClient, room: str) -> None:
        self._client = client
        self._room = room
        self._rtp_capabilities: Optional[Mapping[str, Any]] = None

    @property
    def room(self) -> str:
        return self._room

    @property
    def rtp_capabilities(self) -> Mapping[str, Any]:
        if self._rtp_capabilities is None:
            self._rtp_capabilities = self._client.request(
                "GET", f"/rooms/{self._room}/rtp-capabilities"
            )
        return self._rtp_capabilities

    def create_plain_transport(
        self,
        *,
        listen_ip: str,
        announced_ip: Optional[str] = None,
        rtcp_mux: bool = True,
        comedia: bool = False,
    ) -> HttpTransport:
        payload = self._client.request(
            "POST",
            f"/rooms/{self._room}/plain-transports",
            json={
                "listenIp": {"ip": listen_ip, "announcedIp": announced_ip},
                "rtcpMux": rtcp_mux,
                "comedia": comedia,
            },
        )
        transport_id = payload.get("id")
        if not transport_id:
            raise MediaRouterError("Plain transport payload is missing an id")
        return HttpTransport(self._client, str(transport_id))


__all__ = ["HttpConsumer", "HttpMediaRouter", "HttpTransport", "MediaServerClient"]
