"""Redis-backed broadcaster for capture status updates."""
from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from typing import Any, Optional

import redis
from redis import Redis
from redis.exceptions import RedisError

from .status_snapshot import CaptureStatus

LOGGER = logging.getLogger(__name__)


class CaptureStatusBroadcaster:
    """Publish capture status snapshots to Redis for dashboards and peers."""

    def __init__(
        self,
        *,
        redis_url: Optional[str],
        prefix: str,
        namespace: str,
        key: str,
        channel: Optional[str],
        ttl_seconds: int,
        client: Optional[Redis] = None,
    ) -> None:
        self._redis_url = redis_url or ""
        self._prefix = prefix.strip() or "rtp_capture"
        self._namespace = namespace.strip() or "capture"
        self._key = key.strip() or "status"
        self._channel = channel.strip() if isinstance(channel, str) and channel.strip() else None
        self._ttl = max(0, int(ttl_seconds))
        self._client: Optional[Redis] = client
        self._last_error: Optional[str] = None
        if client is None:
            self._connect()

    # ------------------------------------------------------------------
    # Lifecycle helpers
    # ------------------------------------------------------------------
    def _connect(self) -> None:
        if not self._redis_url:
            self._last_error = "Redis URL not configured"
            self._client = None
            return
        try:
            client = redis.from_url(
                self._redis_url,
                socket_timeout=3,
                health_check_interval=30,
            )
            client.ping()
        except (RedisError, ValueError) as exc:
            LOGGER.warning("Failed to connect to Redis for status broadcasting: %s", exc)
            self._client = None
            self._last_error = f"Failed to connect to Redis: {exc}"
            return
        self._client = client
        self._last_error = None

    def _ensure_client(self) -> Optional[Redis]:
        if self._client is None:
            self._connect()
        return self._client

    def _drop_client(self) -> None:
        client, self._client = self._client, None
        if client is None:
            return
        try:
            client.close()
        except RedisError:
            LOGGER.debug("Failed to close Redis client", exc_info=True)

    def close(self) -> None:
        self._drop_client()

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------
    @property
    def available(self) -> bool:
        return self._ensure_client() is not None

    @property
    def last_error(self) -> Optional[str]:
        return self._last_error

    @property
    def redis_key(self) -> str:
        return f"{self._prefix}:{self._namespace}:{self._key}"

    def publish(self, status: CaptureStatus) -> None:
        """Persist and broadcast the latest capture status."""

        client = self._ensure_client()
        if client is None:
            return
        payload = self.serialize(status)
        try:
            if self._ttl > 0:
                client.set(self.redis_key, payload, ex=self._ttl)
            else:
                client.set(self.redis_key, payload)
            if self._channel:
                client.publish(self._channel, payload)
            self._last_error = None
        except RedisError as exc:
            self._last_error = f"Failed to publish capture status: {exc}"
            LOGGER.debug("Failed to publish capture status to Redis: %s", exc)
            self._drop_client()

    def read(self) -> Optional[dict[str, Any]]:
        """Return the last published snapshot, or ``None`` when none is stored."""

        client = self._ensure_client()
        if client is None:
            return None
        try:
            raw = client.get(self.redis_key)
        except RedisError as exc:
            self._last_error = f"Failed to read capture status: {exc}"
            LOGGER.debug("Failed to read capture status from Redis: %s", exc)
            self._drop_client()
            return None
        if raw is None:
            return None
        if isinstance(raw, bytes):
            raw = raw.decode("utf-8")
        try:
            payload = json.loads(raw)
        except ValueError:
            LOGGER.warning("Ignoring malformed capture status at %s", self.redis_key)
            return None
        return payload if isinstance(payload, dict) else None

    def clear(self) -> None:
        client = self._ensure_client()
        if client is None:
            return
        try:
            client.delete(self.redis_key)
        except RedisError:
            LOGGER.debug("Failed to clear capture status key from Redis")

    @staticmethod
    def serialize(status: CaptureStatus) -> str:
        payload = status.to_payload(
            origin="rtp_capture",
            updated_at=datetime.now(timezone.utc).isoformat(),
        )
        return json.dumps(payload, ensure_ascii=False, separators=(",", ":"), default=str)


__all__ = ["CaptureStatusBroadcaster"]
