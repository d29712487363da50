"""Reachability checks for the Redis instances the service depends on."""
from __future__ import annotations

import logging
from typing import Optional
from urllib.parse import urlsplit, urlunsplit

import redis
from redis.exceptions import RedisError

LOGGER = logging.getLogger(__name__)


def redact_url(url: str) -> str:
    """Return ``url`` with any password replaced so it can be logged."""

    parts = urlsplit(url)
    if not parts.password:
        return url
    user = parts.username or ""
    host = parts.hostname or ""
    if parts.port:
        host = f"{host}:{parts.port}"
    return urlunsplit(parts._replace(netloc=f"{user}:***@{host}"))


def ensure_connection(url: Optional[str], *, label: str) -> None:
    """Ping ``url`` once and raise ``RuntimeError`` naming ``label`` if it fails."""

    candidate = (url or "").strip()
    if not candidate:
        raise RuntimeError(f"{label} URL not configured.")
    if not candidate.startswith(("redis://", "rediss://", "unix://")):
        LOGGER.info("%s at %s is not Redis; skipping connectivity check", label, redact_url(candidate))
        return

    client = None
    try:
        client = redis.from_url(candidate, socket_timeout=3)
        client.ping()
    except (RedisError, ValueError) as exc:
        raise RuntimeError(f"Unable to reach {label} at {redact_url(candidate)}: {exc}") from exc
    finally:
        if client is not None:
            try:
                client.close()
            except RedisError:
                LOGGER.debug("Failed to close %s check connection", label, exc_info=True)
    LOGGER.info("%s reachable at %s", label, redact_url(candidate))


__all__ = ["ensure_connection", "redact_url"]
