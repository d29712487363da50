"""Data structures that describe the capture manager state."""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Mapping, Optional, Tuple


@dataclass(frozen=True)
class CaptureStatus:
    """Snapshot of every live capture session."""

    sessions: Tuple[Mapping[str, Any], ...] = field(default_factory=tuple)

    @property
    def running(self) -> bool:
        return bool(self.sessions)

    @property
    def keys(self) -> Tuple[str, ...]:
        return tuple(str(session.get("key")) for session in self.sessions)

    def to_payload(
        self,
        *,
        origin: Optional[str] = None,
        updated_at: Optional[str] = None,
    ) -> dict[str, Any]:
        """Render a dictionary for API responses and status broadcasts."""

        payload: dict[str, Any] = {
            "running": self.running,
            "count": len(self.sessions),
            "sessions": [dict(session) for session in self.sessions],
        }
        if origin:
            payload["origin"] = origin
        if updated_at:
            payload["updated_at"] = updated_at
        return payload


__all__ = ["CaptureStatus"]
