from __future__ import annotations

import threading
import time

import pytest

from rtp_capture import DuplicateSessionError, SessionNotFoundError
from rtp_capture_service.engine import SessionRegistry


def test_insert_lookup_remove() -> None:
    registry: SessionRegistry[str] = SessionRegistry()
    registry.insert("P1", "bundle")

    assert registry.lookup("P1") == "bundle"
    assert registry.contains("P1")
    assert registry.keys() == ["P1"]
    assert len(registry) == 1

    registry.remove("P1")
    registry.remove("P1")
    assert len(registry) == 0


def test_duplicate_insert_keeps_first_bundle() -> None:
    registry: SessionRegistry[str] = SessionRegistry()
    registry.insert("P1", "first")

    with pytest.raises(DuplicateSessionError) as excinfo:
        registry.insert("P1", "second")

    assert excinfo.value.key == "P1"
    assert registry.lookup("P1") == "first"


def test_lookup_unknown_key() -> None:
    with pytest.raises(SessionNotFoundError):
        SessionRegistry().lookup("missing")


def test_locked_serializes_same_key_only() -> None:
    registry: SessionRegistry[str] = SessionRegistry()
    entered = threading.Event()
    release = threading.Event()
    order: list[str] = []

    def _holder() -> None:
        with registry.locked("P1"):
            entered.set()
            release.wait(5)
            order.append("holder")

    def _contender() -> None:
        with registry.locked("P1"):
            order.append("contender")

    holder = threading.Thread(target=_holder)
    holder.start()
    assert entered.wait(5)

    contender = threading.Thread(target=_contender)
    contender.start()
    time.sleep(0.1)

    # A different key is never blocked by the held one.
    with registry.locked("P2"):
        order.append("other")

    release.set()
    holder.join(5)
    contender.join(5)

    assert order == ["other", "holder", "contender"]
    assert registry._key_locks == {}  # type: ignore[attr-defined]
