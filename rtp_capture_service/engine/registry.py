"""Registry of live capture sessions keyed by producer identity."""
from __future__ import annotations

import threading
from contextlib import contextmanager
from typing import Dict, Generic, Iterator, List, TypeVar

from rtp_capture import DuplicateSessionError, SessionNotFoundError

T = TypeVar("T")


class _KeyLock:
    __slots__ = ("lock", "holders")

    def __init__(self) -> None:
        self.lock = threading.Lock()
        self.holders = 0


class SessionRegistry(Generic[T]):
    """Map session keys to live bundles.

    ``insert``/``lookup``/``remove`` only hold the table lock for the dict
    operation itself. Flows that span several steps on one key (start, stop)
    run inside :meth:`locked`, which serializes callers per key and never
    blocks callers working on other keys.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._entries: Dict[str, T] = {}
        self._key_locks: Dict[str, _KeyLock] = {}

    # ------------------------------------------------------------------
    # Table operations
    # ------------------------------------------------------------------
    def insert(self, key: str, bundle: T) -> None:
        with self._lock:
            if key in self._entries:
                raise DuplicateSessionError(key)
            self._entries[key] = bundle

    def lookup(self, key: str) -> T:
        with self._lock:
            try:
                return self._entries[key]
            except KeyError:
                raise SessionNotFoundError(key) from None

    def remove(self, key: str) -> None:
        with self._lock:
            self._entries.pop(key, None)

    def contains(self, key: str) -> bool:
        with self._lock:
            return key in self._entries

    def keys(self) -> List[str]:
        with self._lock:
            return list(self._entries)

    def values(self) -> List[T]:
        with self._lock:
            return list(self._entries.values())

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    # ------------------------------------------------------------------
    # Per-key serialization
    # ------------------------------------------------------------------
    @contextmanager
    def locked(self, key: str) -> Iterator[None]:
        """Hold the mutual-exclusion lock for ``key`` for the duration of the block."""

        with self._lock:
            entry = self._key_locks.get(key)
            if entry is None:
                entry = self._key_locks[key] = _KeyLock()
            entry.holders += 1
        entry.lock.acquire()
        try:
            yield
        finally:
            entry.lock.release()
            with self._lock:
                entry.holders -= 1
                if entry.holders == 0:
                    self._key_locks.pop(key, None)


__all__ = ["SessionRegistry"]
