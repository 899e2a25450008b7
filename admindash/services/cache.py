"""In-process key/value cache with optional per-key expiry."""

from __future__ import annotations

import time
from collections.abc import Callable
from copy import deepcopy
from threading import RLock
from typing import Any

_MISSING = object()


class ExpiringCache:
    """Thread-safe key/value store; expired entries are dropped lazily on read."""

    def __init__(self, clock: Callable[[], float] = time.monotonic) -> None:
        self._lock = RLock()
        self._clock = clock
        self._entries: dict[str, tuple[Any, float | None]] = {}

    def set(self, key: str, value: Any, ttl_seconds: float | None = None) -> None:
        """Store a value. A positive ``ttl_seconds`` makes the entry expire."""
        expires_at = None
        if ttl_seconds is not None and ttl_seconds > 0:
            expires_at = self._clock() + float(ttl_seconds)
        with self._lock:
            self._entries[key] = (deepcopy(value), expires_at)

    def add(self, key: str, value: Any, ttl_seconds: float | None = None) -> bool:
        """Store ``value`` only if ``key`` is absent or expired; True when stored."""
        with self._lock:
            if self._live_value_locked(key) is not _MISSING:
                return False
            self.set(key, value, ttl_seconds)
            return True

    def get(self, key: str, default: Any = None) -> Any:
        with self._lock:
            value = self._live_value_locked(key)
        if value is _MISSING:
            return default
        return deepcopy(value)

    def exists(self, key: str) -> bool:
        with self._lock:
            return self._live_value_locked(key) is not _MISSING

    def ttl(self, key: str) -> float | None:
        """Seconds left before ``key`` expires, None if absent or persistent."""
        with self._lock:
            if self._live_value_locked(key) is _MISSING:
                return None
            expires_at = self._entries[key][1]
        if expires_at is None:
            return None
        return max(0.0, expires_at - self._clock())

    def delete(self, key: str) -> bool:
        with self._lock:
            return self._entries.pop(key, None) is not None

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def _live_value_locked(self, key: str) -> Any:
        entry = self._entries.get(key)
        if entry is None:
            return _MISSING
        value, expires_at = entry
        if expires_at is not None and self._clock() >= expires_at:
            del self._entries[key]
            return _MISSING
        return value


cache = ExpiringCache()
