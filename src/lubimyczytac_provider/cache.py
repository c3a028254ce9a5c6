"""In-process result cache with a fixed time-to-live.

Entries expire ttl seconds after they were written. Expired entries are
dropped when read and swept on every write. There is no size bound and no
explicit invalidation.
"""

import threading
import time
from collections.abc import Callable
from typing import Any

from loguru import logger

from .models import CACHE_TTL_SECONDS

log = logger.bind(stage="cache")


def make_cache_key(title: str, author: str = "") -> str:
    """Cache key for a normalized request."""
    return f"{title}-{author}"


class ResultCache:
    """Thread-safe TTL store. Construct once per process."""

    def __init__(
        self,
        ttl: float = CACHE_TTL_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.ttl = ttl
        self._clock = clock
        self._data: dict[str, tuple[float, Any]] = {}
        self._lock = threading.Lock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._data)

    def get(self, key: str) -> Any | None:
        """Return the cached value, or None if missing or expired."""
        with self._lock:
            entry = self._data.get(key)
            if entry is None:
                return None
            expires_at, value = entry
            if self._clock() >= expires_at:
                del self._data[key]
                log.debug(f"Expired: {key!r}")
                return None
            return value

    def set(self, key: str, value: Any) -> None:
        """Store a value and sweep entries that have already expired."""
        now = self._clock()
        with self._lock:
            removed = self._sweep(now)
            self._data[key] = (now + self.ttl, value)
        if removed:
            log.debug(f"Expired {removed} entries")

    def expire(self) -> int:
        """Drop every expired entry. Returns how many were removed."""
        now = self._clock()
        with self._lock:
            removed = self._sweep(now)
        if removed:
            log.debug(f"Expired {removed} entries")
        return removed

    def _sweep(self, now: float) -> int:
        # caller holds the lock
        stale = [k for k, (expires_at, _) in self._data.items() if now >= expires_at]
        for key in stale:
            del self._data[key]
        return len(stale)

    def clear(self) -> None:
        with self._lock:
            self._data.clear()
