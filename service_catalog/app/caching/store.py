"""
In-process cache store with per-entry expiration.
"""

import threading
import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional, Tuple

from shared.logging import get_logger


@dataclass(frozen=True)
class CacheEntry:
    """A cached value and the absolute time it stops being valid."""
    key: str
    value: Any
    expires_at: float

    def is_expired(self, now: float) -> bool:
        return now >= self.expires_at


class CacheStore:
    """Thread-safe key/value store with lazy TTL expiry.

    Every operation takes the same lock around the underlying dict. There
    is no background sweep: an expired entry stays in the dict until the
    next ``get`` for its key notices it and drops it.

    ``clock`` returns seconds on a monotonic scale; tests pass a fake one
    to advance time without sleeping.
    """

    def __init__(self, clock: Optional[Callable[[], float]] = None):
        self._clock = clock or time.monotonic
        self._entries: Dict[str, CacheEntry] = {}
        self._lock = threading.Lock()
        self.logger = get_logger("catalog.cache.store")

    def get(self, key: str) -> Tuple[Any, bool]:
        """Return ``(value, True)`` for a live entry, ``(None, False)`` otherwise."""
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None, False

            if entry.is_expired(self._clock()):
                del self._entries[key]
                self.logger.debug("Dropped expired cache entry", key=key)
                return None, False

            return entry.value, True

    def set(self, key: str, value: Any, ttl: float) -> None:
        """Store ``value`` under ``key``, replacing any previous entry."""
        if ttl <= 0:
            raise ValueError(f"ttl must be positive, got {ttl!r}")

        with self._lock:
            self._entries[key] = CacheEntry(key, value, self._clock() + ttl)

    def delete(self, key: str) -> None:
        """Remove ``key``. Deleting an absent key is a no-op."""
        with self._lock:
            self._entries.pop(key, None)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def __contains__(self, key: str) -> bool:
        return self.get(key)[1]

    def __len__(self) -> int:
        # Includes expired entries nobody has looked up yet
        with self._lock:
            return len(self._entries)
