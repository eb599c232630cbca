"""
In-process TTL cache for small, hot configuration values
Safe for concurrent readers; the staleness bound is the TTL
"""

import logging
import time
from threading import Lock
from typing import Any, Callable, Optional

logger = logging.getLogger(__name__)

_MISSING = object()


class TTLCache:
    """Key/value cache with per-entry expiry and an injectable clock"""

    def __init__(self, ttl: float = 60.0, clock: Callable[[], float] = time.monotonic):
        self.ttl = ttl
        self._clock = clock
        self._entries: dict[str, tuple[Any, float]] = {}
        self._lock = Lock()

    def get(self, key: str) -> Optional[Any]:
        """Get value from cache; expired entries read as a miss"""
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                logger.debug(f"Cache MISS: {key}")
                return None
            value, expires_at = entry
            if self._clock() >= expires_at:
                del self._entries[key]
                logger.debug(f"Cache EXPIRED: {key}")
                return None
            logger.debug(f"Cache HIT: {key}")
            return value

    def set(self, key: str, value: Any, ttl: Optional[float] = None) -> None:
        """Set value in cache; last writer wins"""
        expires_at = self._clock() + (self.ttl if ttl is None else ttl)
        with self._lock:
            self._entries[key] = (value, expires_at)
        logger.debug(f"Cache SET: {key}")

    def delete(self, key: str) -> bool:
        """Drop one entry; returns whether it was present"""
        with self._lock:
            removed = self._entries.pop(key, _MISSING) is not _MISSING
        if removed:
            logger.debug(f"Cache DELETE: {key}")
        return removed

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def get_or_load(self, key: str, loader: Callable[[], Any]) -> Any:
        """
        Return the cached value or call ``loader`` and cache its result.

        The loader runs outside the lock so a slow database read never blocks
        other readers; concurrent refreshes simply race and the last one wins.
        None results are not cached.
        """
        value = self.get(key)
        if value is not None:
            return value
        value = loader()
        if value is not None:
            self.set(key, value)
        return value
