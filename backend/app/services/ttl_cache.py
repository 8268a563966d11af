"""
TTL Cache
=========

A tiny in-memory cache where every entry expires after a fixed time.

WHY THREE CACHES?
----------------
OpenAQ rate-limits hard (HTTP 429). We keep:
- latest readings per location for 60 seconds (absorbs page reloads)
- sensor -> parameter mappings for 7 days (sensors rarely change)
- parameter id -> name for 30 days (basically never changes)

One TTLCache is created per cache when the app starts and handed to the
OpenAQ service, so tests can build their own with a fake clock.

A cached value of None is still a hit. The resolvers use that to remember
"we asked and nobody knows" without asking again.

NOTE: There is no locking. Everything runs on one asyncio event loop, so
reads and writes never interleave mid-operation.
"""

import time
from typing import Any, Callable, Hashable, Optional


class TTLCache:
    """
    Dictionary with per-entry expiry.

    HOW TO USE:
    ----------
    cache = TTLCache(ttl_seconds=60)
    cache.set(235, {"results": [...]})

    if cache.contains(235):
        payload = cache.get(235)
    """

    def __init__(
        self,
        ttl_seconds: float,
        clock: Callable[[], float] = time.monotonic,
        name: str = "cache",
    ):
        """
        Args:
            ttl_seconds: How long an entry stays valid
            clock: Returns the current time in seconds (override in tests)
            name: Label used in logs and repr
        """
        self.ttl_seconds = ttl_seconds
        self.name = name
        self._clock = clock
        self._entries: dict[str, tuple[float, Any]] = {}

    @staticmethod
    def _key(key: Hashable) -> str:
        # 235 and "235" are the same location
        return str(key)

    def _fresh_entry(self, key: Hashable) -> Optional[tuple[float, Any]]:
        k = self._key(key)
        entry = self._entries.get(k)
        if entry is None:
            return None
        stored_at, _ = entry
        if self._clock() - stored_at >= self.ttl_seconds:
            del self._entries[k]
            return None
        return entry

    def contains(self, key: Hashable) -> bool:
        """True if the key has an entry younger than the TTL."""
        return self._fresh_entry(key) is not None

    def get(self, key: Hashable, default: Any = None) -> Any:
        """Return the fresh value for key, or default."""
        entry = self._fresh_entry(key)
        if entry is None:
            return default
        return entry[1]

    def set(self, key: Hashable, value: Any) -> None:
        """Store value for key, restarting its TTL."""
        self._entries[self._key(key)] = (self._clock(), value)

    def clear(self) -> None:
        """Drop every entry."""
        self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)

    def __repr__(self) -> str:
        return f"TTLCache(name={self.name!r}, ttl_seconds={self.ttl_seconds}, entries={len(self)})"
