"""In-memory cache for fetched ledger documents.

Each cache is an explicit object handed to whoever needs it; there are no
module-level cache singletons. Entries expire after their TTL and the cache
never holds more than ``max_size`` entries (the oldest insert is evicted).
"""

import logging
import time
from collections import OrderedDict
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

logger = logging.getLogger(__name__)


@dataclass
class CacheEntry:
    """A cached value with its insertion time and time-to-live."""

    value: Any
    stored_at: float
    ttl: float

    def is_expired(self, now: float) -> bool:
        return now - self.stored_at > self.ttl


class TTLCache:
    """Size- and time-bounded cache."""

    def __init__(
        self,
        ttl: float = 300.0,
        max_size: int = 100,
        clock: Callable[[], float] = time.monotonic,
    ):
        """
        Initialize the cache.

        Args:
            ttl: Default time-to-live in seconds
            max_size: Maximum number of entries
            clock: Time source in seconds (injectable for tests)
        """
        if max_size <= 0:
            raise ValueError(f"max_size must be positive, got {max_size}")
        self.default_ttl = ttl
        self.max_size = max_size
        self._clock = clock
        self._entries: OrderedDict[str, CacheEntry] = OrderedDict()

    def get(self, key: str) -> Any | None:
        """Get a value, or None if missing or expired."""
        entry = self._entries.get(key)
        if entry is None:
            return None
        if entry.is_expired(self._clock()):
            del self._entries[key]
            logger.debug(f"Cache entry expired: {key}")
            return None
        return entry.value

    def set(self, key: str, value: Any, ttl: float | None = None):
        """Store a value, evicting the oldest entry if the cache is full."""
        self._cleanup()
        self._entries.pop(key, None)

        if len(self._entries) >= self.max_size:
            oldest_key, _ = self._entries.popitem(last=False)
            logger.debug(f"Cache full, evicted: {oldest_key}")

        self._entries[key] = CacheEntry(
            value=value,
            stored_at=self._clock(),
            ttl=self.default_ttl if ttl is None else ttl,
        )

    def has(self, key: str) -> bool:
        """Check whether a live entry exists."""
        return self.get(key) is not None

    def delete(self, key: str) -> bool:
        """Delete an entry. Returns True if it existed."""
        return self._entries.pop(key, None) is not None

    def invalidate_prefix(self, prefix: str) -> int:
        """Delete every entry whose key starts with prefix."""
        stale = [key for key in self._entries if key.startswith(prefix)]
        for key in stale:
            del self._entries[key]
        return len(stale)

    def clear(self):
        """Remove all entries."""
        self._entries.clear()

    def _cleanup(self):
        """Drop expired entries."""
        now = self._clock()
        for key in [k for k, e in self._entries.items() if e.is_expired(now)]:
            del self._entries[key]

    @property
    def size(self) -> int:
        """Number of live entries."""
        self._cleanup()
        return len(self._entries)

    @property
    def keys(self) -> list[str]:
        """Keys of live entries, oldest first."""
        self._cleanup()
        return list(self._entries)


def group_key(group_id: str) -> str:
    return f"group:{group_id}"


def group_expenses_key(group_id: str) -> str:
    return f"groupExpenses:{group_id}"


def group_settlements_key(group_id: str) -> str:
    return f"groupSettlements:{group_id}"


def user_groups_key(user_id: str) -> str:
    return f"userGroups:{user_id}"
