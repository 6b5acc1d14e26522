"""
Time- and size-bounded cache for rendered button images.
"""

from __future__ import annotations

import logging
import math
import time
from collections.abc import Callable
from dataclasses import dataclass, replace

logger = logging.getLogger(__name__)

_DEFAULT_TTL_SECONDS = 10 * 60
_DEFAULT_CAPACITY = 50
_DEFAULT_EVICTION_FRACTION = 0.2


@dataclass(frozen=True)
class CacheEntry:
    """A rendered value with its absolute expiry and last access time."""

    value: str
    expires_at: float
    last_used: float


class RenderCache:
    """
    LRU-evicting cache with a per-entry TTL.

    Inserting into a full cache first evicts the
    ``ceil(capacity * eviction_fraction)`` least-recently-used entries, so
    the size never exceeds *capacity*. Hits replace the entry with a copy
    carrying a new ``last_used``; the stored value itself is not touched.

    Parameters
    ----------
    ttl : float, optional
        Entry lifetime in seconds (default: 600).
    capacity : int, optional
        Maximum number of entries (default: 50).
    eviction_fraction : float, optional
        Share of *capacity* evicted when full (default: 0.2).
    clock : Callable[[], float], optional
        Monotonic clock in seconds (default: ``time.monotonic``).
    """

    def __init__(
        self,
        ttl: float = _DEFAULT_TTL_SECONDS,
        capacity: int = _DEFAULT_CAPACITY,
        eviction_fraction: float = _DEFAULT_EVICTION_FRACTION,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._ttl = ttl
        self._capacity = capacity
        self._evict_count = max(1, math.ceil(capacity * eviction_fraction))
        self._clock = clock
        self._entries: dict[str, CacheEntry] = {}

    @property
    def capacity(self) -> int:
        return self._capacity

    @property
    def evict_count(self) -> int:
        return self._evict_count

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: object) -> bool:
        return key in self._entries

    def get(self, key: str) -> str | None:
        """Return the cached value if present and not expired."""
        entry = self._entries.get(key)
        now = self._clock()
        if entry is None or entry.expires_at <= now:
            return None

        self._entries[key] = replace(entry, last_used=now)
        return entry.value

    def put(self, key: str, value: str) -> None:
        """Store *value*, evicting least-recently-used entries when full."""
        if len(self._entries) >= self._capacity:
            self._evict()

        now = self._clock()
        self._entries[key] = CacheEntry(
            value=value, expires_at=now + self._ttl, last_used=now
        )

    def clear(self) -> None:
        self._entries.clear()

    def _evict(self) -> None:
        by_age = sorted(self._entries.items(), key=lambda item: item[1].last_used)
        for key, _ in by_age[: self._evict_count]:
            del self._entries[key]
        logger.debug(
            "Render cache full; evicted %d entries", min(self._evict_count, len(by_age))
        )
