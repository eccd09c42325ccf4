"""
Bounded, time-expiring resolution cache.

This module implements:
- Least-recently-used eviction at a fixed entry count
- Absolute expiry from insertion (reads never extend an entry's life)
- Success-only admission: unresolved results are never stored
"""

from __future__ import annotations

import time
from collections import OrderedDict
from collections.abc import Callable

from link_resolver.core.models import ResolutionResult




# ==== RESOLUTION CACHE ==== #

class ResolutionCache:
    """
    LRU + TTL store mapping a link to its last successful resolution.

    Keys are used verbatim; no normalization is applied, so two
    spellings of the same resource are two entries.

    Attributes:
        _entries: Ordered map of link -> (expires_at, result), oldest first
        _max_entries: Maximum number of entries kept
        _ttl: Lifetime of an entry in seconds
        _clock: Monotonic time source (injectable for tests)
    """

    def __init__(
        self,
        max_entries: int,
        ttl_seconds: float,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if max_entries < 1:
            raise ValueError("max_entries must be at least 1")
        if ttl_seconds <= 0:
            raise ValueError("ttl_seconds must be positive")

        self._entries: OrderedDict[str, tuple[float, ResolutionResult]] = OrderedDict()
        self._max_entries = max_entries
        self._ttl = float(ttl_seconds)
        self._clock = clock




    # --► LOOKUP

    def get(self, link: str) -> ResolutionResult | None:
        """
        Return the cached result for ``link`` or None.

        Expired entries are removed on read. A hit marks the entry as
        most recently used without touching its expiry.
        """
        item = self._entries.get(link)
        if item is None:
            return None

        expires_at, result = item
        if self._clock() >= expires_at:
            del self._entries[link]
            return None

        self._entries.move_to_end(link)
        return result




    # --► ADMISSION

    def put(self, link: str, result: ResolutionResult) -> bool:
        """
        Store a resolved result.

        Args:
            link: Cache key (raw link string)
            result: Result to store

        Returns:
            True if stored, False if the result was not cacheable
        """
        if not result.is_resolved:
            return False

        self._entries[link] = (self._clock() + self._ttl, result)
        self._entries.move_to_end(link)

        while len(self._entries) > self._max_entries:
            self._entries.popitem(last=False)

        return True




    # --► INSPECTION

    def __contains__(self, link: object) -> bool:
        if not isinstance(link, str):
            return False
        item = self._entries.get(link)
        return item is not None and self._clock() < item[0]

    def __len__(self) -> int:
        return len(self._entries)

    def clear(self) -> None:
        self._entries.clear()
