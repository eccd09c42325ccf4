"""
Concurrency gate for the render strategy.

This module implements admission control over the browser engine:
- A strict cap on simultaneously active render sessions
- First-come-first-served wake-up of queued callers
- Active/peak/waiting counters for inspection
"""

from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager




# ==== RENDER GATE ==== #

class RenderGate:
    """
    Counting gate bounding simultaneous render sessions.

    Backed by ``asyncio.Semaphore``, which queues waiters in arrival
    order and lets newcomers acquire only when nobody is waiting.

    Attributes:
        _semaphore: Permit counter and FIFO wait queue
        _limit: Maximum number of permits
        _active: Permits currently held
        _waiting: Callers currently queued for a permit
        _peak: Highest value of ``_active`` observed
    """

    def __init__(self, limit: int) -> None:
        """
        Initialize gate with a fixed number of permits.

        Args:
            limit: Maximum simultaneous holders (must be >= 1)
        """
        if limit < 1:
            raise ValueError("limit must be at least 1")

        self._semaphore = asyncio.Semaphore(limit)
        self._limit = limit
        self._active = 0
        self._waiting = 0
        self._peak = 0




    # --► PERMIT MANAGEMENT

    async def acquire(self) -> None:
        """
        Acquire a permit, suspending until one is available.

        Note:
            Always pair with release() in a try/finally, or use slot().
        """
        self._waiting += 1
        try:
            await self._semaphore.acquire()
        finally:
            self._waiting -= 1

        self._active += 1
        self._peak = max(self._peak, self._active)




    def release(self) -> None:
        """Release a permit and wake the longest-waiting caller."""
        self._active -= 1
        self._semaphore.release()




    @asynccontextmanager
    async def slot(self) -> AsyncIterator[None]:
        """Hold a permit for the duration of the ``async with`` block."""
        await self.acquire()
        try:
            yield
        finally:
            self.release()




    # --► INSPECTION

    @property
    def limit(self) -> int:
        return self._limit

    @property
    def active(self) -> int:
        return self._active

    @property
    def waiting(self) -> int:
        return self._waiting

    @property
    def peak(self) -> int:
        return self._peak
