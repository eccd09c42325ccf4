"""
In-flight request coalescing.

At most one resolution runs per key; concurrent callers for the same
key attach to the running task and receive its outcome.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from typing import Generic, TypeVar

from link_resolver.utils.logging import get_logger, safe_url

T = TypeVar("T")

logger = get_logger(__name__)




# ==== IN-FLIGHT REGISTRY ==== #

class InFlightRegistry(Generic[T]):
    """
    Registry of key -> shared task for outstanding computations.

    Lookup and registration happen in one synchronous step on the event
    loop, so no other coroutine can interleave between them. The entry is
    removed from inside the task before it completes, whatever the
    outcome.
    """

    def __init__(self) -> None:
        self._pending: dict[str, asyncio.Task[T]] = {}




    async def run(self, key: str, factory: Callable[[], Awaitable[T]]) -> T:
        """
        Run ``factory()`` for ``key`` unless a run is already in flight.

        Args:
            key: De-duplication key
            factory: Zero-argument callable producing the computation;
                only invoked when no run is in flight for ``key``

        Returns:
            The shared outcome of the single computation for ``key``

        Note:
            Callers are shielded from each other: cancelling one waiter
            does not cancel the shared computation.
        """
        task = self._pending.get(key)

        if task is None:
            task = asyncio.ensure_future(self._drive(key, factory))
            self._pending[key] = task
        else:
            logger.debug("Attaching to in-flight resolution of %s", safe_url(key))

        return await asyncio.shield(task)




    async def _drive(self, key: str, factory: Callable[[], Awaitable[T]]) -> T:
        try:
            return await factory()
        finally:
            self._pending.pop(key, None)




    # --► INSPECTION

    def pending(self, key: str) -> bool:
        return key in self._pending

    def __len__(self) -> int:
        return len(self._pending)
