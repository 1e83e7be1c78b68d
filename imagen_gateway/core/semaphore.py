"""
FIFO counting semaphore for bounding concurrent upstream calls.

A released permit is handed straight to the oldest waiter instead of going
back to the free count, so a newly arriving task can never overtake a task
that is already queued.
"""

from __future__ import annotations

import asyncio
from collections import deque


class FairSemaphore:
    """
    Counting semaphore with direct FIFO hand-off.

    Usage:
        semaphore = FairSemaphore(10)
        async with semaphore:
            ...
    """

    def __init__(self, permits: int):
        if permits < 1:
            raise ValueError("permits must be >= 1")
        self._permits = permits
        self._available = permits
        self._waiters: deque[asyncio.Future[None]] = deque()

    @property
    def permits(self) -> int:
        return self._permits

    @property
    def available(self) -> int:
        return self._available

    @property
    def in_use(self) -> int:
        return self._permits - self._available

    @property
    def waiting(self) -> int:
        return sum(1 for waiter in self._waiters if not waiter.done())

    async def acquire(self) -> None:
        """Wait (without a timeout) until a permit is available and take it."""
        if self._available > 0 and not self._waiters:
            self._available -= 1
            return

        waiter: asyncio.Future[None] = asyncio.get_running_loop().create_future()
        self._waiters.append(waiter)
        try:
            await waiter
        except asyncio.CancelledError:
            if waiter.done() and not waiter.cancelled():
                # Permit was handed over just before cancellation; pass it on.
                self.release()
            else:
                try:
                    self._waiters.remove(waiter)
                except ValueError:
                    pass
            raise

    def release(self) -> None:
        """Return a permit, handing it to the longest-waiting task if any."""
        while self._waiters:
            waiter = self._waiters.popleft()
            if not waiter.done():
                # Permit moves to the waiter; the free count is unchanged.
                waiter.set_result(None)
                return
        self._available += 1

    async def __aenter__(self) -> FairSemaphore:
        await self.acquire()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        self.release()

    def __repr__(self) -> str:
        return (
            f"FairSemaphore(permits={self._permits}, in_use={self.in_use}, "
            f"waiting={self.waiting})"
        )
