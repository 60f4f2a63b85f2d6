"""Bounded global concurrency limiter for async operations."""

from __future__ import annotations

import asyncio
from collections import deque
from typing import Awaitable, Callable, TypeVar

T = TypeVar("T")


class ConcurrencyLimiter:
    """Semaphore with FIFO hand-off.

    When an operation finishes, its slot passes directly to the oldest waiter,
    so queued operations start in submission order and capacity never leaks,
    whether the operation returned, raised, or was cancelled.
    """

    def __init__(self, max_concurrent: int) -> None:
        if max_concurrent < 1:
            raise ValueError(f"max_concurrent must be at least 1, got {max_concurrent}")
        self._max_concurrent = max_concurrent
        self._running = 0
        self._waiters: deque[asyncio.Future[None]] = deque()

    @property
    def max_concurrent(self) -> int:
        return self._max_concurrent

    @property
    def active(self) -> int:
        return self._running

    @property
    def pending(self) -> int:
        return sum(1 for w in self._waiters if not w.done())

    async def run(self, fn: Callable[[], Awaitable[T]]) -> T:
        await self._acquire()
        try:
            return await fn()
        finally:
            self._release()

    async def _acquire(self) -> None:
        # Live waiters only exist while every slot is taken
        if self._running < self._max_concurrent:
            self._running += 1
            return

        waiter: asyncio.Future[None] = asyncio.get_running_loop().create_future()
        self._waiters.append(waiter)
        try:
            await waiter
        except asyncio.CancelledError:
            if waiter.done() and not waiter.cancelled():
                # Slot was handed over just before cancellation; pass it on
                self._release()
            else:
                self._discard(waiter)
            raise

    def _release(self) -> None:
        while self._waiters:
            waiter = self._waiters.popleft()
            if not waiter.done():
                # Hand the slot over; _running stays the same
                waiter.set_result(None)
                return
        self._running -= 1

    def _discard(self, waiter: asyncio.Future[None]) -> None:
        try:
            self._waiters.remove(waiter)
        except ValueError:
            pass
