"""Per-group serialization of executions.

Only one execution runs per group at a time, whether it was triggered by a
scheduled task or by anything else sharing the manager. Bookkeeping for a
group is dropped as soon as its queue is empty.
"""

from __future__ import annotations

import asyncio
from collections import deque
from typing import Awaitable, Callable, TypeVar

T = TypeVar("T")


class GroupLockManager:
    """FIFO lock per key, built from an ordered queue of turn futures."""

    def __init__(self) -> None:
        self._queues: dict[str, deque[asyncio.Future[None]]] = {}

    async def with_lock(self, key: str, fn: Callable[[], Awaitable[T]]) -> T:
        """Run ``fn`` once every earlier submission for ``key`` has finished."""
        queue = self._queues.setdefault(key, deque())
        turn: asyncio.Future[None] = asyncio.get_running_loop().create_future()
        queue.append(turn)
        if len(queue) == 1:
            turn.set_result(None)

        try:
            await turn
            return await fn()
        finally:
            self._leave(key, turn)

    def has_pending(self, key: str) -> bool:
        """True while at least one execution for ``key`` is queued or running."""
        return key in self._queues

    def pending_count(self, key: str) -> int:
        queue = self._queues.get(key)
        return len(queue) if queue else 0

    @property
    def keys(self) -> list[str]:
        return list(self._queues)

    def _leave(self, key: str, turn: asyncio.Future[None]) -> None:
        queue = self._queues.get(key)
        if queue is None:
            return
        was_head = bool(queue) and queue[0] is turn
        try:
            queue.remove(turn)
        except ValueError:
            pass

        if not queue:
            del self._queues[key]
            return

        if was_head:
            head = queue[0]
            if not head.done():
                head.set_result(None)
