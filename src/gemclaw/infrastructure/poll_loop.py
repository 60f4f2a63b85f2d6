"""Shared async polling loop abstraction."""

from __future__ import annotations

import asyncio
from typing import Callable, Awaitable

from gemclaw.infrastructure.logger import logger


class PollLoop:
    """An async polling loop that calls a function at regular intervals.

    ``stop()`` prevents any further tick from starting but never cancels the
    tick that is currently running; ``join()`` waits for it to finish.
    """

    def __init__(self, name: str, interval_s: float, fn: Callable[[], Awaitable[None]]) -> None:
        self._name = name
        self._interval = interval_s
        self._fn = fn
        self._task: asyncio.Task[None] | None = None
        self._stop_event = asyncio.Event()
        self._ticks = 0

    @property
    def stopped(self) -> bool:
        return self._stop_event.is_set()

    @property
    def ticks(self) -> int:
        """Number of ticks that have completed."""
        return self._ticks

    def start(self) -> None:
        """Start the polling loop as a background task."""
        self._stop_event.clear()
        self._task = asyncio.create_task(self._loop())
        logger.info(f"{self._name} loop started", interval_s=self._interval)

    def stop(self) -> None:
        """Stop scheduling new ticks. In-flight work runs to completion."""
        if not self._stop_event.is_set():
            self._stop_event.set()
            logger.info(f"{self._name} loop stopping")

    async def join(self) -> None:
        """Wait for the loop task (including any in-flight tick) to exit."""
        if self._task:
            await self._task
            self._task = None

    async def _loop(self) -> None:
        while not self._stop_event.is_set():
            try:
                await self._fn()
            except Exception:
                logger.exception(f"Error in {self._name} loop")
            self._ticks += 1
            try:
                await asyncio.wait_for(self._stop_event.wait(), timeout=self._interval)
            except asyncio.TimeoutError:
                pass


def start_poll_loop(name: str, interval_s: float, fn: Callable[[], Awaitable[None]]) -> PollLoop:
    """Create and start a polling loop. Returns a handle to stop it."""
    loop = PollLoop(name, interval_s, fn)
    loop.start()
    return loop
