"""In-process event bus with per-handler isolation and a replay buffer.

- ``emit()`` synchronously triggers all handlers for an event
- Each handler is independently guarded; errors are logged, never propagated
- Coroutine handlers are scheduled on the running loop; failures are logged
- A ring buffer retains the most recent N events for introspection
"""

from __future__ import annotations

import asyncio
import inspect
import time
from collections import deque
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Literal

from gemclaw.infrastructure.config import EVENT_BUFFER_SIZE
from gemclaw.infrastructure.logger import logger

EventName = Literal[
    "task:created",
    "task:updated",
    "task:deleted",
    "task:completed",
    "task:failed",
    "group:registered",
    "group:unregistered",
    "system:ready",
    "system:shutdown",
]

EventHandler = Callable[[dict[str, Any]], Awaitable[None] | None]


@dataclass(frozen=True)
class EventRecord:
    event: str
    payload: dict[str, Any]
    timestamp: int  # epoch milliseconds


class EventBus:
    """Best-effort pub/sub. A failing handler can never fail the emitter."""

    def __init__(self, buffer_size: int = EVENT_BUFFER_SIZE) -> None:
        if buffer_size < 1:
            raise ValueError("buffer_size must be at least 1")
        self._handlers: dict[str, list[EventHandler]] = {}
        self._buffer: deque[EventRecord] = deque(maxlen=buffer_size)
        self._pending: set[asyncio.Task[Any]] = set()

    def emit(self, event: EventName | str, payload: dict[str, Any]) -> None:
        """Record the event and invoke every handler registered for it."""
        self._buffer.append(EventRecord(event=event, payload=dict(payload), timestamp=int(time.time() * 1000)))

        for handler in list(self._handlers.get(event, ())):
            try:
                result = handler(payload)
            except Exception:
                logger.exception("Event handler threw", event_name=event)
                continue
            if inspect.isawaitable(result):
                self._track(event, result)

    def _track(self, event: str, awaitable: Awaitable[Any]) -> None:
        try:
            task = asyncio.ensure_future(awaitable)
        except RuntimeError:
            # No running loop to drive the coroutine
            if inspect.iscoroutine(awaitable):
                awaitable.close()
            logger.error("Async event handler dropped: no running event loop", event_name=event)
            return

        self._pending.add(task)

        def _done(t: asyncio.Task[Any]) -> None:
            self._pending.discard(t)
            if t.cancelled():
                return
            exc = t.exception()
            if exc is not None:
                logger.error("Async event handler rejected", event_name=event, exc_info=exc)

        task.add_done_callback(_done)

    def on(self, event: EventName | str, handler: EventHandler) -> Callable[[], None]:
        """Subscribe to an event. Returns an unsubscribe function."""
        self._handlers.setdefault(event, []).append(handler)
        return lambda: self.off(event, handler)

    def once(self, event: EventName | str, handler: EventHandler) -> Callable[[], None]:
        """Subscribe to an event, firing at most once."""

        def wrapper(payload: dict[str, Any]) -> Awaitable[None] | None:
            self.off(event, wrapper)
            return handler(payload)

        return self.on(event, wrapper)

    def off(self, event: EventName | str, handler: EventHandler) -> None:
        handlers = self._handlers.get(event)
        if not handlers:
            return
        try:
            handlers.remove(handler)
        except ValueError:
            return
        if not handlers:
            del self._handlers[event]

    def get_buffer(self) -> list[EventRecord]:
        """Copy of the retained events, oldest first."""
        return list(self._buffer)

    @property
    def buffer_size(self) -> int:
        """Current number of events in the buffer."""
        return len(self._buffer)

    def listener_count(self, event: EventName | str) -> int:
        return len(self._handlers.get(event, ()))

    def remove_all_listeners(self, event: EventName | str | None = None) -> None:
        if event is None:
            self._handlers.clear()
        else:
            self._handlers.pop(event, None)

    def clear_buffer(self) -> None:
        self._buffer.clear()

    def destroy(self) -> None:
        """Remove all listeners and clear the buffer."""
        self._handlers.clear()
        self._buffer.clear()


def safe_emit(bus: EventBus | None, event: EventName | str, payload: dict[str, Any]) -> None:
    """Emit without letting a notification fault reach the persistence caller."""
    if bus is None:
        return
    try:
        bus.emit(event, payload)
    except Exception:
        logger.exception("Event emission failed", event_name=event)
