"""Scheduler error taxonomy."""

from __future__ import annotations

from typing import Any


class SchedulerError(Exception):
    """Base error carrying structured details for logging."""

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        super().__init__(message)
        self.details = details or {}


class ConfigurationError(SchedulerError):
    """Group missing or task misconfigured. Waiting will not fix it."""


class ScheduleError(ConfigurationError, ValueError):
    """schedule_value cannot be interpreted for its schedule_type."""


class ExecutionError(SchedulerError):
    """The selected execution strategy failed."""


class DeliveryError(SchedulerError):
    """A result could not be sent to its destination."""


class PersistenceError(SchedulerError):
    """A task store operation failed."""


class TaskNotFoundError(PersistenceError, LookupError):
    def __init__(self, task_id: str) -> None:
        super().__init__(f"Task not found: {task_id}", {"task_id": task_id})
        self.task_id = task_id
