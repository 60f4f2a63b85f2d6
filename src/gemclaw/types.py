"""Barrel re-export of all domain types."""

from gemclaw.execution.types import ExecutionRequest, ExecutionResult, ExecutionStrategy
from gemclaw.groups.types import ContainerConfig, RegisteredGroup
from gemclaw.infrastructure.event_bus import EventName, EventRecord
from gemclaw.messaging.types import Channel
from gemclaw.scheduling.types import (
    ContextMode,
    RunOutcome,
    RunStatus,
    ScheduledTask,
    ScheduleType,
    TaskRunLog,
    TaskRunLogDetail,
    TaskStatus,
)

__all__ = [
    "Channel",
    "ContainerConfig",
    "ContextMode",
    "EventName",
    "EventRecord",
    "ExecutionRequest",
    "ExecutionResult",
    "ExecutionStrategy",
    "RegisteredGroup",
    "RunOutcome",
    "RunStatus",
    "ScheduleType",
    "ScheduledTask",
    "TaskRunLog",
    "TaskRunLogDetail",
    "TaskStatus",
]
