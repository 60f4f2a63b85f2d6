"""Scheduling domain types."""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel

ScheduleType = Literal["cron", "interval", "once"]
ContextMode = Literal["group", "isolated"]
TaskStatus = Literal["active", "paused", "completed"]
RunStatus = Literal["success", "error"]


class ScheduledTask(BaseModel):
    id: str
    group_folder: str
    chat_jid: str = ""  # Empty: resolved from the group registry at run time
    prompt: str
    schedule_type: ScheduleType
    schedule_value: str
    context_mode: ContextMode = "isolated"
    next_run: str | None = None
    last_run: str | None = None
    last_result: str | None = None
    status: TaskStatus = "active"
    created_at: str = ""

    def to_snapshot_dict(self) -> dict[str, str | None]:
        """Shape written to the per-group tasks snapshot for containers."""
        return {
            "id": self.id,
            "groupFolder": self.group_folder,
            "prompt": self.prompt,
            "schedule_type": self.schedule_type,
            "schedule_value": self.schedule_value,
            "status": self.status,
            "next_run": self.next_run,
        }


class TaskRunLog(BaseModel):
    task_id: str
    run_at: str
    duration_ms: int
    status: RunStatus
    result: str | None = None
    error: str | None = None


class TaskRunLogDetail(TaskRunLog):
    """Run log joined with its task, for activity views."""

    prompt: str
    group_folder: str
    schedule_type: ScheduleType


class RunOutcome(BaseModel):
    """What one execution attempt produced, before it is persisted."""

    result: str | None = None
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None
