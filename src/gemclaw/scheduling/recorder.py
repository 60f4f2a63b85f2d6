"""Persists run outcomes and advances or ends schedules."""

from __future__ import annotations

from datetime import datetime

from gemclaw.infrastructure.config import TASK_RESULT_SUMMARY_LENGTH, TIMEZONE
from gemclaw.infrastructure.event_bus import EventBus, safe_emit
from gemclaw.infrastructure.logger import logger
from gemclaw.scheduling.errors import ScheduleError
from gemclaw.scheduling.repository import TaskRepository
from gemclaw.scheduling.schedule import compute_next_run, to_iso
from gemclaw.scheduling.types import RunOutcome, ScheduledTask, TaskRunLog


def summarize(outcome: RunOutcome) -> str:
    if outcome.error:
        return f"Error: {outcome.error}"
    if outcome.result:
        return outcome.result[:TASK_RESULT_SUMMARY_LENGTH]
    return "Completed"


class RunRecorder:
    """Writes the run log and the task update as one unit per run."""

    def __init__(self, task_repo: TaskRepository, events: EventBus | None = None) -> None:
        self._task_repo = task_repo
        self._events = events

    def record(
        self,
        task: ScheduledTask,
        outcome: RunOutcome,
        *,
        run_at: datetime,
        duration_ms: int,
        timezone: str = TIMEZONE,
    ) -> TaskRunLog:
        log = TaskRunLog(
            task_id=task.id,
            run_at=to_iso(run_at),
            duration_ms=duration_ms,
            status="success" if outcome.ok else "error",
            result=outcome.result,
            error=outcome.error,
        )

        reschedule = True
        next_run: str | None = None
        try:
            next_run = compute_next_run(task.schedule_type, task.schedule_value, run_at=run_at, tz=timezone)
        except ScheduleError as err:
            reschedule = False
            logger.error(
                "Invalid schedule, task left as-is",
                task_id=task.id,
                schedule_type=task.schedule_type,
                schedule_value=task.schedule_value,
                error=str(err),
            )

        self._task_repo.record_run(log, summarize(outcome), next_run, reschedule=reschedule)

        if reschedule and next_run is None:
            logger.info("Task completed its schedule", task_id=task.id)

        if outcome.ok:
            safe_emit(self._events, "task:completed", {
                "taskId": task.id,
                "groupFolder": task.group_folder,
                "result": outcome.result or "",
            })
        else:
            safe_emit(self._events, "task:failed", {
                "taskId": task.id,
                "groupFolder": task.group_folder,
                "error": outcome.error or "",
            })
        return log

    def record_missing_group(self, task: ScheduledTask, error: str, *, run_at: datetime, duration_ms: int) -> TaskRunLog:
        """Append an error log only. The task row (and its next_run) is not touched."""
        log = TaskRunLog(
            task_id=task.id,
            run_at=to_iso(run_at),
            duration_ms=duration_ms,
            status="error",
            result=None,
            error=error,
        )
        self._task_repo.log_task_run(log)
        safe_emit(self._events, "task:failed", {"taskId": task.id, "groupFolder": task.group_folder, "error": error})
        return log
