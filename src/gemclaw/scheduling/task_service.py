"""Task manager — centralized task lifecycle."""

from __future__ import annotations

import random
import re
import string
import time
from typing import Callable

from gemclaw.infrastructure.config import TIMEZONE
from gemclaw.infrastructure.event_bus import EventBus, safe_emit
from gemclaw.infrastructure.logger import logger
from gemclaw.scheduling.errors import ConfigurationError, TaskNotFoundError
from gemclaw.scheduling.repository import TaskRepository
from gemclaw.scheduling.schedule import compute_initial_run, to_iso, utc_now
from gemclaw.scheduling.types import ScheduledTask, TaskRunLog, TaskRunLogDetail, TaskStatus

_GROUP_FOLDER_RE = re.compile(r"^[A-Za-z0-9_-]+$")
_USER_STATUSES = ("active", "paused")


class TaskManager:
    def __init__(
        self,
        task_repo: TaskRepository,
        events: EventBus | None = None,
        timezone_for: Callable[[str], str] | None = None,
    ) -> None:
        self._task_repo = task_repo
        self._events = events
        # Maps a group folder to the timezone its cron schedules run in
        self._timezone_for = timezone_for or (lambda _folder: TIMEZONE)

    # --- CRUD ---

    def create(
        self,
        group_folder: str,
        chat_jid: str,
        prompt: str,
        schedule_type: str,
        schedule_value: str,
        context_mode: str = "isolated",
        timezone: str | None = None,
    ) -> str:
        if not _GROUP_FOLDER_RE.match(group_folder):
            raise ConfigurationError(f"Invalid group folder: {group_folder}", {"group_folder": group_folder})
        if context_mode not in ("group", "isolated"):
            context_mode = "isolated"

        next_run = compute_initial_run(schedule_type, schedule_value, tz=timezone or self._timezone_for(group_folder))
        rand = "".join(random.choices(string.ascii_lowercase + string.digits, k=8))
        task_id = f"task-{int(time.time())}-{rand}"

        task = ScheduledTask(
            id=task_id,
            group_folder=group_folder,
            chat_jid=chat_jid,
            prompt=prompt,
            schedule_type=schedule_type,  # type: ignore[arg-type]
            schedule_value=schedule_value,
            context_mode=context_mode,  # type: ignore[arg-type]
            next_run=next_run,
            status="active",
            created_at=to_iso(utc_now()),
        )
        self._task_repo.create_task(task)
        logger.info("Task created", task_id=task_id, group=group_folder, schedule_type=schedule_type, next_run=next_run)
        safe_emit(self._events, "task:created", {"taskId": task_id, "groupFolder": group_folder})
        return task_id

    def get_by_id(self, id: str) -> ScheduledTask | None:
        return self._task_repo.get_task_by_id(id)

    def get_all(self) -> list[ScheduledTask]:
        return self._task_repo.get_all_tasks()

    def get_for_group(self, group_folder: str) -> list[ScheduledTask]:
        return self._task_repo.get_tasks_for_group(group_folder)

    def get_paginated(
        self, limit: int = 50, offset: int = 0, group_folder: str | None = None
    ) -> tuple[list[ScheduledTask], int]:
        return self._task_repo.get_tasks_paginated(limit, offset, group_folder)

    def update(
        self,
        id: str,
        *,
        prompt: str | None = None,
        schedule_type: str | None = None,
        schedule_value: str | None = None,
        status: TaskStatus | None = None,
        timezone: str | None = None,
    ) -> ScheduledTask:
        """Edit a task. A changed schedule recomputes next_run from now.

        A completed task becomes active again only through a new schedule.
        """
        task = self._require(id)
        reschedule = schedule_type is not None or schedule_value is not None
        updates: dict[str, str | None] = {}
        if prompt is not None:
            updates["prompt"] = prompt
        if schedule_type is not None:
            updates["schedule_type"] = schedule_type
        if schedule_value is not None:
            updates["schedule_value"] = schedule_value
        if status is not None:
            self._check_user_status(task, status, reschedule=reschedule)
            updates["status"] = status

        if reschedule:
            updates["next_run"] = compute_initial_run(
                schedule_type or task.schedule_type,
                schedule_value or task.schedule_value,
                tz=timezone or self._timezone_for(task.group_folder),
            )
            if task.status == "completed" and status is None:
                updates["status"] = "active"

        self._task_repo.update_task(id, **updates)
        safe_emit(self._events, "task:updated", {"taskId": id, "groupFolder": task.group_folder, "changes": sorted(updates)})
        return self._require(id)

    # --- Lifecycle ---

    def set_status(self, id: str, status: TaskStatus) -> None:
        """Switch a task between active and paused."""
        task = self._require(id)
        self._check_user_status(task, status)
        self._task_repo.update_task(id, status=status)
        logger.info("Task status changed", task_id=id, status=status)
        safe_emit(self._events, "task:updated", {"taskId": id, "groupFolder": task.group_folder, "changes": ["status"]})

    def pause(self, id: str) -> None:
        self.set_status(id, "paused")

    def resume(self, id: str) -> None:
        self.set_status(id, "active")

    def cancel(self, id: str) -> None:
        task = self._require(id)
        self._task_repo.delete_task(id)
        logger.info("Task deleted", task_id=id, group=task.group_folder)
        safe_emit(self._events, "task:deleted", {"taskId": id, "groupFolder": task.group_folder})

    def delete_for_group(self, group_folder: str) -> int:
        count = self._task_repo.delete_tasks_by_group(group_folder)
        if count:
            logger.info("Deleted tasks for group", group=group_folder, count=count)
        return count

    # --- Scheduling ---

    def get_due_tasks(self) -> list[ScheduledTask]:
        return self._task_repo.get_due_tasks()

    # --- Run history ---

    def get_run_logs(self, id: str, limit: int = 10) -> list[TaskRunLog]:
        return self._task_repo.get_task_run_logs(id, limit)

    def get_activity(self, days: int = 7, group_folder: str | None = None) -> list[TaskRunLogDetail]:
        return self._task_repo.get_task_run_logs_with_details(days, group_folder)

    # --- Internal ---

    def _check_user_status(self, task: ScheduledTask, status: str, reschedule: bool = False) -> None:
        if status not in _USER_STATUSES:
            raise ConfigurationError(
                f"Status can only be set to active or paused: {status}", {"task_id": task.id, "status": status}
            )
        if task.status == "completed" and not reschedule:
            raise ConfigurationError(
                f"Task {task.id} has completed; give it a new schedule to run again", {"task_id": task.id}
            )

    def _require(self, id: str) -> ScheduledTask:
        task = self._task_repo.get_task_by_id(id)
        if not task:
            raise TaskNotFoundError(id)
        return task
