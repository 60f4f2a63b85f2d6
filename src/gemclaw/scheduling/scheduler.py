"""Polls for due tasks and dispatches them through the limiter and group locks."""

from __future__ import annotations

import asyncio
import time
from dataclasses import dataclass, field
from datetime import datetime
from typing import Awaitable, Callable
from zoneinfo import ZoneInfo

from gemclaw.execution.concurrency_limiter import ConcurrencyLimiter
from gemclaw.execution.group_lock import GroupLockManager
from gemclaw.execution.router import ExecutionRouter
from gemclaw.execution.types import ExecutionRequest
from gemclaw.groups.paths import GroupPaths
from gemclaw.groups.types import RegisteredGroup, group_timezone
from gemclaw.infrastructure.config import (
    MAIN_GROUP_FOLDER,
    SCHEDULER_CONCURRENCY,
    SCHEDULER_POLL_INTERVAL,
    recommended_scheduler_concurrency,
)
from gemclaw.infrastructure.logger import logger
from gemclaw.infrastructure.poll_loop import PollLoop, start_poll_loop
from gemclaw.scheduling.recorder import RunRecorder
from gemclaw.scheduling.schedule import utc_now
from gemclaw.scheduling.snapshot_writer import SnapshotWriter
from gemclaw.scheduling.task_service import TaskManager
from gemclaw.scheduling.types import RunOutcome, ScheduledTask

AUTOMATION_MARKER = "[This is an automated scheduled task. Respond with text directly.]"
TASK_COMPLETE_SENTINEL = "@task-complete:"


@dataclass
class SchedulerContext:
    """Process-local coordination state, built once and injected."""

    limiter: ConcurrencyLimiter
    locks: GroupLockManager = field(default_factory=GroupLockManager)

    @classmethod
    def create(cls, max_concurrent: int = SCHEDULER_CONCURRENCY) -> SchedulerContext:
        return cls(limiter=ConcurrencyLimiter(max_concurrent))


class SchedulerDependencies:
    def __init__(
        self,
        registered_groups: Callable[[], dict[str, RegisteredGroup]],
        send_message: Callable[[str, str], Awaitable[None]],
        task_manager: TaskManager,
        recorder: RunRecorder,
        router: ExecutionRouter,
        context: SchedulerContext,
        snapshot_writer: SnapshotWriter | None = None,
        get_sessions: Callable[[], dict[str, str]] | None = None,
        is_paused: Callable[[], bool] | None = None,
        poll_interval: float = SCHEDULER_POLL_INTERVAL,
    ) -> None:
        self.registered_groups = registered_groups
        self.send_message = send_message
        self.task_manager = task_manager
        self.recorder = recorder
        self.router = router
        self.context = context
        self.snapshot_writer = snapshot_writer or SnapshotWriter()
        self.get_sessions = get_sessions or dict
        self.is_paused = is_paused or (lambda: False)
        self.poll_interval = poll_interval


def _find_group(groups: dict[str, RegisteredGroup], folder: str) -> tuple[str, RegisteredGroup] | None:
    for jid, group in groups.items():
        if group.folder == folder:
            return jid, group
    return None


def enrich_prompt(prompt: str, tz: str, now: datetime | None = None) -> str:
    """Prefix the stored prompt with the current time and the automation marker."""
    local = (now or utc_now()).astimezone(ZoneInfo(tz))
    time_str = local.strftime("%A, %B %d, %Y %H:%M:%S %Z")
    return f"[Current time: {time_str}]\n{AUTOMATION_MARKER}\n\n{prompt}"


def _elapsed_ms(start: float) -> int:
    return int((time.monotonic() - start) * 1000)


async def run_task(
    task: ScheduledTask,
    deps: SchedulerDependencies,
    cached_tasks: list[ScheduledTask] | None = None,
) -> None:
    """Run a single scheduled task and record its outcome."""
    run_at = utc_now()
    start = time.monotonic()
    GroupPaths.group_dir(task.group_folder).mkdir(parents=True, exist_ok=True)

    logger.info("Running scheduled task", task_id=task.id, group=task.group_folder)

    found = _find_group(deps.registered_groups(), task.group_folder)
    if not found:
        error = f"Group not found: {task.group_folder}"
        logger.error("Group not found for task", task_id=task.id, group_folder=task.group_folder)
        deps.recorder.record_missing_group(task, error, run_at=run_at, duration_ms=_elapsed_ms(start))
        return

    jid, group = found
    chat_jid = task.chat_jid or jid
    is_main = task.group_folder == MAIN_GROUP_FOLDER
    tz = group_timezone(group)

    # For group context mode, resume the group's current session
    session_id = deps.get_sessions().get(task.group_folder) if task.context_mode == "group" else None

    result: str | None = None
    error: str | None = None

    try:
        # Update tasks snapshot for the container to read (filtered by group)
        tasks = cached_tasks if cached_tasks is not None else deps.task_manager.get_all()
        deps.snapshot_writer.write_tasks(task.group_folder, is_main, tasks)

        request = ExecutionRequest(
            group=group,
            prompt=enrich_prompt(task.prompt, tz),
            chat_jid=chat_jid,
            is_main=is_main,
            session_id=session_id,
            system_prompt=GroupPaths.read_instructions(task.group_folder) or group.system_prompt,
            enable_web_search=group.enable_web_search,
            requires_isolation=session_id is not None,
        )
        strategy = deps.router.select(request)
        logger.info("Scheduled task using strategy", task_id=task.id, group=task.group_folder, strategy=strategy.name)

        output = await strategy.execute(request)

        if output.status == "error":
            error = output.error or "Unknown error"
        else:
            result = output.result
            await _deliver_result(task, chat_jid, result, deps)

        logger.info("Task run finished", task_id=task.id, ok=error is None, duration_ms=_elapsed_ms(start))
    except Exception as err:
        error = str(err) or type(err).__name__
        logger.error("Task failed", task_id=task.id, error=error)

    deps.recorder.record(
        task,
        RunOutcome(result=result, error=error),
        run_at=run_at,
        duration_ms=_elapsed_ms(start),
        timezone=tz,
    )


async def _deliver_result(task: ScheduledTask, chat_jid: str, result: str | None, deps: SchedulerDependencies) -> None:
    """Best-effort delivery. Failure never changes the run's recorded status."""
    if not chat_jid:
        return
    if not result:
        # Don't send a bare sentinel to the user
        logger.warning("Task produced no text output", task_id=task.id)
        return
    try:
        # Sentinel lets plugins detect completion while users see the content
        await deps.send_message(chat_jid, f"{result}\n\n{TASK_COMPLETE_SENTINEL}{task.id}")
    except Exception as err:
        logger.warning("Failed to send task result", task_id=task.id, chat_jid=chat_jid, error=str(err))


def _still_active(task: ScheduledTask, deps: SchedulerDependencies) -> ScheduledTask | None:
    current = deps.task_manager.get_by_id(task.id)
    if current is None or current.status != "active":
        logger.debug("Skipping task no longer active", task_id=task.id)
        return None
    return current


async def run_scheduler_tick(deps: SchedulerDependencies) -> None:
    """One poll-and-dispatch pass. Per-task failures never escape."""
    if deps.is_paused():
        logger.debug("Scheduler skipping: maintenance mode active")
        return

    due_tasks = deps.task_manager.get_due_tasks()
    if not due_tasks:
        return
    logger.info("Found due tasks", count=len(due_tasks))

    # One snapshot per tick, shared by every run
    all_tasks = deps.task_manager.get_all()

    valid_tasks = [current for task in due_tasks if (current := _still_active(task, deps)) is not None]

    limiter = deps.context.limiter
    locks = deps.context.locks

    def dispatch(task: ScheduledTask) -> Awaitable[None]:
        return limiter.run(lambda: locks.with_lock(task.group_folder, lambda: run_task(task, deps, all_tasks)))

    outcomes = await asyncio.gather(*(dispatch(t) for t in valid_tasks), return_exceptions=True)

    for task, outcome in zip(valid_tasks, outcomes):
        if isinstance(outcome, BaseException):
            logger.error(
                "Scheduled task pipeline failed",
                task_id=task.id,
                group=task.group_folder,
                error=str(outcome),
                exc_info=outcome,
            )


def start_scheduler_loop(deps: SchedulerDependencies) -> PollLoop:
    """Start the scheduler polling loop."""
    logger.info(
        "Scheduler started",
        concurrency=deps.context.limiter.max_concurrent,
        recommended=recommended_scheduler_concurrency(),
    )
    return start_poll_loop("Scheduler", deps.poll_interval, lambda: run_scheduler_tick(deps))
