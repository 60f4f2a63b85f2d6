"""Orchestrator class — composes services, wires subsystems."""

from __future__ import annotations

from gemclaw.execution.container_runner import ContainerRunner
from gemclaw.execution.fast_path import FastPathStrategy, ModelClient
from gemclaw.execution.router import ContainerStrategy, ExecutionRouter
from gemclaw.groups.paths import GroupPaths
from gemclaw.groups.types import RegisteredGroup, group_timezone
from gemclaw.infrastructure.config import SCHEDULER_CONCURRENCY, SCHEDULER_POLL_INTERVAL
from gemclaw.infrastructure.database import AppDatabase
from gemclaw.infrastructure.event_bus import EventBus, safe_emit
from gemclaw.infrastructure.logger import logger
from gemclaw.infrastructure.maintenance import MaintenanceMode
from gemclaw.infrastructure.poll_loop import PollLoop
from gemclaw.messaging.channel_registry import ChannelRegistry
from gemclaw.messaging.types import Channel
from gemclaw.scheduling.recorder import RunRecorder
from gemclaw.scheduling.scheduler import SchedulerContext, SchedulerDependencies, start_scheduler_loop
from gemclaw.scheduling.snapshot_writer import SnapshotWriter
from gemclaw.scheduling.task_service import TaskManager
from gemclaw.sessions.manager import SessionManager


class Orchestrator:
    """Composes all services and manages the application lifecycle."""

    def __init__(
        self,
        db: AppDatabase | None = None,
        *,
        model_client: ModelClient | None = None,
        channels: list[Channel] | None = None,
        container_runner: ContainerRunner | None = None,
        concurrency: int = SCHEDULER_CONCURRENCY,
        poll_interval: float = SCHEDULER_POLL_INTERVAL,
    ) -> None:
        self._db = db or AppDatabase()
        self._model_client = model_client
        self._container_runner = container_runner
        self._concurrency = concurrency
        self._poll_interval = poll_interval
        self._channel_registry = ChannelRegistry()
        for channel in channels or []:
            self._channel_registry.register(channel)
        self.events = EventBus()
        self._registered_groups: dict[str, RegisteredGroup] = {}
        self._scheduler_handle: PollLoop | None = None
        self._running = False
        self.task_manager: TaskManager | None = None
        self.maintenance: MaintenanceMode | None = None
        self.sessions: SessionManager | None = None

    @property
    def running(self) -> bool:
        return self._running

    @property
    def registered_groups(self) -> dict[str, RegisteredGroup]:
        return dict(self._registered_groups)

    async def start(self) -> None:
        """Initialize all services and start the scheduler."""
        logger.info("Starting gemclaw...")

        # Tests hand in an already-opened in-memory database
        if self._db.task_repo is None:
            self._db.init()

        # Load registered groups
        self._registered_groups = self._db.group_repo.get_all_registered_groups()
        logger.info("Loaded registered groups", count=len(self._registered_groups))

        self.sessions = SessionManager(self._db.session_repo)
        self.sessions.load_from_db()

        self.maintenance = MaintenanceMode(self._db.state_repo)
        self.task_manager = TaskManager(self._db.task_repo, self.events, timezone_for=self._timezone_for)

        runner = self._container_runner or ContainerRunner()
        fast_path = FastPathStrategy(self._model_client) if self._model_client is not None else None
        router = ExecutionRouter(ContainerStrategy(runner), fast_path)

        await self._channel_registry.connect_all()

        scheduler_deps = SchedulerDependencies(
            registered_groups=lambda: self._registered_groups,
            get_sessions=self.sessions.get_all,
            send_message=self.send_message,
            task_manager=self.task_manager,
            snapshot_writer=SnapshotWriter(),
            recorder=RunRecorder(self._db.task_repo, self.events),
            router=router,
            context=SchedulerContext.create(self._concurrency),
            is_paused=self.maintenance.is_active,
            poll_interval=self._poll_interval,
        )
        self._scheduler_handle = start_scheduler_loop(scheduler_deps)

        self._running = True
        safe_emit(self.events, "system:ready", {})
        logger.info("gemclaw started successfully", fast_path=fast_path is not None)

    def _timezone_for(self, folder: str) -> str:
        group = next((g for g in self._registered_groups.values() if g.folder == folder), None)
        return group_timezone(group)

    async def send_message(self, jid: str, text: str) -> None:
        await self._channel_registry.send(jid, text)

    def register_group(self, jid: str, group: RegisteredGroup) -> None:
        self._registered_groups[jid] = group
        self._db.group_repo.set_registered_group(jid, group)
        # Ensure group directory exists
        GroupPaths.group_dir(group.folder).mkdir(parents=True, exist_ok=True)
        safe_emit(self.events, "group:registered", {"jid": jid, "folder": group.folder, "name": group.name})
        logger.info("Group registered", jid=jid, folder=group.folder)

    def unregister_group(self, jid: str) -> bool:
        group = self._registered_groups.pop(jid, None) or self._db.group_repo.get_registered_group(jid)
        if group is None:
            return False

        task_manager = self.task_manager or TaskManager(self._db.task_repo, self.events, timezone_for=self._timezone_for)
        removed = task_manager.delete_for_group(group.folder)
        self._db.group_repo.delete_registered_group(jid)
        if self.sessions is not None:
            self.sessions.delete(group.folder)

        safe_emit(self.events, "group:unregistered", {"jid": jid, "folder": group.folder})
        logger.info("Group unregistered", jid=jid, folder=group.folder, tasks_removed=removed)
        return True

    def set_maintenance(self, active: bool) -> None:
        if self.maintenance is None:
            self.maintenance = MaintenanceMode(self._db.state_repo)
        if active:
            self.maintenance.enable()
        else:
            self.maintenance.disable()

    async def shutdown(self) -> None:
        """Gracefully shut down all services."""
        logger.info("Shutting down gemclaw...")
        self._running = False

        if self._scheduler_handle:
            self._scheduler_handle.stop()
            # In-flight runs finish and record their outcome
            await self._scheduler_handle.join()
            self._scheduler_handle = None

        safe_emit(self.events, "system:shutdown", {})
        await self._channel_registry.disconnect_all()

        logger.info("gemclaw shut down complete")
