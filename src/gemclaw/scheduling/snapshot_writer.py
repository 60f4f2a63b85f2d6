"""Writes the tasks snapshot that containers read before a run."""

from __future__ import annotations

import json

from gemclaw.groups.paths import GroupPaths
from gemclaw.scheduling.types import ScheduledTask


class SnapshotWriter:
    """Writes JSON snapshot files for container-visible state."""

    def write_tasks(self, group_folder: str, is_main: bool, tasks: list[ScheduledTask]) -> None:
        """Write a filtered tasks snapshot. Only main sees every group's tasks."""
        ipc_dir = GroupPaths.ipc_dir(group_folder)
        ipc_dir.mkdir(parents=True, exist_ok=True)

        visible = tasks if is_main else [t for t in tasks if t.group_folder == group_folder]

        tasks_file = ipc_dir / "current_tasks.json"
        tasks_file.write_text(json.dumps([t.to_snapshot_dict() for t in visible], indent=2))
