"""Registered group persistence."""

from __future__ import annotations

import json
import sqlite3

from gemclaw.groups.types import ContainerConfig, RegisteredGroup


def _safe_parse(raw: str) -> dict | None:
    try:
        return json.loads(raw)
    except (json.JSONDecodeError, TypeError):
        return None


class GroupRepository:
    def __init__(self, db: sqlite3.Connection) -> None:
        self._db = db

    def get_registered_group(self, jid: str) -> RegisteredGroup | None:
        row = self._db.execute("SELECT * FROM registered_groups WHERE jid = ?", (jid,)).fetchone()
        if not row:
            return None
        return self._row_to_group(row)

    def set_registered_group(self, jid: str, group: RegisteredGroup | dict) -> None:
        if isinstance(group, dict):
            # Accept camelCase dicts as sent by the dashboard API
            group = RegisteredGroup(
                name=group.get("name", ""),
                folder=group.get("folder", ""),
                trigger=group.get("trigger", ""),
                added_at=group.get("addedAt") or group.get("added_at", ""),
                channel=group.get("channel", "telegram"),
                container_config=ContainerConfig(**group["containerConfig"]) if group.get("containerConfig") else None,
                requires_trigger=group.get("requiresTrigger", True),
                timezone=group.get("timezone"),
                system_prompt=group.get("systemPrompt"),
                enable_fast_path=group.get("enableFastPath", True),
                enable_web_search=group.get("enableWebSearch", True),
            )

        self._db.execute(
            """INSERT OR REPLACE INTO registered_groups
               (jid, name, folder, trigger_pattern, added_at, container_config, requires_trigger, channel,
                timezone, system_prompt, enable_fast_path, enable_web_search)
               VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)""",
            (
                jid,
                group.name,
                group.folder,
                group.trigger,
                group.added_at,
                group.container_config.model_dump_json() if group.container_config else None,
                1 if group.requires_trigger is None or group.requires_trigger else 0,
                group.channel or "telegram",
                group.timezone,
                group.system_prompt,
                1 if group.enable_fast_path else 0,
                1 if group.enable_web_search else 0,
            ),
        )
        self._db.commit()

    def delete_registered_group(self, jid: str) -> bool:
        result = self._db.execute("DELETE FROM registered_groups WHERE jid = ?", (jid,))
        self._db.commit()
        return result.rowcount > 0

    def get_all_registered_groups(self) -> dict[str, RegisteredGroup]:
        rows = self._db.execute("SELECT * FROM registered_groups").fetchall()
        return {row["jid"]: self._row_to_group(row) for row in rows}

    def _row_to_group(self, row: sqlite3.Row) -> RegisteredGroup:
        container_config = None
        if row["container_config"]:
            parsed = _safe_parse(row["container_config"])
            if parsed:
                container_config = ContainerConfig(**parsed)

        requires_trigger: bool | None = None
        rt_val = row["requires_trigger"]
        if rt_val is not None:
            requires_trigger = rt_val == 1

        return RegisteredGroup(
            name=row["name"],
            folder=row["folder"],
            trigger=row["trigger_pattern"],
            added_at=row["added_at"],
            channel=row["channel"] or "telegram",
            container_config=container_config,
            requires_trigger=requires_trigger,
            timezone=row["timezone"],
            system_prompt=row["system_prompt"],
            enable_fast_path=row["enable_fast_path"] != 0,
            enable_web_search=row["enable_web_search"] != 0,
        )
