"""Scheduled task CRUD, due-task queries, and run logging."""

from __future__ import annotations

import sqlite3
from datetime import timedelta

from gemclaw.scheduling.errors import PersistenceError, TaskNotFoundError
from gemclaw.scheduling.schedule import to_iso, utc_now
from gemclaw.scheduling.types import ScheduledTask, TaskRunLog, TaskRunLogDetail

_UPDATABLE_COLUMNS = frozenset({"prompt", "schedule_type", "schedule_value", "next_run", "status"})


class TaskRepository:
    def __init__(self, db: sqlite3.Connection) -> None:
        self._db = db

    def create_task(self, task: ScheduledTask) -> None:
        with self._db:
            self._db.execute(
                """INSERT INTO scheduled_tasks
                   (id, group_folder, chat_jid, prompt, schedule_type, schedule_value, context_mode, next_run, status, created_at)
                   VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)""",
                (
                    task.id, task.group_folder, task.chat_jid, task.prompt,
                    task.schedule_type, task.schedule_value, task.context_mode,
                    task.next_run, task.status, task.created_at,
                ),
            )

    def get_task_by_id(self, id: str) -> ScheduledTask | None:
        row = self._db.execute("SELECT * FROM scheduled_tasks WHERE id = ?", (id,)).fetchone()
        if not row:
            return None
        return self._row_to_task(row)

    def get_tasks_for_group(self, group_folder: str) -> list[ScheduledTask]:
        rows = self._db.execute(
            "SELECT * FROM scheduled_tasks WHERE group_folder = ? ORDER BY created_at DESC", (group_folder,)
        ).fetchall()
        return [self._row_to_task(row) for row in rows]

    def get_all_tasks(self) -> list[ScheduledTask]:
        rows = self._db.execute("SELECT * FROM scheduled_tasks ORDER BY created_at DESC").fetchall()
        return [self._row_to_task(row) for row in rows]

    def get_tasks_paginated(
        self, limit: int, offset: int, group_folder: str | None = None
    ) -> tuple[list[ScheduledTask], int]:
        if group_folder is None:
            rows = self._db.execute(
                "SELECT * FROM scheduled_tasks ORDER BY created_at DESC LIMIT ? OFFSET ?", (limit, offset)
            ).fetchall()
            total = self._db.execute("SELECT COUNT(*) FROM scheduled_tasks").fetchone()[0]
        else:
            rows = self._db.execute(
                "SELECT * FROM scheduled_tasks WHERE group_folder = ? ORDER BY created_at DESC LIMIT ? OFFSET ?",
                (group_folder, limit, offset),
            ).fetchall()
            total = self._db.execute(
                "SELECT COUNT(*) FROM scheduled_tasks WHERE group_folder = ?", (group_folder,)
            ).fetchone()[0]
        return [self._row_to_task(row) for row in rows], total

    def update_task(self, id: str, **updates: str | None) -> None:
        """Set the given columns. ``next_run=None`` is written through as NULL."""
        fields: list[str] = []
        values: list[str | None] = []
        for key, value in updates.items():
            if key not in _UPDATABLE_COLUMNS:
                raise ValueError(f"Invalid column: {key}")
            if value is None and key != "next_run":
                continue
            fields.append(f"{key} = ?")
            values.append(value)
        if not fields:
            return
        values.append(id)
        with self._db:
            self._db.execute(f"UPDATE scheduled_tasks SET {', '.join(fields)} WHERE id = ?", values)

    def delete_task(self, id: str) -> None:
        # Child rows first (FK constraint)
        with self._db:
            self._db.execute("DELETE FROM task_run_logs WHERE task_id = ?", (id,))
            self._db.execute("DELETE FROM scheduled_tasks WHERE id = ?", (id,))

    def delete_tasks_by_group(self, group_folder: str) -> int:
        """Delete every task (and its run logs) owned by a group. Returns the task count."""
        with self._db:
            self._db.execute(
                """DELETE FROM task_run_logs
                   WHERE task_id IN (SELECT id FROM scheduled_tasks WHERE group_folder = ?)""",
                (group_folder,),
            )
            result = self._db.execute("DELETE FROM scheduled_tasks WHERE group_folder = ?", (group_folder,))
        return result.rowcount

    def get_due_tasks(self, now: str | None = None) -> list[ScheduledTask]:
        now = now or to_iso(utc_now())
        rows = self._db.execute(
            """SELECT * FROM scheduled_tasks
               WHERE status = 'active' AND next_run IS NOT NULL AND next_run <= ?
               ORDER BY next_run""",
            (now,),
        ).fetchall()
        return [self._row_to_task(row) for row in rows]

    def update_task_after_run(self, id: str, next_run: str | None, last_result: str) -> None:
        with self._db:
            self._apply_run_update(id, next_run, last_result, to_iso(utc_now()), reschedule=True)

    def log_task_run(self, log: TaskRunLog) -> None:
        try:
            with self._db:
                self._insert_run_log(log)
        except sqlite3.Error as err:
            raise PersistenceError(f"Failed to log run: {err}", {"task_id": log.task_id}) from err

    def record_run(
        self,
        log: TaskRunLog,
        last_result: str,
        next_run: str | None,
        *,
        reschedule: bool = True,
    ) -> None:
        """Append the run log and update the task in a single transaction.

        With ``reschedule=False`` only last_run/last_result change; next_run and
        status are left as they are.
        """
        try:
            with self._db:
                self._apply_run_update(log.task_id, next_run, last_result, log.run_at, reschedule=reschedule)
                self._insert_run_log(log)
        except sqlite3.Error as err:
            raise PersistenceError(f"Failed to record run: {err}", {"task_id": log.task_id}) from err

    def get_task_run_logs(self, task_id: str, limit: int = 10) -> list[TaskRunLog]:
        rows = self._db.execute(
            """SELECT task_id, run_at, duration_ms, status, result, error
               FROM task_run_logs
               WHERE task_id = ?
               ORDER BY run_at DESC, id DESC
               LIMIT ?""",
            (task_id, limit),
        ).fetchall()
        return [TaskRunLog(**dict(row)) for row in rows]

    def get_task_run_logs_with_details(self, days: int, group_folder: str | None = None) -> list[TaskRunLogDetail]:
        cutoff = to_iso(utc_now() - timedelta(days=days))
        query = """SELECT trl.task_id, trl.run_at, trl.duration_ms, trl.status, trl.result, trl.error,
                          st.prompt, st.group_folder, st.schedule_type
                   FROM task_run_logs trl
                   JOIN scheduled_tasks st ON trl.task_id = st.id
                   WHERE trl.run_at >= ?"""
        params: list[str] = [cutoff]
        if group_folder is not None:
            query += " AND st.group_folder = ?"
            params.append(group_folder)
        query += " ORDER BY trl.run_at DESC"
        rows = self._db.execute(query, params).fetchall()
        return [TaskRunLogDetail(**dict(row)) for row in rows]

    def get_active_task_counts(self) -> dict[str, int]:
        rows = self._db.execute(
            """SELECT group_folder, COUNT(*) AS cnt
               FROM scheduled_tasks WHERE status = 'active'
               GROUP BY group_folder"""
        ).fetchall()
        return {row["group_folder"]: row["cnt"] for row in rows}

    def _apply_run_update(
        self, id: str, next_run: str | None, last_result: str, last_run: str, *, reschedule: bool
    ) -> None:
        if reschedule:
            result = self._db.execute(
                """UPDATE scheduled_tasks
                   SET next_run = ?, last_run = ?, last_result = ?,
                       status = CASE WHEN ? IS NULL THEN 'completed' ELSE status END
                   WHERE id = ?""",
                (next_run, last_run, last_result, next_run, id),
            )
        else:
            result = self._db.execute(
                "UPDATE scheduled_tasks SET last_run = ?, last_result = ? WHERE id = ?",
                (last_run, last_result, id),
            )
        if result.rowcount == 0:
            raise TaskNotFoundError(id)

    def _insert_run_log(self, log: TaskRunLog) -> None:
        self._db.execute(
            """INSERT INTO task_run_logs (task_id, run_at, duration_ms, status, result, error)
               VALUES (?, ?, ?, ?, ?, ?)""",
            (log.task_id, log.run_at, log.duration_ms, log.status, log.result, log.error),
        )

    def _row_to_task(self, row: sqlite3.Row) -> ScheduledTask:
        return ScheduledTask(
            id=row["id"],
            group_folder=row["group_folder"],
            chat_jid=row["chat_jid"] or "",
            prompt=row["prompt"],
            schedule_type=row["schedule_type"],
            schedule_value=row["schedule_value"],
            context_mode=row["context_mode"] or "isolated",
            next_run=row["next_run"],
            last_run=row["last_run"],
            last_result=row["last_result"],
            status=row["status"],
            created_at=row["created_at"],
        )
