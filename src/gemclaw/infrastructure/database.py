"""SQLite database schema, migrations, and AppDatabase composition root."""

from __future__ import annotations

import sqlite3
from typing import TYPE_CHECKING

from gemclaw.infrastructure.config import STORE_DIR
from gemclaw.infrastructure.logger import logger

if TYPE_CHECKING:
    from gemclaw.groups.repository import GroupRepository
    from gemclaw.infrastructure.state_repo import StateRepository
    from gemclaw.scheduling.repository import TaskRepository
    from gemclaw.sessions.repository import SessionRepository


def create_schema(db: sqlite3.Connection) -> None:
    """Create all tables and indexes. Safe to call multiple times (IF NOT EXISTS)."""
    db.executescript("""
        CREATE TABLE IF NOT EXISTS scheduled_tasks (
            id TEXT PRIMARY KEY,
            group_folder TEXT NOT NULL,
            chat_jid TEXT NOT NULL DEFAULT '',
            prompt TEXT NOT NULL,
            schedule_type TEXT NOT NULL,
            schedule_value TEXT NOT NULL,
            context_mode TEXT DEFAULT 'isolated',
            next_run TEXT,
            last_run TEXT,
            last_result TEXT,
            status TEXT DEFAULT 'active',
            created_at TEXT NOT NULL
        );
        CREATE INDEX IF NOT EXISTS idx_next_run ON scheduled_tasks(next_run);
        CREATE INDEX IF NOT EXISTS idx_status ON scheduled_tasks(status);
        CREATE INDEX IF NOT EXISTS idx_tasks_group ON scheduled_tasks(group_folder);

        CREATE TABLE IF NOT EXISTS task_run_logs (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            task_id TEXT NOT NULL,
            run_at TEXT NOT NULL,
            duration_ms INTEGER NOT NULL,
            status TEXT NOT NULL,
            result TEXT,
            error TEXT,
            FOREIGN KEY (task_id) REFERENCES scheduled_tasks(id)
        );
        CREATE INDEX IF NOT EXISTS idx_task_run_logs ON task_run_logs(task_id, run_at);

        CREATE TABLE IF NOT EXISTS app_state (
            key TEXT PRIMARY KEY,
            value TEXT NOT NULL
        );
        CREATE TABLE IF NOT EXISTS registered_groups (
            jid TEXT PRIMARY KEY,
            name TEXT NOT NULL,
            folder TEXT NOT NULL UNIQUE,
            trigger_pattern TEXT NOT NULL,
            added_at TEXT NOT NULL,
            container_config TEXT,
            requires_trigger INTEGER DEFAULT 1,
            channel TEXT DEFAULT 'telegram'
        );
        CREATE TABLE IF NOT EXISTS sessions (
            group_folder TEXT PRIMARY KEY,
            session_id TEXT NOT NULL
        );
    """)

    # Run migrations (safe to call multiple times)
    _run_schema_migrations(db)


def _run_schema_migrations(db: sqlite3.Connection) -> None:
    """Run ALTER TABLE migrations. Each is wrapped in try/except for idempotency."""

    # Per-group execution settings
    for column, ddl in (
        ("timezone", "ALTER TABLE registered_groups ADD COLUMN timezone TEXT"),
        ("system_prompt", "ALTER TABLE registered_groups ADD COLUMN system_prompt TEXT"),
        ("enable_fast_path", "ALTER TABLE registered_groups ADD COLUMN enable_fast_path INTEGER DEFAULT 1"),
        ("enable_web_search", "ALTER TABLE registered_groups ADD COLUMN enable_web_search INTEGER DEFAULT 1"),
    ):
        try:
            db.execute(ddl)
            db.commit()
        except sqlite3.OperationalError:
            logger.debug("Column already present", table="registered_groups", column=column)

    # Legacy router_state -> app_state
    row = db.execute("SELECT name FROM sqlite_master WHERE type='table' AND name='router_state'").fetchone()
    if row:
        with db:
            db.execute("INSERT OR IGNORE INTO app_state (key, value) SELECT key, value FROM router_state")
            db.execute("DROP TABLE router_state")


class AppDatabase:
    """Composition root that initializes the DB and exposes repositories."""

    def __init__(self) -> None:
        self._db: sqlite3.Connection | None = None
        # Repositories are set after init
        self.task_repo: TaskRepository | None = None  # type: ignore[assignment]
        self.group_repo: GroupRepository | None = None  # type: ignore[assignment]
        self.state_repo: StateRepository | None = None  # type: ignore[assignment]
        self.session_repo: SessionRepository | None = None  # type: ignore[assignment]

    @property
    def db(self) -> sqlite3.Connection:
        assert self._db is not None, "Database not initialized. Call init() first."
        return self._db

    def init(self) -> None:
        """Open (or create) the database file at the standard location."""
        db_path = STORE_DIR / "gemclaw.db"
        db_path.parent.mkdir(parents=True, exist_ok=True)
        self._open(str(db_path))
        logger.info("Database opened", path=str(db_path))

    def _init_test(self) -> None:
        """For tests only. Creates a fresh in-memory database."""
        self._open(":memory:")

    def _open(self, target: str) -> None:
        self._db = sqlite3.connect(target)
        self._db.row_factory = sqlite3.Row
        self._db.execute("PRAGMA foreign_keys = ON")
        self._init_repos()

    def close(self) -> None:
        if self._db is not None:
            self._db.close()
            self._db = None

    def _init_repos(self) -> None:
        assert self._db is not None
        create_schema(self._db)

        # Import here to avoid circular imports
        from gemclaw.groups.repository import GroupRepository
        from gemclaw.infrastructure.state_repo import StateRepository
        from gemclaw.scheduling.repository import TaskRepository
        from gemclaw.sessions.repository import SessionRepository

        self.task_repo = TaskRepository(self._db)
        self.group_repo = GroupRepository(self._db)
        self.state_repo = StateRepository(self._db)
        self.session_repo = SessionRepository(self._db)
