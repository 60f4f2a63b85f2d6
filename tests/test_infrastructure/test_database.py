"""Tests for database initialization and schema."""

import sqlite3

from gemclaw.infrastructure.database import AppDatabase, create_schema


class TestAppDatabase:
    def test_init_creates_schema(self):
        db = AppDatabase()
        db._init_test()
        # Verify tables exist by querying them
        tables = db.db.execute(
            "SELECT name FROM sqlite_master WHERE type='table' ORDER BY name"
        ).fetchall()
        table_names = [row[0] for row in tables]
        assert "scheduled_tasks" in table_names
        assert "task_run_logs" in table_names
        assert "sessions" in table_names
        assert "registered_groups" in table_names
        assert "app_state" in table_names

    def test_repos_initialized(self):
        db = AppDatabase()
        db._init_test()
        assert db.task_repo is not None
        assert db.session_repo is not None
        assert db.group_repo is not None
        assert db.state_repo is not None

    def test_multiple_init_is_safe(self):
        db = AppDatabase()
        db._init_test()
        db._init_test()  # Should not raise

    def test_schema_is_idempotent(self):
        conn = sqlite3.connect(":memory:")
        create_schema(conn)
        create_schema(conn)

    def test_legacy_router_state_migrated(self):
        conn = sqlite3.connect(":memory:")
        conn.execute("CREATE TABLE router_state (key TEXT PRIMARY KEY, value TEXT NOT NULL)")
        conn.execute("INSERT INTO router_state VALUES ('last_timestamp', '123')")
        conn.commit()

        create_schema(conn)

        assert conn.execute("SELECT value FROM app_state WHERE key = 'last_timestamp'").fetchone()[0] == "123"
        assert conn.execute("SELECT name FROM sqlite_master WHERE name = 'router_state'").fetchone() is None

    def test_close(self):
        db = AppDatabase()
        db._init_test()
        db.close()
        db.close()  # Should not raise


class TestStateRepo:
    def test_set_and_get(self):
        db = AppDatabase()
        db._init_test()
        db.state_repo.set_state("key1", "value1")
        assert db.state_repo.get_state("key1") == "value1"

    def test_get_nonexistent(self):
        db = AppDatabase()
        db._init_test()
        assert db.state_repo.get_state("nonexistent") is None

    def test_upsert(self):
        db = AppDatabase()
        db._init_test()
        db.state_repo.set_state("key1", "old")
        db.state_repo.set_state("key1", "new")
        assert db.state_repo.get_state("key1") == "new"

    def test_delete(self):
        db = AppDatabase()
        db._init_test()
        db.state_repo.set_state("key1", "value1")
        db.state_repo.delete_state("key1")
        assert db.state_repo.get_state("key1") is None
