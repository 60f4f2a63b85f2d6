"""Tests for the run recorder."""

from datetime import datetime, timezone

import pytest

from gemclaw.infrastructure.database import AppDatabase
from gemclaw.infrastructure.event_bus import EventBus
from gemclaw.scheduling.recorder import RunRecorder, summarize
from gemclaw.scheduling.types import RunOutcome, ScheduledTask

RUN_AT = datetime(2026, 10, 19, 13, 0, 0, tzinfo=timezone.utc)


@pytest.fixture
def db():
    app_db = AppDatabase()
    app_db._init_test()
    return app_db


@pytest.fixture
def events():
    return EventBus()


@pytest.fixture
def recorder(db, events):
    return RunRecorder(db.task_repo, events)


def _add(db, schedule_type="interval", schedule_value="3600000", next_run="2026-10-19T13:00:00.000+00:00") -> ScheduledTask:
    task = ScheduledTask(
        id="task-1",
        group_folder="main",
        prompt="Report",
        schedule_type=schedule_type,
        schedule_value=schedule_value,
        next_run=next_run,
        created_at="2026-10-01T00:00:00.000+00:00",
    )
    db.task_repo.create_task(task)
    return task


class TestSummarize:
    def test_error(self):
        assert summarize(RunOutcome(error="boom")) == "Error: boom"

    def test_truncates_result(self):
        assert summarize(RunOutcome(result="x" * 500)) == "x" * 200

    def test_empty_result(self):
        assert summarize(RunOutcome()) == "Completed"


class TestRecord:
    def test_interval_success_advances(self, db, recorder, events):
        task = _add(db)
        log = recorder.record(task, RunOutcome(result="All good"), run_at=RUN_AT, duration_ms=42)

        stored = db.task_repo.get_task_by_id("task-1")
        assert stored.next_run == "2026-10-19T14:00:00.000+00:00"
        assert stored.status == "active"
        assert stored.last_result == "All good"
        assert stored.last_run == "2026-10-19T13:00:00.000+00:00"
        assert log.status == "success"
        assert events.get_buffer()[-1].event == "task:completed"

    def test_failure_still_advances(self, db, recorder, events):
        task = _add(db)
        recorder.record(task, RunOutcome(error="model down"), run_at=RUN_AT, duration_ms=5)

        stored = db.task_repo.get_task_by_id("task-1")
        assert stored.next_run == "2026-10-19T14:00:00.000+00:00"
        assert stored.last_result == "Error: model down"
        logs = db.task_repo.get_task_run_logs("task-1")
        assert logs[0].status == "error"
        assert logs[0].error == "model down"
        assert events.get_buffer()[-1].event == "task:failed"

    def test_once_completes_even_on_failure(self, db, recorder):
        task = _add(db, schedule_type="once", schedule_value="2026-10-19T13:00:00+00:00")
        recorder.record(task, RunOutcome(error="boom"), run_at=RUN_AT, duration_ms=1)

        stored = db.task_repo.get_task_by_id("task-1")
        assert stored.status == "completed"
        assert stored.next_run is None

    def test_cron_uses_given_timezone(self, db, recorder):
        task = _add(db, schedule_type="cron", schedule_value="0 9 * * *")
        recorder.record(task, RunOutcome(result="ok"), run_at=RUN_AT, duration_ms=1, timezone="America/New_York")
        # 13:00 UTC is 09:00 EDT, so the next run is tomorrow's 09:00 EDT
        assert db.task_repo.get_task_by_id("task-1").next_run == "2026-10-20T13:00:00.000+00:00"

    def test_invalid_schedule_keeps_next_run(self, db, recorder):
        task = _add(db, schedule_type="cron", schedule_value="bogus")
        recorder.record(task, RunOutcome(result="ok"), run_at=RUN_AT, duration_ms=1)

        stored = db.task_repo.get_task_by_id("task-1")
        assert stored.status == "active"
        assert stored.next_run == "2026-10-19T13:00:00.000+00:00"
        assert stored.last_result == "ok"
        assert len(db.task_repo.get_task_run_logs("task-1")) == 1

    def test_event_failure_does_not_break_persistence(self, db, recorder, events):
        def broken(_payload):
            raise RuntimeError("listener exploded")

        events.on("task:completed", broken)
        task = _add(db)
        recorder.record(task, RunOutcome(result="ok"), run_at=RUN_AT, duration_ms=1)
        assert db.task_repo.get_task_by_id("task-1").last_result == "ok"


class TestRecordMissingGroup:
    def test_appends_single_error_log(self, db, recorder, events):
        task = _add(db)
        recorder.record_missing_group(task, "Group not found: main", run_at=RUN_AT, duration_ms=0)

        logs = db.task_repo.get_task_run_logs("task-1")
        assert len(logs) == 1
        assert logs[0].status == "error"
        assert logs[0].error == "Group not found: main"

        stored = db.task_repo.get_task_by_id("task-1")
        assert stored.next_run == "2026-10-19T13:00:00.000+00:00"
        assert stored.last_run is None
        assert events.get_buffer()[-1].event == "task:failed"
