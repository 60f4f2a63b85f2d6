"""Next-run computation for cron, interval, and one-shot schedules.

All returned timestamps are UTC ISO-8601 strings with millisecond precision,
so they sort lexicographically in the task store.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from croniter import croniter

from gemclaw.infrastructure.config import TIMEZONE
from gemclaw.scheduling.errors import ScheduleError


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def to_iso(dt: datetime) -> str:
    """Normalize a datetime to the stored form. Naive values are taken as UTC."""
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc).isoformat(timespec="milliseconds")


def _zone(tz: str) -> ZoneInfo:
    try:
        return ZoneInfo(tz)
    except (ZoneInfoNotFoundError, ValueError):
        raise ScheduleError(f"Unknown timezone: {tz}", {"timezone": tz})


def parse_interval(value: str) -> int:
    """Interval in milliseconds. Must be a positive integer."""
    try:
        ms = int(value)
    except (ValueError, TypeError):
        raise ScheduleError(f"Invalid interval: {value}", {"schedule_value": value})
    if ms <= 0:
        raise ScheduleError(f"Invalid interval: {value}", {"schedule_value": value})
    return ms


def next_cron_occurrence(expression: str, tz: str, after: datetime) -> datetime:
    """First occurrence strictly after ``after``, evaluated in ``tz``."""
    zone = _zone(tz)
    if not croniter.is_valid(expression):
        raise ScheduleError(f"Invalid cron expression: {expression}", {"schedule_value": expression})
    try:
        return croniter(expression, after.astimezone(zone)).get_next(datetime)
    except (ValueError, KeyError):
        raise ScheduleError(f"Invalid cron expression: {expression}", {"schedule_value": expression})


def parse_once(value: str, tz: str) -> datetime:
    """Parse a one-shot ISO timestamp. Naive values are local to ``tz``."""
    try:
        scheduled = datetime.fromisoformat(value)
    except (ValueError, TypeError):
        raise ScheduleError(f"Invalid timestamp: {value}", {"schedule_value": value})
    if scheduled.tzinfo is None:
        scheduled = scheduled.replace(tzinfo=_zone(tz))
    return scheduled


def compute_initial_run(
    schedule_type: str,
    schedule_value: str,
    *,
    tz: str = TIMEZONE,
    now: datetime | None = None,
) -> str:
    """First next_run for a newly created (or re-scheduled) task."""
    now = now or utc_now()
    if schedule_type == "cron":
        return to_iso(next_cron_occurrence(schedule_value, tz, now))
    if schedule_type == "interval":
        return to_iso(now + timedelta(milliseconds=parse_interval(schedule_value)))
    if schedule_type == "once":
        return to_iso(parse_once(schedule_value, tz))
    raise ScheduleError(
        f"Invalid schedule_type: {schedule_type}. Must be: cron, interval, or once",
        {"schedule_type": schedule_type},
    )


def compute_next_run(
    schedule_type: str,
    schedule_value: str,
    *,
    run_at: datetime,
    tz: str = TIMEZONE,
) -> str | None:
    """next_run after an attempt that started at ``run_at``. None ends the task."""
    if schedule_type == "cron":
        return to_iso(next_cron_occurrence(schedule_value, tz, run_at))
    if schedule_type == "interval":
        return to_iso(run_at + timedelta(milliseconds=parse_interval(schedule_value)))
    if schedule_type == "once":
        return None
    raise ScheduleError(f"Invalid schedule_type: {schedule_type}", {"schedule_type": schedule_type})
