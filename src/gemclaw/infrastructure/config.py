"""Configuration constants, .env parsing, and timeout settings."""

from __future__ import annotations

import os
import time
from pathlib import Path
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError


def read_env_file(keys: list[str]) -> dict[str, str]:
    """Parse .env file and return values for requested keys.

    Does NOT load into os.environ. Callers decide what to do with values.
    This keeps secrets out of the process environment so they don't leak
    to child processes.
    """
    env_file = Path.cwd() / ".env"
    try:
        content = env_file.read_text()
    except OSError:
        return {}

    result: dict[str, str] = {}
    wanted = set(keys)

    for line in content.splitlines():
        trimmed = line.strip()
        if not trimmed or trimmed.startswith("#"):
            continue
        eq_idx = trimmed.find("=")
        if eq_idx == -1:
            continue
        key = trimmed[:eq_idx].strip()
        if key not in wanted:
            continue
        value = trimmed[eq_idx + 1 :].strip()
        if (value.startswith('"') and value.endswith('"')) or (value.startswith("'") and value.endswith("'")):
            value = value[1:-1]
        if value:
            result[key] = value

    return result


def safe_parse_int(raw: str | None, default: int) -> int:
    """Parse an integer setting, falling back to default on missing/garbage input."""
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError:
        return default


_ENV_KEYS = [
    "SCHEDULER_POLL_INTERVAL",
    "SCHEDULER_CONCURRENCY",
    "FAST_PATH_ENABLED",
    "FAST_PATH_TIMEOUT",
    "CONTAINER_IMAGE",
    "CONTAINER_TIMEOUT",
    "MAX_CONCURRENT_CONTAINERS",
]

# Read config values from .env (falls back to os.environ).
_env_config = read_env_file(_ENV_KEYS)


def _setting(key: str, default: str = "") -> str:
    return os.environ.get(key) or _env_config.get(key, default)


SCHEDULER_POLL_INTERVAL: float = float(safe_parse_int(_setting("SCHEDULER_POLL_INTERVAL"), 60))  # seconds
SCHEDULER_CONCURRENCY: int = max(1, safe_parse_int(_setting("SCHEDULER_CONCURRENCY"), 3))

FAST_PATH_ENABLED: bool = _setting("FAST_PATH_ENABLED", "true").lower() != "false"
FAST_PATH_TIMEOUT: int = safe_parse_int(_setting("FAST_PATH_TIMEOUT"), 180_000)  # ms

TASK_RESULT_SUMMARY_LENGTH: int = 200
EVENT_BUFFER_SIZE: int = 100

# Absolute paths
PROJECT_ROOT: Path = Path.cwd()

STORE_DIR: Path = (PROJECT_ROOT / "store").resolve()
GROUPS_DIR: Path = (PROJECT_ROOT / "groups").resolve()
DATA_DIR: Path = (PROJECT_ROOT / "data").resolve()
MAIN_GROUP_FOLDER: str = "main"

CONTAINER_IMAGE: str = _setting("CONTAINER_IMAGE", "gemclaw-agent:latest")
CONTAINER_TIMEOUT: int = safe_parse_int(_setting("CONTAINER_TIMEOUT"), 1_800_000)  # 30min
MAX_CONCURRENT_CONTAINERS: int = max(1, safe_parse_int(_setting("MAX_CONCURRENT_CONTAINERS"), 5))


def recommended_scheduler_concurrency() -> int:
    """Half the available CPUs, clamped to [1, MAX_CONCURRENT_CONTAINERS]."""
    cpus = os.cpu_count() or 2
    return max(1, min(cpus // 2, MAX_CONCURRENT_CONTAINERS))


def _resolve_timezone() -> str:
    tz = os.environ.get("TZ", "")
    if not tz:
        # On Linux, read /etc/timezone or follow the /etc/localtime symlink
        tz_file = Path("/etc/timezone")
        try:
            if tz_file.exists():
                tz = tz_file.read_text().strip()
            else:
                # Extract IANA name from path like /usr/share/zoneinfo/America/New_York
                parts = Path("/etc/localtime").resolve().parts
                if "zoneinfo" in parts:
                    tz = "/".join(parts[parts.index("zoneinfo") + 1 :])
        except OSError:
            tz = time.tzname[0] or ""

    if not tz:
        return "UTC"

    try:
        ZoneInfo(tz)
        return tz
    except (ZoneInfoNotFoundError, ValueError):
        return "UTC"


TIMEZONE: str = _resolve_timezone()


class TimeoutConfig:
    """Timeout configuration for the execution strategies (milliseconds)."""

    def __init__(self, container_timeout: int = CONTAINER_TIMEOUT, fast_path_timeout: int = FAST_PATH_TIMEOUT) -> None:
        self.container_timeout = container_timeout
        self.fast_path_timeout = fast_path_timeout

    def get_hard_timeout(self) -> int:
        """Hard kill deadline for a container run."""
        return max(self.container_timeout, 1_000)

    def for_group(self, group: object) -> TimeoutConfig:
        """Create a TimeoutConfig for a specific group, using group's custom timeout if set."""
        container_config = getattr(group, "container_config", None)
        group_timeout = (container_config.timeout if container_config and container_config.timeout else self.container_timeout)
        return TimeoutConfig(group_timeout, self.fast_path_timeout)
