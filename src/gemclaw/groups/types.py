"""Group domain types."""

from __future__ import annotations

from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pydantic import BaseModel

from gemclaw.infrastructure.config import TIMEZONE
from gemclaw.infrastructure.logger import logger


class ContainerConfig(BaseModel):
    timeout: int | None = None  # ms; falls back to CONTAINER_TIMEOUT
    env: dict[str, str] | None = None


class RegisteredGroup(BaseModel):
    name: str
    folder: str
    trigger: str
    added_at: str
    channel: str = "telegram"
    container_config: ContainerConfig | None = None
    requires_trigger: bool | None = True  # Default: true for groups, false for solo chats
    timezone: str | None = None  # IANA name; None means the process TIMEZONE
    system_prompt: str | None = None
    enable_fast_path: bool = True
    enable_web_search: bool = True


def group_timezone(group: RegisteredGroup | None) -> str:
    """The group's IANA timezone, or the process TIMEZONE when unset or unknown."""
    if group is None or not group.timezone:
        return TIMEZONE
    try:
        ZoneInfo(group.timezone)
        return group.timezone
    except (ZoneInfoNotFoundError, ValueError):
        logger.warning("Unknown group timezone, using default", group=group.folder, timezone=group.timezone)
        return TIMEZONE
