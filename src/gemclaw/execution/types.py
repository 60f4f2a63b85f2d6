"""Execution request/result contract shared by every strategy."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Literal, Protocol

from gemclaw.groups.types import RegisteredGroup


@dataclass
class ExecutionRequest:
    group: RegisteredGroup
    prompt: str
    chat_jid: str
    is_main: bool
    session_id: str | None = None
    system_prompt: str | None = None
    enable_web_search: bool = True
    is_scheduled_task: bool = True
    requires_isolation: bool = False

    @property
    def group_folder(self) -> str:
        return self.group.folder


@dataclass
class ExecutionResult:
    status: Literal["ok", "error"] = "ok"
    result: str | None = None
    error: str | None = None
    new_session_id: str | None = None

    @classmethod
    def failure(cls, error: str) -> ExecutionResult:
        return cls(status="error", error=error)


class ExecutionStrategy(Protocol):
    """One way of running a prompt for a group."""

    @property
    def name(self) -> str: ...

    async def execute(self, request: ExecutionRequest) -> ExecutionResult: ...
