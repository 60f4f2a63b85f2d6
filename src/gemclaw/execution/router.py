"""Chooses between the fast path and the container path."""

from __future__ import annotations

from gemclaw.execution.container_runner import ContainerRunner
from gemclaw.execution.fast_path import FastPathStrategy
from gemclaw.execution.types import ExecutionRequest, ExecutionResult, ExecutionStrategy
from gemclaw.groups.types import RegisteredGroup
from gemclaw.infrastructure.config import FAST_PATH_ENABLED


class ContainerStrategy:
    """Full isolation inside an agent container. Default and universal fallback."""

    name = "container"

    def __init__(self, runner: ContainerRunner) -> None:
        self._runner = runner

    async def execute(self, request: ExecutionRequest) -> ExecutionResult:
        return await self._runner.run(request)


def is_fast_path_eligible(
    group: RegisteredGroup,
    requires_isolation: bool,
    *,
    fast_path_enabled: bool = FAST_PATH_ENABLED,
    fast_path_available: bool = True,
) -> bool:
    """Pure eligibility check for the fast path."""
    # Globally disabled
    if not fast_path_enabled:
        return False
    # Group explicitly disabled
    if not group.enable_fast_path:
        return False
    # Needs the container sandbox (e.g. a live session that lives there)
    if requires_isolation:
        return False
    # Model client must be configured
    return fast_path_available


class ExecutionRouter:
    """Selects one strategy per request from a closed set of two."""

    def __init__(
        self,
        container: ExecutionStrategy,
        fast_path: FastPathStrategy | None = None,
        *,
        fast_path_enabled: bool = FAST_PATH_ENABLED,
    ) -> None:
        self._container = container
        self._fast_path = fast_path
        self._fast_path_enabled = fast_path_enabled

    def select(self, request: ExecutionRequest) -> ExecutionStrategy:
        if self._fast_path is not None and is_fast_path_eligible(
            request.group,
            request.requires_isolation,
            fast_path_enabled=self._fast_path_enabled,
            fast_path_available=self._fast_path.available,
        ):
            return self._fast_path
        return self._container
