"""Fast path — direct model invocation without a container."""

from __future__ import annotations

import asyncio
from typing import Protocol

from gemclaw.execution.types import ExecutionRequest, ExecutionResult
from gemclaw.infrastructure.config import TimeoutConfig
from gemclaw.infrastructure.logger import logger
from gemclaw.scheduling.errors import ExecutionError


class ModelClient(Protocol):
    """Minimal text-generation client used by the fast path."""

    async def generate(self, prompt: str, system_prompt: str | None, enable_web_search: bool) -> str: ...


class FastPathStrategy:
    """Calls the model directly. Lower overhead, no tool isolation."""

    name = "fast_path"

    def __init__(self, client: ModelClient | None, timeout_config: TimeoutConfig | None = None) -> None:
        self._client = client
        self._timeout = timeout_config or TimeoutConfig()

    @property
    def available(self) -> bool:
        return self._client is not None

    async def execute(self, request: ExecutionRequest) -> ExecutionResult:
        if self._client is None:
            raise ExecutionError("Fast path client not configured", {"group": request.group_folder})

        timeout_s = self._timeout.fast_path_timeout / 1000
        try:
            text = await asyncio.wait_for(
                self._client.generate(request.prompt, request.system_prompt, request.enable_web_search),
                timeout=timeout_s,
            )
        except asyncio.TimeoutError:
            logger.warning("Fast path timed out", group=request.group_folder, timeout_s=timeout_s)
            return ExecutionResult.failure(f"Fast path timeout after {timeout_s:g}s")

        return ExecutionResult(status="ok", result=text or None)
