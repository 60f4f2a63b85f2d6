"""Tests for the direct model strategy."""

import asyncio

import pytest

from gemclaw.execution.fast_path import FastPathStrategy
from gemclaw.execution.types import ExecutionRequest
from gemclaw.groups.types import RegisteredGroup
from gemclaw.infrastructure.config import TimeoutConfig
from gemclaw.scheduling.errors import ExecutionError


class RecordingClient:
    def __init__(self, reply="hello", delay=0.0):
        self.reply = reply
        self.delay = delay
        self.calls = []

    async def generate(self, prompt, system_prompt, enable_web_search):
        self.calls.append((prompt, system_prompt, enable_web_search))
        if self.delay:
            await asyncio.sleep(self.delay)
        return self.reply


def _request() -> ExecutionRequest:
    group = RegisteredGroup(name="Main", folder="main", trigger="@bot", added_at="2026-01-01T00:00:00Z")
    return ExecutionRequest(
        group=group,
        prompt="Summarize",
        chat_jid="main@g.us",
        is_main=True,
        system_prompt="Be brief.",
        enable_web_search=False,
    )


class TestFastPathStrategy:
    @pytest.mark.asyncio
    async def test_passes_request_through(self):
        client = RecordingClient()
        result = await FastPathStrategy(client).execute(_request())
        assert result.status == "ok"
        assert result.result == "hello"
        assert client.calls == [("Summarize", "Be brief.", False)]

    @pytest.mark.asyncio
    async def test_empty_reply_has_no_result(self):
        result = await FastPathStrategy(RecordingClient(reply="")).execute(_request())
        assert result.status == "ok"
        assert result.result is None

    @pytest.mark.asyncio
    async def test_timeout_is_a_failure(self):
        strategy = FastPathStrategy(RecordingClient(delay=1.0), TimeoutConfig(fast_path_timeout=10))
        result = await strategy.execute(_request())
        assert result.status == "error"
        assert "timeout" in result.error

    @pytest.mark.asyncio
    async def test_missing_client_raises(self):
        strategy = FastPathStrategy(None)
        assert strategy.available is False
        with pytest.raises(ExecutionError):
            await strategy.execute(_request())
