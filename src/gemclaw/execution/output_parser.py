"""Stateful parser for the container OUTPUT_START/END marker protocol."""

from __future__ import annotations

import json

from gemclaw.execution.types import ExecutionResult

OUTPUT_START_MARKER = "---GEMCLAW_OUTPUT_START---"
OUTPUT_END_MARKER = "---GEMCLAW_OUTPUT_END---"


class ContainerOutputParser:
    """Accumulates stdout lines between OUTPUT_START and OUTPUT_END markers.

    The agent inside the container reports ``{"status": "success"|"error", ...}``;
    each complete block is translated into an ``ExecutionResult``.
    """

    def __init__(self) -> None:
        self._collecting = False
        self._buffer: list[str] = []

    def feed(self, line: str) -> ExecutionResult | None:
        """Feed a line of stdout. Returns a result if a complete block was parsed."""
        stripped = line.rstrip("\n").rstrip("\r")

        if stripped == OUTPUT_START_MARKER:
            self._collecting = True
            self._buffer = []
            return None

        if stripped == OUTPUT_END_MARKER:
            self._collecting = False
            raw = "\n".join(self._buffer)
            self._buffer = []
            return self._parse_output(raw)

        if self._collecting:
            self._buffer.append(stripped)

        return None

    def _parse_output(self, raw: str) -> ExecutionResult:
        try:
            data = json.loads(raw)
        except (json.JSONDecodeError, TypeError):
            return ExecutionResult.failure(f"Failed to parse output: {raw[:200]}")
        if not isinstance(data, dict):
            return ExecutionResult.failure(f"Failed to parse output: {raw[:200]}")

        if data.get("status") == "error":
            return ExecutionResult(status="error", error=data.get("error") or "Unknown error")
        return ExecutionResult(
            status="ok",
            result=data.get("result"),
            new_session_id=data.get("newSessionId"),
        )
