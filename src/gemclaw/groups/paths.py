"""Centralized path construction for group-related directories and files."""

from __future__ import annotations

from pathlib import Path

from gemclaw.infrastructure.config import DATA_DIR, GROUPS_DIR


class GroupPaths:
    """Centralized path construction for group-related directories."""

    @staticmethod
    def group_dir(folder: str) -> Path:
        """Root directory for a group: groups/{folder}"""
        return GROUPS_DIR / folder

    @staticmethod
    def instructions_file(folder: str) -> Path:
        """Per-group system prompt override: groups/{folder}/GEMINI.md"""
        return GROUPS_DIR / folder / "GEMINI.md"

    @staticmethod
    def ipc_dir(folder: str) -> Path:
        """IPC root directory: data/ipc/{folder}"""
        return DATA_DIR / "ipc" / folder

    @staticmethod
    def read_instructions(folder: str) -> str | None:
        """Contents of the group's GEMINI.md, or None when absent/empty."""
        path = GroupPaths.instructions_file(folder)
        try:
            content = path.read_text().strip()
        except OSError:
            return None
        return content or None
