"""Maintenance mode switch, persisted so it survives restarts."""

from __future__ import annotations

from gemclaw.infrastructure.logger import logger
from gemclaw.infrastructure.state_repo import StateRepository

MAINTENANCE_KEY = "maintenance_mode"


class MaintenanceMode:
    """While active, the scheduler keeps ticking but dispatches nothing."""

    def __init__(self, state_repo: StateRepository) -> None:
        self._state_repo = state_repo

    def is_active(self) -> bool:
        return self._state_repo.get_state(MAINTENANCE_KEY) == "1"

    def enable(self) -> None:
        self._state_repo.set_state(MAINTENANCE_KEY, "1")
        logger.warning("Maintenance mode enabled")

    def disable(self) -> None:
        self._state_repo.delete_state(MAINTENANCE_KEY)
        logger.info("Maintenance mode disabled")
