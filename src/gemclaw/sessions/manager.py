"""Session manager with in-memory cache."""

from __future__ import annotations

from gemclaw.sessions.repository import SessionRepository


class SessionManager:
    """Tracks each group's live agent session. Group-context tasks resume it."""

    def __init__(self, session_repo: SessionRepository) -> None:
        self._session_repo = session_repo
        self._sessions: dict[str, str] = {}

    def load_from_db(self) -> None:
        """Load all sessions from DB into memory cache."""
        self._sessions = self._session_repo.get_all_sessions()

    def get(self, group_folder: str) -> str | None:
        return self._sessions.get(group_folder)

    def set(self, group_folder: str, session_id: str) -> None:
        self._sessions[group_folder] = session_id
        self._session_repo.set_session(group_folder, session_id)

    def delete(self, group_folder: str) -> None:
        self._sessions.pop(group_folder, None)
        self._session_repo.delete_session(group_folder)

    def get_all(self) -> dict[str, str]:
        return dict(self._sessions)
