"""
In-memory registry of calculator sessions served over HTTP.
"""
import logging
import threading
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Dict, Optional, Any

from .config import MAX_SESSIONS, THEMES, DEFAULT_THEME
from .engine import Calculator

logger = logging.getLogger(__name__)


class SessionNotFound(Exception):
    """Raised when a session id is unknown."""
    pass


class SessionLimitExceeded(Exception):
    """Raised when creating a session would exceed MAX_SESSIONS."""
    pass


@dataclass
class Session:
    """A calculator bound to one client, plus its display preferences."""
    id: str
    calculator: Calculator = field(default_factory=Calculator)
    theme: str = DEFAULT_THEME
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    # Commands for one session are applied one at a time. Handlers that touch
    # a session are sync, so FastAPI runs them on its threadpool.
    lock: threading.Lock = field(default_factory=threading.Lock, repr=False)

    def toggle_theme(self) -> str:
        with self.lock:
            index = THEMES.index(self.theme) if self.theme in THEMES else -1
            self.theme = THEMES[(index + 1) % len(THEMES)]
            return self.theme


class SessionStore:
    """Holds live sessions. Nothing is persisted across restarts."""

    def __init__(self, max_sessions: int = MAX_SESSIONS):
        self.max_sessions = max_sessions
        self._sessions: Dict[str, Session] = {}
        self._lock = threading.Lock()

    def create(self) -> Session:
        with self._lock:
            if len(self._sessions) >= self.max_sessions:
                raise SessionLimitExceeded(
                    f"Session limit of {self.max_sessions} reached. "
                    "Delete an existing session or increase MAX_SESSIONS."
                )
            session = Session(id=uuid.uuid4().hex)
            self._sessions[session.id] = session
        logger.debug(f"Created session {session.id}")
        return session

    def get(self, session_id: str) -> Session:
        session = self._sessions.get(session_id)
        if session is None:
            raise SessionNotFound(f"Session not found: {session_id}")
        return session

    def delete(self, session_id: str) -> None:
        with self._lock:
            if self._sessions.pop(session_id, None) is None:
                raise SessionNotFound(f"Session not found: {session_id}")
        logger.debug(f"Deleted session {session_id}")

    def clear(self) -> None:
        with self._lock:
            self._sessions.clear()

    def get_stats(self) -> Dict[str, Any]:
        return {
            "active_sessions": len(self._sessions),
            "max_sessions": self.max_sessions,
        }


# Global session store instance
_session_store: Optional[SessionStore] = None


def get_session_store() -> SessionStore:
    """Get or create the global session store instance."""
    global _session_store
    if _session_store is None:
        _session_store = SessionStore()
    return _session_store
