"""Disk-backed chat session collection (thread-safe, atomic)."""
from __future__ import annotations

import logging
import threading
from pathlib import Path
from typing import Any, Dict, List, Optional

from utils.io import atomic_write_json, ensure_dir, read_json

from .errors import SessionNotFoundError
from .models import Message, Session

logger = logging.getLogger(__name__)

THEMES = ("light", "dark")
DEFAULT_THEME = "light"


class SessionStore:
    """In-memory list of sessions mirrored to JSON after every mutation.

    Layout:
        data_dir/
          sessions.json       # list of sessions, most recent first
          preferences.json    # {"theme": "light" | "dark"}

    The store is the only writer of the collection. At most one session is
    selected at a time; deleting it clears the selection.
    """

    def __init__(self, data_dir: str) -> None:
        self.root = ensure_dir(data_dir)
        self.sessions_path = self.root / "sessions.json"
        self.preferences_path = self.root / "preferences.json"
        self._lock = threading.RLock()
        self._sessions: List[Session] = self._load()
        self._current_id: Optional[str] = None

    # --------- loading ----------
    def _load(self) -> List[Session]:
        path = self.sessions_path
        if not path.exists():
            return []
        try:
            raw = read_json(path)
            if not isinstance(raw, list):
                raise ValueError(f"expected a list, got {type(raw).__name__}")
            return [Session.from_dict(item) for item in raw]
        except Exception as e:
            logger.error("Error loading sessions from %s: %s", path, e)
            self._quarantine(path)
            return []

    @staticmethod
    def _quarantine(path: Path) -> None:
        # Keep the unreadable file around for inspection; start fresh.
        try:
            path.replace(path.with_suffix(".corrupt.json"))
        except OSError as e:
            logger.warning("Could not move corrupt file %s aside: %s", path, e)

    def _save(self) -> None:
        atomic_write_json(self.sessions_path, [s.to_dict() for s in self._sessions])

    # --------- queries ----------
    def list(self) -> List[Session]:
        with self._lock:
            return list(self._sessions)

    def get(self, session_id: str) -> Session:
        with self._lock:
            for s in self._sessions:
                if s.id == session_id:
                    return s
        raise SessionNotFoundError(session_id)

    @property
    def current(self) -> Optional[Session]:
        with self._lock:
            if self._current_id is None:
                return None
            try:
                return self.get(self._current_id)
            except SessionNotFoundError:
                self._current_id = None
                return None

    # --------- mutations ----------
    def create(self) -> Session:
        """Create an empty session, put it first and select it."""
        session = Session()
        with self._lock:
            self._sessions.insert(0, session)
            self._current_id = session.id
            self._save()
        logger.info("Created session %s", session.id)
        return session

    def select(self, session_id: str) -> Session:
        with self._lock:
            session = self.get(session_id)
            self._current_id = session.id
            return session

    def clear_selection(self) -> None:
        with self._lock:
            self._current_id = None

    def delete(self, session_id: str) -> bool:
        with self._lock:
            before = len(self._sessions)
            self._sessions = [s for s in self._sessions if s.id != session_id]
            removed = len(self._sessions) != before
            if self._current_id == session_id:
                self._current_id = None
            if removed:
                self._save()
        if removed:
            logger.info("Deleted session %s", session_id)
        return removed

    def update(self, session_id: str, messages: List[Message]) -> Session:
        """Replace a session's messages and recompute its title."""
        with self._lock:
            session = self.get(session_id)
            session.set_messages(messages)
            self._save()
            return session

    def append_message(self, session_id: str, message: Message) -> Session:
        with self._lock:
            session = self.get(session_id)
            return self.update(session_id, session.messages + [message])

    def set_rating(
        self,
        session_id: str,
        message_id: str,
        *,
        liked: bool = False,
        disliked: bool = False,
    ) -> Message:
        """Toggle the like or dislike flag on a message; the other flag is cleared."""
        if liked == disliked:
            raise ValueError("exactly one of liked/disliked must be requested")
        with self._lock:
            session = self.get(session_id)
            message = session.find_message(message_id)
            if message is None:
                raise KeyError(message_id)
            if liked:
                message.toggle_like()
            else:
                message.toggle_dislike()
            self._save()
            return message

    # --------- preferences ----------
    def _read_preferences(self) -> Dict[str, Any]:
        if not self.preferences_path.exists():
            return {}
        try:
            data = read_json(self.preferences_path)
        except Exception as e:
            logger.warning("Ignoring unreadable preferences %s: %s", self.preferences_path, e)
            return {}
        return data if isinstance(data, dict) else {}

    def get_theme(self) -> str:
        theme = self._read_preferences().get("theme")
        return theme if theme in THEMES else DEFAULT_THEME

    def set_theme(self, theme: str) -> str:
        if theme not in THEMES:
            raise ValueError(f"theme must be one of {THEMES}, got {theme!r}")
        with self._lock:
            prefs = self._read_preferences()
            prefs["theme"] = theme
            atomic_write_json(self.preferences_path, prefs)
        return theme

    def toggle_theme(self) -> str:
        with self._lock:
            return self.set_theme("light" if self.get_theme() == "dark" else "dark")
