"""Per-turn conversation flow: classify, fetch weather, compose, append."""
from __future__ import annotations

import enum
import logging
import threading
from typing import Callable, Optional, Protocol, Set, TypeVar

from .errors import CallResult, EmptyMessageError, TurnInProgressError
from .location import extract_location, is_weather_query
from .models import Message, Session
from .store import SessionStore

logger = logging.getLogger(__name__)

T = TypeVar("T")

CLARIFICATION_TEXT = (
    "I'd be happy to help you with weather information! Could you please specify which "
    "city or location you'd like to know about? For example, \"What's the weather in "
    "Tokyo?\" or \"How's the weather in New York?\""
)
RETRY_LATER_TEXT = (
    "Sorry, I'm having trouble processing your request right now. Please try again later."
)
RAW_WEATHER_PREFIX = "Here's the weather information I found:\n\n"


class WeatherFetcher(Protocol):
    def fetch(self, location: str) -> str: ...


class Composer(Protocol):
    def compose(self, user_text: str, weather_text: Optional[str] = None) -> str: ...


class TurnState(enum.Enum):
    IDLE = "idle"
    USER_SUBMITTED = "user_submitted"
    NEEDS_WEATHER = "needs_weather"
    WEATHER_PENDING = "weather_pending"
    WEATHER_RESOLVED = "weather_resolved"
    WEATHER_FAILED = "weather_failed"
    COMPOSING_REPLY = "composing_reply"
    REPLY_READY = "reply_ready"


def _attempt(fn: Callable[[], T]) -> CallResult[T]:
    try:
        return CallResult(value=fn())
    except Exception as e:
        return CallResult(error=e)


class ConversationOrchestrator:
    """Run one turn at a time per session against a :class:`SessionStore`.

    Collaborator failures never escape :meth:`handle_turn`; they degrade the
    reply instead. The only errors raised are rejections that happen before
    anything is written (empty input, a turn already running for the session,
    an unknown session id).
    """

    def __init__(self, store: SessionStore, fetcher: WeatherFetcher, composer: Composer) -> None:
        self.store = store
        self.fetcher = fetcher
        self.composer = composer
        self._busy: Set[str] = set()
        self._busy_lock = threading.Lock()

    def is_busy(self, session_id: str) -> bool:
        with self._busy_lock:
            return session_id in self._busy

    def _acquire(self, session_id: str) -> None:
        with self._busy_lock:
            if session_id in self._busy:
                raise TurnInProgressError(f"A turn is already in progress for session {session_id}")
            self._busy.add(session_id)

    def _release(self, session_id: str) -> None:
        with self._busy_lock:
            self._busy.discard(session_id)

    def _enter(self, session_id: str, state: TurnState) -> None:
        logger.debug("session %s -> %s", session_id, state.value)

    def handle_turn(self, session_id: str, user_text: str) -> Session:
        text = (user_text or "").strip()
        if not text:
            raise EmptyMessageError("Message cannot be empty.")
        self.store.get(session_id)  # unknown ids are rejected before the busy flag is taken

        self._acquire(session_id)
        try:
            self._enter(session_id, TurnState.USER_SUBMITTED)
            self.store.append_message(session_id, Message.user(text))
            reply = self._reply_for(session_id, text)
            self._enter(session_id, TurnState.REPLY_READY)
            return self.store.append_message(session_id, Message.assistant(reply))
        finally:
            self._release(session_id)
            self._enter(session_id, TurnState.IDLE)

    def _reply_for(self, session_id: str, text: str) -> str:
        weather_text: Optional[str] = None

        if is_weather_query(text):
            self._enter(session_id, TurnState.NEEDS_WEATHER)
            location = extract_location(text)
            if location is None:
                return CLARIFICATION_TEXT

            self._enter(session_id, TurnState.WEATHER_PENDING)
            fetched = _attempt(lambda: self.fetcher.fetch(location))
            if fetched.ok:
                weather_text = fetched.value or None
                self._enter(session_id, TurnState.WEATHER_RESOLVED)
            else:
                logger.warning("Weather lookup for %r failed: %s", location, fetched.error)
                self._enter(session_id, TurnState.WEATHER_FAILED)

        self._enter(session_id, TurnState.COMPOSING_REPLY)
        composed = _attempt(lambda: self.composer.compose(text, weather_text))
        if composed.ok:
            return composed.value or ""

        logger.warning("Reply generation failed: %s", composed.error)
        if weather_text:
            return RAW_WEATHER_PREFIX + weather_text
        return RETRY_LATER_TEXT
