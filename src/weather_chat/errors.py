"""Error taxonomy for the weather chat service."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Generic, Optional, TypeVar

T = TypeVar("T")


class WeatherChatError(Exception):
    """Base class for all errors raised by this package."""


class ConfigError(WeatherChatError):
    """A required setting (typically an API credential) is missing."""


class NetworkError(WeatherChatError):
    """Transport failure, timeout or non-success status from an endpoint."""

    def __init__(self, message: str, *, status: Optional[int] = None) -> None:
        super().__init__(message)
        self.status = status


class ApiError(WeatherChatError):
    """The generative-language endpoint rejected the request."""

    def __init__(self, message: str, *, status: Optional[int] = None, body: str = "") -> None:
        super().__init__(message)
        self.status = status
        self.body = body


class StreamError(WeatherChatError):
    """A streamed response body could not be read to completion."""


class SessionNotFoundError(WeatherChatError, KeyError):
    def __init__(self, session_id: str) -> None:
        super().__init__(session_id)
        self.session_id = session_id

    def __str__(self) -> str:
        return f"Session not found: {self.session_id}"


class TurnRejected(WeatherChatError):
    """A turn was refused before any state changed."""


class EmptyMessageError(TurnRejected):
    pass


class TurnInProgressError(TurnRejected):
    pass


@dataclass(frozen=True)
class CallResult(Generic[T]):
    """Outcome of a collaborator call: exactly one of value/error is meaningful."""
    value: Optional[T] = None
    error: Optional[BaseException] = None

    @property
    def ok(self) -> bool:
        return self.error is None
