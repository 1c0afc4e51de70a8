"""Pytest configuration and shared fixtures."""
from __future__ import annotations

import os
import sys
from pathlib import Path
from typing import List, Optional, Tuple

import pytest

# Ensure src/ is on the import path (for local imports without installing as package)
SRC_PATH = Path(__file__).resolve().parent.parent / "src"
if str(SRC_PATH) not in sys.path:
    sys.path.insert(0, str(SRC_PATH))


@pytest.fixture(scope="function")
def tmp_data_dir(tmp_path: Path) -> Path:
    """Provide a temporary directory for session storage during tests."""
    d = tmp_path / "data"
    d.mkdir(parents=True, exist_ok=True)
    return d


@pytest.fixture(scope="function")
def clean_env(monkeypatch: pytest.MonkeyPatch):
    """Ensure tests run with a clean environment (no leftover vars)."""
    for var in ["WEATHER_CHAT_CONFIG", "GEMINI_API_KEY", "VITE_GEMINI_API_KEY"]:
        monkeypatch.delenv(var, raising=False)
    for var in list(os.environ):
        if var.startswith("WEATHER_CHAT__"):
            monkeypatch.delenv(var, raising=False)
    yield


class CallLog:
    """Shared, ordered record of collaborator calls."""

    def __init__(self) -> None:
        self.calls: List[Tuple[str, tuple]] = []

    def names(self) -> List[str]:
        return [name for name, _ in self.calls]


class FakeFetcher:
    def __init__(self, log: CallLog, reply: str = "Sunny, 22C", error: Optional[Exception] = None):
        self.log = log
        self.reply = reply
        self.error = error

    def fetch(self, location: str) -> str:
        self.log.calls.append(("fetch", (location,)))
        if self.error is not None:
            raise self.error
        return self.reply


class FakeComposer:
    def __init__(self, log: CallLog, reply: str = "It is sunny.", error: Optional[Exception] = None):
        self.log = log
        self.reply = reply
        self.error = error

    def compose(self, user_text: str, weather_text: Optional[str] = None) -> str:
        self.log.calls.append(("compose", (user_text, weather_text)))
        if self.error is not None:
            raise self.error
        return self.reply


@pytest.fixture
def call_log() -> CallLog:
    return CallLog()
