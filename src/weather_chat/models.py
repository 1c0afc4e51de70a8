"""Chat messages and sessions, plus their JSON storage format."""
from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

USER = "user"
ASSISTANT = "assistant"
ROLES = (USER, ASSISTANT)

DEFAULT_TITLE = "New Weather Chat"
TITLE_WORDS = 4


# -----------------------------
# Helpers
# -----------------------------
def new_id() -> str:
    return uuid.uuid4().hex


def utc_now() -> datetime:
    # Stored timestamps keep millisecond precision; trim now so round trips are exact.
    now = datetime.now(timezone.utc)
    return now.replace(microsecond=(now.microsecond // 1000) * 1000)


def format_instant(dt: datetime) -> str:
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def parse_instant(value: str) -> datetime:
    if not isinstance(value, str) or not value:
        raise ValueError(f"Invalid timestamp: {value!r}")
    text = value[:-1] + "+00:00" if value.endswith("Z") else value
    dt = datetime.fromisoformat(text)
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def generate_title(first_message: str) -> str:
    """First four space-separated words, with an ellipsis if there were more."""
    words = first_message.split(" ")
    title = " ".join(words[:TITLE_WORDS])
    return title + ("..." if len(words) > TITLE_WORDS else "")


# -----------------------------
# Message
# -----------------------------
@dataclass
class Message:
    role: str
    content: str
    id: str = field(default_factory=new_id)
    timestamp: datetime = field(default_factory=utc_now)
    liked: Optional[bool] = None
    disliked: Optional[bool] = None

    def __post_init__(self) -> None:
        if self.role not in ROLES:
            raise ValueError(f"role must be one of {ROLES}, got {self.role!r}")

    @classmethod
    def user(cls, content: str) -> "Message":
        return cls(role=USER, content=content)

    @classmethod
    def assistant(cls, content: str) -> "Message":
        return cls(role=ASSISTANT, content=content)

    def toggle_like(self) -> None:
        self.liked = not self.liked
        self.disliked = False

    def toggle_dislike(self) -> None:
        self.disliked = not self.disliked
        self.liked = False

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {
            "id": self.id,
            "role": self.role,
            "content": self.content,
            "timestamp": format_instant(self.timestamp),
        }
        if self.liked is not None:
            out["liked"] = self.liked
        if self.disliked is not None:
            out["disliked"] = self.disliked
        return out

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Message":
        return cls(
            id=str(data["id"]),
            role=str(data["role"]),
            content=str(data["content"]),
            timestamp=parse_instant(data["timestamp"]),
            liked=data.get("liked"),
            disliked=data.get("disliked"),
        )


# -----------------------------
# Session
# -----------------------------
@dataclass
class Session:
    id: str = field(default_factory=new_id)
    title: str = DEFAULT_TITLE
    messages: List[Message] = field(default_factory=list)
    created_at: datetime = field(default_factory=utc_now)

    def set_messages(self, messages: List[Message]) -> None:
        """Replace the message list and re-derive the title from it."""
        self.messages = list(messages)
        self.title = generate_title(self.messages[0].content) if self.messages else DEFAULT_TITLE

    def find_message(self, message_id: str) -> Optional[Message]:
        for m in self.messages:
            if m.id == message_id:
                return m
        return None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "messages": [m.to_dict() for m in self.messages],
            "createdAt": format_instant(self.created_at),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Session":
        session = cls(id=str(data["id"]), created_at=parse_instant(data["createdAt"]))
        # The stored title is ignored; it is always derived from the messages.
        session.set_messages([Message.from_dict(m) for m in data.get("messages", [])])
        return session
