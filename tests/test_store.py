from __future__ import annotations

import json
from pathlib import Path

import pytest

from weather_chat.errors import SessionNotFoundError
from weather_chat.models import DEFAULT_TITLE, Message
from weather_chat.store import SessionStore


def test_create_puts_newest_first_and_selects(tmp_data_dir: Path):
    store = SessionStore(str(tmp_data_dir))
    first = store.create()
    second = store.create()
    assert [s.id for s in store.list()] == [second.id, first.id]
    assert store.current is second
    assert second.title == DEFAULT_TITLE


def test_update_recomputes_title(tmp_data_dir: Path):
    store = SessionStore(str(tmp_data_dir))
    s = store.create()
    store.update(s.id, [Message.user("What's the weather in Tokyo?")])
    assert store.get(s.id).title == "What's the weather in..."
    store.update(s.id, [])
    assert store.get(s.id).title == DEFAULT_TITLE


def test_deleting_current_clears_selection(tmp_data_dir: Path):
    store = SessionStore(str(tmp_data_dir))
    other = store.create()
    current = store.create()
    assert store.delete(current.id) is True
    assert store.current is None
    assert [s.id for s in store.list()] == [other.id]


def test_deleting_other_session_keeps_selection(tmp_data_dir: Path):
    store = SessionStore(str(tmp_data_dir))
    other = store.create()
    current = store.create()
    store.delete(other.id)
    assert store.current is current
    assert store.delete("missing") is False


def test_select_unknown_session_raises(tmp_data_dir: Path):
    store = SessionStore(str(tmp_data_dir))
    with pytest.raises(SessionNotFoundError):
        store.select("nope")


def test_persistence_roundtrip(tmp_data_dir: Path):
    store = SessionStore(str(tmp_data_dir))
    s = store.create()
    store.append_message(s.id, Message.user("weather in London"))
    store.append_message(s.id, Message.assistant("Grey and mild."))

    reloaded = SessionStore(str(tmp_data_dir))
    [r] = reloaded.list()
    assert r.id == s.id
    assert r.title == s.title
    assert r.created_at == s.created_at
    assert [(m.role, m.content, m.timestamp) for m in r.messages] == [
        (m.role, m.content, m.timestamp) for m in s.messages
    ]
    # Selection is not persisted.
    assert reloaded.current is None


def test_every_mutation_is_written(tmp_data_dir: Path):
    store = SessionStore(str(tmp_data_dir))
    s = store.create()
    store.append_message(s.id, Message.user("hi"))
    on_disk = json.loads((tmp_data_dir / "sessions.json").read_text(encoding="utf-8"))
    assert on_disk[0]["messages"][0]["content"] == "hi"
    assert on_disk[0]["title"] == "hi"

    store.delete(s.id)
    assert json.loads((tmp_data_dir / "sessions.json").read_text(encoding="utf-8")) == []


def test_malformed_storage_starts_empty(tmp_data_dir: Path):
    path = tmp_data_dir / "sessions.json"
    path.write_text("{not json", encoding="utf-8")
    store = SessionStore(str(tmp_data_dir))
    assert store.list() == []
    assert (tmp_data_dir / "sessions.corrupt.json").exists()


def test_bad_timestamps_start_empty(tmp_data_dir: Path):
    path = tmp_data_dir / "sessions.json"
    path.write_text(
        json.dumps([{"id": "a", "title": "t", "messages": [], "createdAt": "yesterday"}]),
        encoding="utf-8",
    )
    assert SessionStore(str(tmp_data_dir)).list() == []


def test_rating_toggles_and_clears_opposite(tmp_data_dir: Path):
    store = SessionStore(str(tmp_data_dir))
    s = store.create()
    reply = Message.assistant("Sunny.")
    store.append_message(s.id, reply)

    m = store.set_rating(s.id, reply.id, liked=True)
    assert m.liked is True and m.disliked is False
    m = store.set_rating(s.id, reply.id, disliked=True)
    assert m.disliked is True and m.liked is False

    with pytest.raises(KeyError):
        store.set_rating(s.id, "missing", liked=True)


def test_theme_preference(tmp_data_dir: Path):
    store = SessionStore(str(tmp_data_dir))
    assert store.get_theme() == "light"
    assert store.toggle_theme() == "dark"
    assert SessionStore(str(tmp_data_dir)).get_theme() == "dark"
    with pytest.raises(ValueError):
        store.set_theme("sepia")


def test_stale_title_on_disk_is_recomputed(tmp_data_dir: Path):
    store = SessionStore(str(tmp_data_dir))
    s = store.create()
    store.append_message(s.id, Message.user("weather in London"))

    path = tmp_data_dir / "sessions.json"
    raw = json.loads(path.read_text(encoding="utf-8"))
    raw[0]["title"] = "stale"
    path.write_text(json.dumps(raw), encoding="utf-8")

    assert SessionStore(str(tmp_data_dir)).get(s.id).title == "weather in London"
