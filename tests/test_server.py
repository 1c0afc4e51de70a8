from __future__ import annotations

from pathlib import Path

from fastapi.testclient import TestClient

from conftest import CallLog, FakeComposer, FakeFetcher
from weather_chat.server import create_app
from weather_chat.store import SessionStore


def _client(tmp_data_dir: Path, log: CallLog, **kwargs) -> TestClient:
    store = SessionStore(str(tmp_data_dir))
    app = create_app(
        config_path=str(tmp_data_dir / "missing.yaml"),
        store=store,
        fetcher=kwargs.get("fetcher") or FakeFetcher(log),
        composer=kwargs.get("composer") or FakeComposer(log),
    )
    return TestClient(app)


def test_chat_turn_roundtrip(clean_env, tmp_data_dir: Path, call_log: CallLog):
    """A weather turn returns both messages and persists them."""
    client = _client(tmp_data_dir, call_log)
    sid = client.post("/sessions").json()["id"]

    r = client.post(f"/sessions/{sid}/messages", json={"message": "What's the weather in Tokyo?"})
    assert r.status_code == 200
    body = r.json()
    assert body["busy"] is False
    assert [m["role"] for m in body["session"]["messages"]] == ["user", "assistant"]
    assert body["session"]["title"] == "What's the weather in..."
    assert call_log.names() == ["fetch", "compose"]

    reloaded = SessionStore(str(tmp_data_dir)).get(sid)
    assert len(reloaded.messages) == 2


def test_session_lifecycle(clean_env, tmp_data_dir: Path, call_log: CallLog):
    client = _client(tmp_data_dir, call_log)
    first = client.post("/sessions").json()["id"]
    second = client.post("/sessions").json()["id"]

    assert [s["id"] for s in client.get("/sessions").json()] == [second, first]
    assert client.get("/sessions/current").json()["id"] == second

    assert client.post(f"/sessions/{first}/select").status_code == 200
    assert client.delete(f"/sessions/{second}").status_code == 204
    assert client.get("/sessions/current").json()["id"] == first

    assert client.delete(f"/sessions/{first}").status_code == 204
    assert client.get("/sessions/current").status_code == 404
    assert client.get(f"/sessions/{first}").status_code == 404
    assert client.delete(f"/sessions/{first}").status_code == 404


def test_rejected_turns(clean_env, tmp_data_dir: Path, call_log: CallLog):
    client = _client(tmp_data_dir, call_log)
    sid = client.post("/sessions").json()["id"]

    assert client.post(f"/sessions/{sid}/messages", json={"message": "   "}).status_code == 400
    assert client.post(f"/sessions/{sid}/messages", json={"message": ""}).status_code == 400
    assert client.post("/sessions/missing/messages", json={"message": "hi"}).status_code == 404
    assert call_log.calls == []


def test_like_and_dislike(clean_env, tmp_data_dir: Path, call_log: CallLog):
    client = _client(tmp_data_dir, call_log)
    sid = client.post("/sessions").json()["id"]
    messages = client.post(f"/sessions/{sid}/messages", json={"message": "hello"}).json()["session"]["messages"]
    mid = messages[-1]["id"]

    liked = client.post(f"/sessions/{sid}/messages/{mid}/like").json()
    assert liked["liked"] is True and liked["disliked"] is False
    disliked = client.post(f"/sessions/{sid}/messages/{mid}/dislike").json()
    assert disliked["disliked"] is True and disliked["liked"] is False
    assert client.post(f"/sessions/{sid}/messages/nope/like").status_code == 404


def test_export_pdf(clean_env, tmp_data_dir: Path, call_log: CallLog):
    client = _client(tmp_data_dir, call_log)
    sid = client.post("/sessions").json()["id"]
    assert client.get(f"/sessions/{sid}/export.pdf").status_code == 400

    client.post(f"/sessions/{sid}/messages", json={"message": "hello"})
    r = client.get(f"/sessions/{sid}/export.pdf")
    assert r.status_code == 200
    assert r.headers["content-type"] == "application/pdf"
    assert 'filename="weather-chat-' in r.headers["content-disposition"]
    assert r.content.startswith(b"%PDF")


def test_theme_preference(clean_env, tmp_data_dir: Path, call_log: CallLog):
    client = _client(tmp_data_dir, call_log)
    assert client.get("/preferences/theme").json() == {"theme": "light"}
    assert client.put("/preferences/theme", json={"theme": "dark"}).json() == {"theme": "dark"}
    assert client.post("/preferences/theme/toggle").json() == {"theme": "light"}
    assert client.put("/preferences/theme", json={"theme": "blue"}).status_code == 422


def test_health_reports_missing_key(clean_env, tmp_data_dir: Path, call_log: CallLog):
    client = _client(tmp_data_dir, call_log)
    body = client.get("/health").json()
    assert body["ok"] is True
    assert body["api_key_configured"] is False
