from __future__ import annotations

from pathlib import Path

import pytest

from weather_chat.config import load_config, resolve_api_key


def test_missing_file_falls_back_to_defaults(clean_env, tmp_path: Path):
    cfg = load_config(str(tmp_path / "nope.yaml"))
    assert cfg["storage"]["data_dir"] == "data"
    assert cfg["composer"]["model"] == "gemini-2.5-flash"


def test_file_values_merge_over_defaults(clean_env, tmp_path: Path):
    path = tmp_path / "cfg.yaml"
    path.write_text("weather:\n  timeout: 3\n", encoding="utf-8")
    cfg = load_config(str(path))
    assert cfg["weather"]["timeout"] == 3
    assert cfg["weather"]["url"].startswith("https://")


def test_env_overrides_and_config_env_var(clean_env, monkeypatch, tmp_path: Path):
    path = tmp_path / "cfg.yaml"
    path.write_text("storage:\n  data_dir: here\n", encoding="utf-8")
    monkeypatch.setenv("WEATHER_CHAT_CONFIG", str(path))
    monkeypatch.setenv("WEATHER_CHAT__WEATHER__TIMEOUT", "7.5")
    monkeypatch.setenv("WEATHER_CHAT__SERVER__DEBUG", "true")
    cfg = load_config()
    assert cfg["storage"]["data_dir"] == "here"
    assert cfg["weather"]["timeout"] == 7.5
    assert cfg["server"]["debug"] is True


def test_invalid_yaml_is_an_error(clean_env, tmp_path: Path):
    path = tmp_path / "cfg.yaml"
    path.write_text("- just\n- a list\n", encoding="utf-8")
    with pytest.raises(RuntimeError):
        load_config(str(path))


def test_api_key_resolution_order(clean_env, monkeypatch):
    assert resolve_api_key({"composer": {}}) is None
    monkeypatch.setenv("VITE_GEMINI_API_KEY", "vite")
    assert resolve_api_key({"composer": {}}) == "vite"
    monkeypatch.setenv("GEMINI_API_KEY", "plain")
    assert resolve_api_key({"composer": {}}) == "plain"
    assert resolve_api_key({"composer": {"api_key": "cfg"}}) == "cfg"
