"""Configuration loading utilities for the weather chat server.

This module handles layered configuration:
1. Explicit path argument (highest precedence)
2. Environment variable WEATHER_CHAT_CONFIG
3. Fallback to "config/default.yaml"

Missing sections are filled from :data:`DEFAULTS`. It also supports overrides
from environment variables with prefix ``WEATHER_CHAT__`` (e.g.,
WEATHER_CHAT__WEATHER__TIMEOUT=5).
"""

from __future__ import annotations

import copy
import logging
import os
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

logger = logging.getLogger(__name__)

ENV_PREFIX = "WEATHER_CHAT__"
API_KEY_ENV_VARS = ("GEMINI_API_KEY", "VITE_GEMINI_API_KEY")

DEFAULTS: Dict[str, Any] = {
    "server": {"cors_origins": ["*"]},
    "storage": {"data_dir": "data"},
    "logging": {"level": "INFO"},
    "weather": {
        "url": "https://millions-screeching-vultur.mastra.cloud/api/agents/weatherAgent/stream",
        "run_id": "weatherAgent",
        "resource_id": "weatherAgent",
        "thread_id": "22-AI&DSB14-26",
        "timeout": 20.0,
        "deadline": 30.0,
    },
    "composer": {
        "base_url": "https://generativelanguage.googleapis.com/v1beta",
        "model": "gemini-2.5-flash",
        "api_key": None,
        "timeout": 20.0,
        "temperature": 0.7,
        "top_k": 40,
        "top_p": 0.95,
        "max_output_tokens": 1024,
    },
}


def _merge(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    out = copy.deepcopy(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(out.get(key), dict):
            out[key] = _merge(out[key], value)
        else:
            out[key] = value
    return out


def _apply_env_overrides(cfg: Dict[str, Any]) -> Dict[str, Any]:
    """Apply environment variable overrides with prefix WEATHER_CHAT__."""
    for key, value in os.environ.items():
        if not key.startswith(ENV_PREFIX):
            continue
        # e.g., WEATHER_CHAT__COMPOSER__MODEL -> cfg["composer"]["model"]
        parts = key[len(ENV_PREFIX):].lower().split("__")
        sub = cfg
        for p in parts[:-1]:
            if p not in sub or not isinstance(sub[p], dict):
                sub[p] = {}
            sub = sub[p]
        leaf = parts[-1]
        # Attempt to parse simple types (bool, int, float)
        if value.lower() in {"true", "false"}:
            sub[leaf] = value.lower() == "true"
        else:
            try:
                if "." in value:
                    sub[leaf] = float(value)
                else:
                    sub[leaf] = int(value)
            except ValueError:
                sub[leaf] = value
    return cfg


def load_config(path: Optional[str] = None) -> Dict[str, Any]:
    """Load YAML configuration for the weather chat server.

    Parameters
    ----------
    path : str | None
        Optional path to a configuration file. If not provided, the
        environment variable ``WEATHER_CHAT_CONFIG`` is consulted. As a
        last resort ``config/default.yaml`` is used.

    Returns
    -------
    Dict[str, Any]
        Defaults merged with the file contents, with environment overrides applied.
    """
    if path is None:
        path = os.environ.get("WEATHER_CHAT_CONFIG", "config/default.yaml")

    path_obj = Path(path)
    if not path_obj.exists():
        logger.warning("Config file not found at %s. Using defaults.", path_obj)
        return _apply_env_overrides(copy.deepcopy(DEFAULTS))

    with path_obj.open("r", encoding="utf-8") as f:
        try:
            loaded = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise RuntimeError(f"Failed to parse config file {path_obj}: {e}")

    if not isinstance(loaded, dict):
        raise RuntimeError(f"Invalid config format in {path_obj}, expected dict.")

    return _apply_env_overrides(_merge(DEFAULTS, loaded))


def resolve_api_key(cfg: Dict[str, Any]) -> Optional[str]:
    """Return the generative-language API key from config or environment."""
    key = (cfg.get("composer") or {}).get("api_key")
    if key:
        return str(key)
    for var in API_KEY_ENV_VARS:
        val = os.environ.get(var)
        if val:
            return val
    return None
