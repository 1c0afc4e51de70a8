"""Reply generation through the Gemini ``generateContent`` REST endpoint."""
from __future__ import annotations

import contextlib
import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional

import httpx

from .config import resolve_api_key
from .errors import ApiError, ConfigError, NetworkError

logger = logging.getLogger(__name__)

NO_RESPONSE_TEXT = "Sorry, I couldn't generate a response."


# -----------------------------
# Types & defaults
# -----------------------------
@dataclass
class GenerationConfig:
    temperature: float = 0.7
    top_k: int = 40
    top_p: float = 0.95
    max_output_tokens: int = 1024

    def to_payload(self) -> Dict[str, Any]:
        return {
            "temperature": self.temperature,
            "topK": self.top_k,
            "topP": self.top_p,
            "maxOutputTokens": self.max_output_tokens,
        }


def build_prompt(user_text: str, weather_text: Optional[str] = None) -> str:
    prompt = f'You are a helpful weather assistant chatbot. The user asked: "{user_text}"\n\n'
    if weather_text:
        prompt += f"Weather data from API: {weather_text}\n\n"
        prompt += (
            "Please analyze this weather data carefully. If the data covers a different "
            "location than the one the user asked about, say so plainly, share what the "
            "data does contain, and explain that you only have information for the location "
            "named in the data. Never claim the data matches the requested location unless "
            "it clearly does.\n\n"
            "Provide a concise, helpful response about the weather. Summarize the weather "
            "data in a user-friendly way."
        )
    else:
        prompt += (
            "Please provide a helpful response. If this is a weather query, ask the user "
            "to specify a location for weather information."
        )
    prompt += "\n\nKeep the response conversational and helpful."
    return prompt


def _first_candidate_text(data: Any) -> Optional[str]:
    try:
        text = data["candidates"][0]["content"]["parts"][0]["text"]
    except (KeyError, IndexError, TypeError):
        return None
    return text if isinstance(text, str) and text else None


# -----------------------------
# Composer
# -----------------------------
class ResponseComposer:
    """Turn the user's text (and optional weather text) into an assistant reply."""

    def __init__(
        self,
        api_key: Optional[str],
        *,
        base_url: str = "https://generativelanguage.googleapis.com/v1beta",
        model: str = "gemini-2.5-flash",
        generation: Optional[GenerationConfig] = None,
        timeout: float = 20.0,
        client: Optional[httpx.Client] = None,
    ) -> None:
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.model = model
        self.generation = generation or GenerationConfig()
        self.timeout = httpx.Timeout(float(timeout))
        self._client = client

    @classmethod
    def from_config(cls, cfg: Dict[str, Any], client: Optional[httpx.Client] = None) -> "ResponseComposer":
        c = cfg.get("composer", {})
        gen = GenerationConfig(
            temperature=float(c.get("temperature", 0.7)),
            top_k=int(c.get("top_k", 40)),
            top_p=float(c.get("top_p", 0.95)),
            max_output_tokens=int(c.get("max_output_tokens", 1024)),
        )
        return cls(
            resolve_api_key(cfg),
            base_url=c.get("base_url", "https://generativelanguage.googleapis.com/v1beta"),
            model=c.get("model", "gemini-2.5-flash"),
            generation=gen,
            timeout=c.get("timeout", 20.0),
            client=client,
        )

    @property
    def endpoint(self) -> str:
        return f"{self.base_url}/models/{self.model}:generateContent"

    def build_payload(self, prompt: str) -> Dict[str, Any]:
        return {
            "contents": [{"parts": [{"text": prompt}]}],
            "generationConfig": self.generation.to_payload(),
        }

    def _open(self):
        if self._client is not None:
            return contextlib.nullcontext(self._client)
        return httpx.Client(timeout=self.timeout)

    def compose(self, user_text: str, weather_text: Optional[str] = None) -> str:
        """Return the assistant reply.

        Raises
        ------
        ConfigError
            No API key is configured.
        NetworkError
            Transport failure or timeout.
        ApiError
            Non-2xx status, or a body that is not JSON.
        """
        if not self.api_key:
            raise ConfigError(
                "Gemini API key not found. Set GEMINI_API_KEY or composer.api_key in the config."
            )

        payload = self.build_payload(build_prompt(user_text, weather_text))
        try:
            with self._open() as client:
                resp = client.post(
                    self.endpoint,
                    params={"key": self.api_key},
                    json=payload,
                    headers={"Content-Type": "application/json"},
                    timeout=self.timeout,
                )
        except httpx.HTTPError as e:
            # httpx error messages can include the URL, and with it the key.
            raise NetworkError(f"Gemini API unreachable: {type(e).__name__}") from e

        if not resp.is_success:
            body = resp.text
            logger.warning("Gemini API error response (%s): %s", resp.status_code, body[:500])
            raise ApiError(
                f"Gemini API error: {resp.status_code}", status=resp.status_code, body=body
            )

        try:
            data = resp.json()
        except ValueError as e:
            raise ApiError("Gemini API returned a non-JSON body", status=resp.status_code) from e

        return _first_candidate_text(data) or NO_RESPONSE_TEXT
