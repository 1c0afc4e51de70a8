"""Client for the streaming weather-agent endpoint."""
from __future__ import annotations

import contextlib
import logging
import time
from typing import Any, Dict, List, Optional

import httpx

from .errors import NetworkError, StreamError

logger = logging.getLogger(__name__)

_clock = time.monotonic

HEADERS = {
    "x-mastra-dev-playground": "true",
    "Content-Type": "application/json",
}


def weather_query(location: str) -> str:
    return f"What's the weather in {location}?"


class WeatherClient:
    """Fetch raw weather text for a location.

    One ``POST`` per call, no retries. The response body is read as a text
    stream until exhausted and the concatenated, stripped text is returned.
    Pass ``client`` to reuse a connection pool (or a mock transport in tests);
    otherwise a short-lived :class:`httpx.Client` is opened per call.

    ``timeout`` bounds each connect/read; ``deadline`` bounds the whole call,
    including a stream that keeps trickling chunks.
    """

    def __init__(
        self,
        url: str,
        *,
        run_id: str = "weatherAgent",
        resource_id: str = "weatherAgent",
        thread_id: str = "weather-chat",
        timeout: float = 20.0,
        deadline: float = 30.0,
        client: Optional[httpx.Client] = None,
    ) -> None:
        self.url = url
        self.run_id = run_id
        self.resource_id = resource_id
        self.thread_id = thread_id
        self.timeout = httpx.Timeout(float(timeout))
        self.deadline = float(deadline)
        self._client = client

    @classmethod
    def from_config(cls, cfg: Dict[str, Any], client: Optional[httpx.Client] = None) -> "WeatherClient":
        w = cfg.get("weather", {})
        return cls(
            w["url"],
            run_id=w.get("run_id", "weatherAgent"),
            resource_id=w.get("resource_id", "weatherAgent"),
            thread_id=w.get("thread_id", "weather-chat"),
            timeout=w.get("timeout", 20.0),
            deadline=w.get("deadline", 30.0),
            client=client,
        )

    def build_payload(self, location: str) -> Dict[str, Any]:
        return {
            "messages": [{"role": "user", "content": weather_query(location)}],
            "runId": self.run_id,
            "maxRetries": 2,
            "maxSteps": 5,
            "temperature": 0.5,
            "topP": 1,
            "runtimeContext": {},
            "threadId": self.thread_id,
            "resourceId": self.resource_id,
        }

    def _open(self):
        if self._client is not None:
            return contextlib.nullcontext(self._client)
        return httpx.Client(timeout=self.timeout)

    def fetch(self, location: str) -> str:
        """Return the weather text for ``location``.

        Raises
        ------
        NetworkError
            Endpoint unreachable, timed out, or answered with a non-2xx status.
        StreamError
            The body could not be read to completion, or reading it outlasted
            ``deadline``.
        """
        payload = self.build_payload(location)
        logger.info("Requesting weather for %r", location)
        started = _clock()
        try:
            with self._open() as client:
                with client.stream(
                    "POST", self.url, json=payload, headers=HEADERS, timeout=self.timeout
                ) as resp:
                    if not resp.is_success:
                        raise NetworkError(
                            f"Weather API error: {resp.status_code}", status=resp.status_code
                        )
                    chunks: List[str] = []
                    try:
                        for chunk in resp.iter_text():
                            chunks.append(chunk)
                            if _clock() - started > self.deadline:
                                raise StreamError(
                                    f"Weather stream exceeded {self.deadline:g}s deadline"
                                )
                    except httpx.HTTPError as e:
                        raise StreamError(f"Weather stream interrupted: {e}") from e
        except httpx.HTTPError as e:
            raise NetworkError(f"Weather API unreachable: {e}") from e
        return "".join(chunks).strip()
