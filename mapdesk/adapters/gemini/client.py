"""Minimal client for the Gemini ``generateContent`` endpoint."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Optional

import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from ...config import GeminiConfig
from ...domain.errors import DependencyError


@dataclass
class GeminiClient:
    """Sends a single text prompt and returns the first candidate's text.

    The HTTP session retries transient failures (429 and 5xx) before
    giving up. Every failure, including a missing API key or an
    unexpected response shape, surfaces as DependencyError.

    Attributes:
        config: Gemini settings (key, model, endpoint, retries)
    """

    config: GeminiConfig = field(default_factory=GeminiConfig)

    _session: requests.Session = field(init=False, repr=False)
    _logger: logging.Logger = field(init=False, repr=False)

    def __post_init__(self) -> None:
        self._logger = logging.getLogger(__name__)
        self._session = requests.Session()
        retry_strategy = Retry(
            total=self.config.max_retries,
            backoff_factor=0.5,
            status_forcelist=[429, 500, 502, 503, 504],
            allowed_methods=["POST"],
        )
        adapter = HTTPAdapter(max_retries=retry_strategy)
        self._session.mount("https://", adapter)
        self._session.mount("http://", adapter)
        self._session.headers.update({"Content-Type": "application/json"})

    @property
    def is_configured(self) -> bool:
        return bool(self.config.api_key.get_secret_value())

    @property
    def endpoint(self) -> str:
        base = self.config.base_url.rstrip("/")
        return f"{base}/models/{self.config.model}:generateContent"

    def generate(self, prompt: str, timeout: Optional[float] = None) -> str:
        """Return the model's text answer to ``prompt``.

        Raises:
            DependencyError: On a missing key, transport error, non-2xx
                status or a response without candidate text.
        """
        if not self.is_configured:
            raise DependencyError("Gemini API key is not configured", service="gemini")

        body: Dict[str, Any] = {"contents": [{"parts": [{"text": prompt}]}]}
        try:
            response = self._session.post(
                self.endpoint,
                params={"key": self.config.api_key.get_secret_value()},
                json=body,
                timeout=timeout or self.config.match_timeout_seconds,
            )
            response.raise_for_status()
            payload = response.json()
        except (requests.exceptions.RequestException, ValueError) as e:
            self._logger.warning(
                "Gemini request failed",
                extra={"model": self.config.model, "error": str(e)},
            )
            raise DependencyError("Gemini request failed", cause=e, service="gemini")

        try:
            return payload["candidates"][0]["content"]["parts"][0]["text"].strip()
        except (KeyError, IndexError, TypeError, AttributeError) as e:
            raise DependencyError(
                "Gemini response had no candidate text", cause=e, service="gemini"
            )
