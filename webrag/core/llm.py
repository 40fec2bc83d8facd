import logging
import os
from typing import Optional

import httpx

from webrag.config import LLM
from webrag.core.exceptions import CompletionFailed

logger = logging.getLogger(__name__)


class LLMWrapper:
    """Single-shot text completion through an OpenAI-compatible chat API."""

    def __init__(self, api_key: Optional[str] = None, http_client: Optional[httpx.Client] = None):
        self._api_key = api_key or os.getenv("OPENROUTER_API_KEY")
        if not self._api_key:
            raise RuntimeError("Missing OPENROUTER_API_KEY environment variable")
        self.endpoint = os.getenv("OPENROUTER_URL", LLM["endpoint"])
        self.model = os.getenv("OPENROUTER_MODEL", LLM["model"])
        self.max_tokens = LLM["max_tokens"]
        self.temperature = LLM["temperature"]
        self._http = http_client or httpx.Client(timeout=httpx.Timeout(LLM["timeout_s"], connect=10.0))

    def close(self) -> None:
        self._http.close()

    def complete(self, prompt: str) -> str:
        """Send prompt as one user message and return the generated text.

        Raises CompletionFailed on transport errors, non-2xx responses and
        payloads without a message.
        """
        payload = {
            "model": self.model,
            "messages": [{"role": "user", "content": prompt}],
            "max_tokens": self.max_tokens,
            "temperature": self.temperature,
        }
        headers = {
            "Authorization": f"Bearer {self._api_key}",
            "Content-Type": "application/json",
        }

        try:
            response = self._http.post(self.endpoint, json=payload, headers=headers)
        except httpx.HTTPError as e:
            raise CompletionFailed(f"Completion request failed: {e}") from e

        if response.status_code >= 400:
            logger.error("[LLM] Completion API error %d: %s", response.status_code, response.text[:200])
            raise CompletionFailed(f"Completion API returned {response.status_code}")

        try:
            content = response.json()["choices"][0]["message"]["content"]
        except (ValueError, KeyError, IndexError, TypeError) as e:
            raise CompletionFailed(f"Malformed completion response: {e}") from e
        if not isinstance(content, str):
            raise CompletionFailed("Completion response has no text content")
        return content
