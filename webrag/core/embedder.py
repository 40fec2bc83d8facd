import logging
import os
import time
from typing import List, Optional

import httpx

from webrag.config import EMBEDDING

logger = logging.getLogger(__name__)


def zero_vector(dimensions: int) -> List[float]:
    return [0.0] * dimensions


def is_zero_vector(vector: List[float]) -> bool:
    return not any(vector)


class Embedder:
    """Text -> fixed-length vector through the Gemini embedContent API.

    embed() never raises: empty input and every failure come back as the
    all-zero vector of the configured dimensionality.
    """

    def __init__(self, api_key: Optional[str] = None, http_client: Optional[httpx.Client] = None):
        self._api_key = api_key or os.getenv("GOOGLE_API_KEY")
        if not self._api_key:
            raise RuntimeError("Missing GOOGLE_API_KEY environment variable")

        self._endpoint = os.getenv("GOOGLE_EMBEDDINGS_URL", EMBEDDING["endpoint"])
        self._http = http_client or httpx.Client(timeout=httpx.Timeout(EMBEDDING["timeout_s"], connect=10.0))
        self.model = EMBEDDING["model"]
        self.dimensions = EMBEDDING["dimensions"]
        self.max_input_chars = EMBEDDING["max_input_chars"]
        self.max_retries = EMBEDDING["max_retries"]

    def close(self) -> None:
        self._http.close()

    def _sleep_with_jitter(self, seconds: float):
        if seconds <= 0:
            return
        time.sleep(seconds + 0.05)

    def _get_retry_after_seconds(self, resp: httpx.Response) -> Optional[float]:
        retry_after = resp.headers.get("retry-after")
        if not retry_after:
            return None
        try:
            return float(retry_after)
        except ValueError:
            return None

    def _request(self, text: str) -> List[float]:
        payload = {
            "model": f"models/{self.model}",
            "content": {"parts": [{"text": text}]},
        }
        headers = {
            "x-goog-api-key": self._api_key,
            "Content-Type": "application/json",
        }

        attempt = 0
        while True:
            attempt += 1
            resp = self._http.post(self._endpoint, headers=headers, json=payload)

            if resp.status_code == 429 and attempt <= self.max_retries:
                retry_after_s = self._get_retry_after_seconds(resp)
                backoff = retry_after_s if retry_after_s is not None else min(30.0, 2.0 ** attempt)
                logger.warning("[Embedder] 429 from embedding API, retrying in %.2fs (attempt %d)", backoff, attempt)
                self._sleep_with_jitter(backoff)
                continue

            resp.raise_for_status()

            body = resp.json()
            values = (body.get("embedding") or {}).get("values")
            if not isinstance(values, list):
                raise RuntimeError("Unexpected embedding response format")
            if len(values) != self.dimensions:
                raise RuntimeError(
                    f"Embedding has {len(values)} dimensions, expected {self.dimensions}"
                )
            return [float(v) for v in values]

    def embed(self, text: str) -> List[float]:
        """Embed a single text, degrading to the zero vector on failure."""
        if not text or not text.strip():
            logger.warning("[Embedder] Empty text, using zero vector")
            return zero_vector(self.dimensions)

        trimmed = text[: self.max_input_chars]
        try:
            return self._request(trimmed)
        except Exception as e:
            logger.error("[Embedder] Embedding failed, using zero vector: %s: %s", type(e).__name__, e)
            return zero_vector(self.dimensions)
