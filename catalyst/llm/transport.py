"""Shared HTTP plumbing for the hosted model providers."""

from __future__ import annotations

import asyncio
import logging
from typing import Any

import httpx

from catalyst.llm.base import LLMProvider

_LOGGER = logging.getLogger(__name__)

_MAX_RETRIES = 3
_RETRY_BACKOFF_SECONDS = [5, 15, 45]


class HttpLLMProvider(LLMProvider):
    """Base for providers reached over JSON-over-HTTPS.

    Subclasses build the request payload and parse the reply; posting, the
    429 backoff and error propagation live here.
    """

    label = "LLM"

    def __init__(
        self,
        api_key: str,
        model: str,
        base_url: str,
        max_tokens: int = 1024,
        request_timeout_seconds: float = 60.0,
    ) -> None:
        self._api_key = api_key
        self._model = model
        self._base_url = base_url
        self._max_tokens = max_tokens
        self._request_timeout_seconds = request_timeout_seconds

    async def _post_with_retry(self, path: str, headers: dict[str, str], payload: dict[str, Any]) -> dict[str, Any]:
        """POST ``payload`` and return the decoded body, backing off on HTTP 429."""

        timeout = httpx.Timeout(self._request_timeout_seconds)
        async with httpx.AsyncClient(base_url=self._base_url, timeout=timeout) as client:
            for attempt in range(_MAX_RETRIES + 1):
                response = await client.post(path, headers=headers, json=payload)
                if response.status_code != 429 or attempt == _MAX_RETRIES:
                    break
                wait = _RETRY_BACKOFF_SECONDS[attempt]
                _LOGGER.warning(
                    "%s rate limited (429), retrying in %ds (attempt %d/%d)",
                    self.label,
                    wait,
                    attempt + 1,
                    _MAX_RETRIES,
                )
                await asyncio.sleep(wait)
            response.raise_for_status()
            return response.json()
