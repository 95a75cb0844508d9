"""OpenAI-compatible chat completions provider (OpenRouter or OpenAI)."""

from __future__ import annotations

import json
import logging
from typing import Any

from catalyst.llm.transport import HttpLLMProvider
from catalyst.models import LLMResponse, LLMToolCall

_LOGGER = logging.getLogger(__name__)


class OpenRouterProvider(HttpLLMProvider):
    """Talks to ``/chat/completions``; the system prompt leads the message list."""

    label = "Chat completions"

    def __init__(
        self,
        api_key: str,
        model: str,
        base_url: str = "https://openrouter.ai/api/v1",
        max_tokens: int = 1024,
        request_timeout_seconds: float = 60.0,
    ) -> None:
        super().__init__(api_key, model, base_url, max_tokens, request_timeout_seconds)

    async def generate(
        self,
        system: str,
        messages: list[dict[str, Any]],
        tools: list[dict[str, Any]] | None = None,
    ) -> LLMResponse:
        payload: dict[str, Any] = {
            "model": self._model,
            "max_tokens": self._max_tokens,
            "messages": [{"role": "system", "content": system}, *messages],
        }
        if tools:
            payload["tools"] = tools

        data = await self._post_with_retry(
            "/chat/completions",
            {"Authorization": f"Bearer {self._api_key}", "Content-Type": "application/json"},
            payload,
        )
        return parse_chat_completion(data)


def parse_chat_completion(data: dict[str, Any]) -> LLMResponse:
    first = data["choices"][0]
    message = first["message"]
    content = message.get("content") or ""
    raw_calls = message.get("tool_calls") or []
    _LOGGER.debug(
        "LLM response: finish_reason=%r content=%r tool_calls=%d",
        first.get("finish_reason"),
        content[:200],
        len(raw_calls),
    )

    calls = [
        LLMToolCall(
            name=(call.get("function") or {}).get("name", ""),
            arguments=_arguments((call.get("function") or {}).get("arguments")),
            call_id=call.get("id"),
        )
        for call in raw_calls
    ]
    return LLMResponse(content=content, tool_calls=calls, stop_reason=first.get("finish_reason"), raw=data)


def _arguments(raw: Any) -> dict[str, Any]:
    # Arguments arrive as a JSON string; some gateways already decode them.
    if isinstance(raw, dict):
        return raw
    try:
        parsed = json.loads(raw or "{}")
    except (TypeError, json.JSONDecodeError):
        return {}
    return parsed if isinstance(parsed, dict) else {}
