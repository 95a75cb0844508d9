"""Anthropic Messages API provider."""

from __future__ import annotations

import json
import logging
from typing import Any

from catalyst.llm.transport import HttpLLMProvider
from catalyst.models import LLMResponse, LLMToolCall

_LOGGER = logging.getLogger(__name__)

ANTHROPIC_VERSION = "2023-06-01"


class AnthropicProvider(HttpLLMProvider):
    """LLM provider talking to ``/v1/messages``.

    The runtime speaks the OpenAI chat shape; this class translates tool
    specs, assistant tool calls and tool results into content blocks.
    """

    label = "Anthropic"

    def __init__(
        self,
        api_key: str,
        model: str,
        base_url: str = "https://api.anthropic.com",
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
            "system": system,
            "messages": to_anthropic_messages(messages),
        }
        if tools:
            payload["tools"] = to_anthropic_tools(tools)

        data = await self._post_with_retry(
            "/v1/messages",
            {
                "x-api-key": self._api_key,
                "anthropic-version": ANTHROPIC_VERSION,
                "content-type": "application/json",
            },
            payload,
        )
        return parse_anthropic_response(data)


def to_anthropic_tools(tools: list[dict[str, Any]]) -> list[dict[str, Any]]:
    converted = []
    for spec in tools:
        function = spec.get("function", spec)
        converted.append(
            {
                "name": function["name"],
                "description": function.get("description", ""),
                "input_schema": function.get("parameters") or {"type": "object", "properties": {}},
            }
        )
    return converted


def to_anthropic_messages(messages: list[dict[str, Any]]) -> list[dict[str, Any]]:
    """Translate OpenAI-shaped chat messages into Anthropic turns.

    A run of consecutive ``tool`` messages becomes one user turn holding a
    ``tool_result`` block per call, answering the preceding assistant turn.
    """

    converted: list[dict[str, Any]] = []
    pending_results: list[dict[str, Any]] = []

    def flush_results() -> None:
        if pending_results:
            converted.append({"role": "user", "content": list(pending_results)})
            pending_results.clear()

    for message in messages:
        role = message.get("role")
        if role == "tool":
            pending_results.append(
                {
                    "type": "tool_result",
                    "tool_use_id": message.get("tool_call_id") or "",
                    "content": str(message.get("content") or ""),
                }
            )
            continue

        flush_results()
        if role == "assistant" and message.get("tool_calls"):
            blocks: list[dict[str, Any]] = []
            if message.get("content"):
                blocks.append({"type": "text", "text": message["content"]})
            for call in message["tool_calls"]:
                function = call.get("function", {})
                arguments = function.get("arguments") or {}
                if isinstance(arguments, str):
                    try:
                        arguments = json.loads(arguments)
                    except json.JSONDecodeError:
                        arguments = {}
                blocks.append(
                    {
                        "type": "tool_use",
                        "id": call.get("id") or "",
                        "name": function.get("name", ""),
                        "input": arguments,
                    }
                )
            converted.append({"role": "assistant", "content": blocks})
        elif role in ("user", "assistant"):
            converted.append({"role": role, "content": message.get("content") or ""})
        # System messages travel in the top-level ``system`` field.

    flush_results()
    return converted


def parse_anthropic_response(data: dict[str, Any]) -> LLMResponse:
    """The reply text is the first ``text`` block; every ``tool_use`` block is a call."""

    content: str | None = None
    tool_calls: list[LLMToolCall] = []
    for block in data.get("content") or []:
        if block.get("type") == "text":
            if content is None:
                content = block.get("text", "")
        elif block.get("type") == "tool_use":
            arguments = block.get("input")
            tool_calls.append(
                LLMToolCall(
                    name=block.get("name", ""),
                    arguments=arguments if isinstance(arguments, dict) else {},
                    call_id=block.get("id"),
                )
            )
    content = content or ""
    _LOGGER.debug(
        "LLM response: stop_reason=%r content=%r tool_calls=%d",
        data.get("stop_reason"),
        content[:200],
        len(tool_calls),
    )
    return LLMResponse(
        content=content,
        tool_calls=tool_calls,
        stop_reason=data.get("stop_reason"),
        raw=data,
    )
