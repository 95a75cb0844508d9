"""LLM provider interface.

Conversation messages use the OpenAI chat shape regardless of provider:
``{"role": "user" | "assistant", "content": str}``, assistant turns may
carry ``tool_calls`` and tool results are ``{"role": "tool",
"tool_call_id": str, "content": str}``. Providers translate as needed.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any

from catalyst.models import LLMResponse


class LLMProvider(ABC):
    """Abstract model provider used by the agent runtime."""

    @abstractmethod
    async def generate(
        self,
        system: str,
        messages: list[dict[str, Any]],
        tools: list[dict[str, Any]] | None = None,
    ) -> LLMResponse:
        """Generate a model response."""
