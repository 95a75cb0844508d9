"""Select the configured LLM provider."""

from __future__ import annotations

from catalyst.config import Settings
from catalyst.llm.anthropic import AnthropicProvider
from catalyst.llm.base import LLMProvider
from catalyst.llm.openrouter import OpenRouterProvider


def create_provider(settings: Settings) -> LLMProvider:
    if settings.ai_provider == "anthropic":
        return AnthropicProvider(
            api_key=settings.anthropic_api_key,
            model=settings.model,
            base_url=settings.anthropic_base_url,
            max_tokens=settings.max_tokens,
            request_timeout_seconds=settings.request_timeout_seconds,
        )
    if settings.ai_provider == "openai":
        return OpenRouterProvider(
            api_key=settings.openai_api_key,
            model=settings.model,
            base_url=settings.openai_base_url,
            max_tokens=settings.max_tokens,
            request_timeout_seconds=settings.request_timeout_seconds,
        )
    if settings.ai_provider == "openrouter":
        return OpenRouterProvider(
            api_key=settings.openrouter_api_key,
            model=settings.model,
            base_url=settings.openrouter_base_url,
            max_tokens=settings.max_tokens,
            request_timeout_seconds=settings.request_timeout_seconds,
        )
    raise ValueError(f"Unknown AI provider: {settings.ai_provider}")
