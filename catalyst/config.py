"""Application configuration."""

from __future__ import annotations

from pathlib import Path
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class StoreSettings(BaseModel):
    """Connection details for one ecommerce backend."""

    name: str
    platform: Literal["shopify", "medusa", "woocommerce"]
    url: str
    api_key: str | None = Field(default=None, alias="apiKey")
    access_token: str | None = Field(default=None, alias="accessToken")
    # WooCommerce authenticates with a consumer key/secret pair.
    consumer_key: str | None = Field(default=None, alias="consumerKey")
    consumer_secret: str | None = Field(default=None, alias="consumerSecret")

    model_config = ConfigDict(populate_by_name=True)


class Settings(BaseSettings):
    """Environment-driven settings validated at startup."""

    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", extra="ignore", populate_by_name=True
    )

    ai_provider: Literal["anthropic", "openai", "openrouter"] = Field(
        default="anthropic", alias="CATALYST_AI_PROVIDER"
    )
    anthropic_api_key: str = Field(default="", alias="ANTHROPIC_API_KEY")
    anthropic_base_url: str = Field(default="https://api.anthropic.com", alias="ANTHROPIC_BASE_URL")
    openai_api_key: str = Field(default="", alias="OPENAI_API_KEY")
    openai_base_url: str = Field(default="https://api.openai.com/v1", alias="OPENAI_BASE_URL")
    openrouter_api_key: str = Field(default="", alias="OPENROUTER_API_KEY")
    openrouter_base_url: str = Field(
        default="https://openrouter.ai/api/v1",
        alias="OPENROUTER_BASE_URL",
    )
    model: str = Field(default="claude-sonnet-4-20250514", alias="CATALYST_MODEL")
    max_tokens: int = Field(default=1024, alias="CATALYST_MAX_TOKENS")

    stores: list[StoreSettings] = Field(default_factory=list, alias="CATALYST_STORES")

    workspace: Path = Field(default=Path(".catalyst"), alias="CATALYST_WORKSPACE")
    # "file" persists sessions and memory under the workspace, "memory" keeps them in-process.
    memory_backend: Literal["file", "memory"] = Field(default="file", alias="CATALYST_MEMORY_BACKEND")
    long_term_memory: bool = Field(default=True, alias="CATALYST_LONG_TERM_MEMORY")

    agent_name: str = Field(default="Catalyst", alias="AGENT_NAME")
    agent_greeting: str = Field(default="Hi! How can I help you today?", alias="AGENT_GREETING")

    max_tool_iterations: int = Field(default=10, alias="CATALYST_MAX_TOOL_ITERATIONS")
    request_timeout_seconds: float = Field(default=60.0, alias="REQUEST_TIMEOUT_SECONDS")
    chat_timeout_seconds: float = Field(default=120.0, alias="CHAT_TIMEOUT_SECONDS")

    server_host: str = Field(default="0.0.0.0", alias="SERVER_HOST")
    server_port: int = Field(default=3939, alias="SERVER_PORT")
    # Comma-separated list of allowed CORS origins.
    cors_origins: str = Field(default="*", alias="CORS_ORIGINS")
    whatsapp_verify_token: str = Field(default="", alias="WHATSAPP_VERIFY_TOKEN")


def load_settings() -> Settings:
    """Load and validate settings."""

    return Settings()


def cors_origins(settings: Settings) -> list[str]:
    """Return the configured CORS origins as a list."""

    return [origin.strip() for origin in settings.cors_origins.split(",") if origin.strip()]
