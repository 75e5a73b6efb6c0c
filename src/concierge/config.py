"""Configuration management for Concierge."""

from __future__ import annotations

from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from concierge.errors import ConfigurationError

DEFAULT_SYSTEM_PROMPT = (
    "You are a personal assistant with access to the user's Google Calendar, Gmail and Contacts. "
    "Use the available tools to act on the user's behalf and answer in the user's language."
)


class Settings(BaseSettings):
    """Application settings."""

    model_config = SettingsConfigDict(
        env_prefix="CONCIERGE_",
        case_sensitive=False,
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Model
    model: str = Field(default="openai:gpt-4o-mini", description="Model in provider:model format")
    api_key: str | None = Field(default=None, description="API key for the model provider")
    api_base: str | None = Field(default=None, description="Optional API base URL")
    max_tokens: int = Field(default=1024, description="Maximum tokens for one model response")
    system_prompt: str = Field(default=DEFAULT_SYSTEM_PROMPT, description="System prompt for the assistant")

    # Timeouts
    model_timeout_seconds: float = Field(default=60, description="Timeout for one model call")
    tool_timeout_seconds: float = Field(default=15, description="Timeout for one external operation call")
    response_timeout_seconds: float = Field(default=15, description="How long a caller waits for a response")

    # Backends
    token_file: Path = Field(default=Path("token.json"), description="OAuth token file for the credential source")
    services_url: str | None = Field(default=None, description="Base URL of the services gateway")

    # Server
    host: str = Field(default="0.0.0.0", description="Webhook bind host")  # noqa: S104
    port: int = Field(default=8082, description="Webhook bind port")

    # Logging
    log_level: str = Field(default="INFO", description="Log level")

    @property
    def resolved_model(self) -> str:
        provider, separator, name = self.model.partition(":")
        if not separator or not provider.strip() or not name.strip():
            raise ConfigurationError(f"model must be in provider:model format, got {self.model!r}")
        return self.model


def get_settings() -> Settings:
    """Load settings from the environment and the optional .env file."""
    return Settings()
