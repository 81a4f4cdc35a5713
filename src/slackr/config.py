"""Configuration management for Slackr."""

from __future__ import annotations

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings."""

    model_config = SettingsConfigDict(
        env_prefix="SLACKR_",
        case_sensitive=False,
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Model Configuration
    model: str | None = Field(None, description="Chat model as provider:model (e.g. 'openai:gpt-4-turbo-preview')")
    api_key: str | None = Field(None, description="API key for the LLM provider")
    api_base: str | None = Field(None, description="Optional API base URL")
    max_tokens: int = Field(default=1024, description="Maximum tokens for responses")
    model_timeout_seconds: float | None = Field(default=90, description="Timeout for one model call in seconds")

    # Embedding Configuration
    embedding_model: str = Field(default="text-embedding-3-small", description="Embedding model name")
    embedding_api_key: str | None = Field(None, description="API key for the embedding provider")
    embedding_api_base: str | None = Field(None, description="Optional embedding API base URL")

    # Assistant Configuration
    assistant_name: str = Field(default="Slacker Supreme", description="Display name of the assistant persona")
    max_iterations: int = Field(default=5, description="Maximum number of model invocations per exchange")
    context_top_k: int = Field(default=5, description="Number of context snippets retrieved per exchange")
    message_limit: int = Field(default=10, description="Messages returned by one message lookup")
    channel_limit: int = Field(default=10, description="Channels returned by one channel lookup")
    member_limit: int = Field(default=10, description="Members returned by one member lookup")
    exchange_timeout_seconds: float | None = Field(
        None, description="Upper bound for one detached continuation; unset means no bound"
    )

    # Storage Configuration
    database_path: str = Field(default="slackr.db", description="SQLite database path")

    # Logging Configuration
    log_level: str = Field(default="INFO", description="Log level")

    @field_validator("max_iterations")
    @classmethod
    def _check_max_iterations(cls, value: int) -> int:
        if value < 1:
            raise ValueError("max_iterations must be at least 1")
        return value

    @field_validator("context_top_k", "message_limit", "channel_limit", "member_limit")
    @classmethod
    def _check_positive(cls, value: int) -> int:
        if value < 1:
            raise ValueError("limits must be positive")
        return value


def get_settings(**overrides: object) -> Settings:
    """Get application settings.

    Args:
        overrides: Explicit values that win over environment and ``.env``.

    Returns:
        Settings instance
    """
    return Settings(**overrides)  # type: ignore[arg-type]
