"""Configuration management for the adventure engine.

This module provides centralized configuration using pydantic-settings,
supporting environment variables, .env files, and runtime overrides.
The narrative-service API key is handled as a SecretStr.

Example:
    >>> from adventure_engine.core.config import get_settings
    >>> settings = get_settings()
    >>> settings.ai.model
    'deepseek-chat'

Environment Variables:
    ADVENTURE_ENGINE_API_KEY: Narrative service API key
    ADVENTURE_ENGINE_BASE_URL: OpenAI-compatible endpoint base URL
    ADVENTURE_ENGINE_MODEL: Model identifier sent with every request
    ADVENTURE_ENGINE_GAME_FLEE_DC: Difficulty of a combat flee attempt
    ADVENTURE_ENGINE_LOG_LEVEL: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
"""

from __future__ import annotations

from functools import lru_cache
from typing import Literal

from pydantic import Field, SecretStr, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from adventure_engine.core.constants import (
    DEFAULT_BASE_URL,
    DEFAULT_MAX_TOKENS,
    DEFAULT_MODEL,
    DEFAULT_OPENING_PROMPT,
    DEFAULT_TEMPERATURE,
    FLEE_DC,
    MAX_TOOL_ROUNDS,
)
from adventure_engine.core.exceptions import ConfigurationError


class AIProviderSettings(BaseSettings):
    """Configuration for the narrative service connection.

    Attributes:
        api_key: Bearer token for the OpenAI-compatible endpoint.
        base_url: Endpoint base URL (without ``/chat/completions``).
        model: Model identifier.
        temperature: Sampling temperature.
        max_tokens: Completion token cap per request.
        max_retries: Attempts per request before the failure is surfaced.
        timeout_seconds: Request timeout.
    """

    model_config = SettingsConfigDict(
        env_prefix="ADVENTURE_ENGINE_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    api_key: SecretStr | None = Field(
        default=None,
        description="Narrative service API key",
    )
    base_url: str = Field(
        default=DEFAULT_BASE_URL,
        description="OpenAI-compatible endpoint base URL",
    )
    model: str = Field(
        default=DEFAULT_MODEL,
        description="Model identifier",
    )
    temperature: float = Field(
        default=DEFAULT_TEMPERATURE,
        ge=0.0,
        le=2.0,
        description="Sampling temperature",
    )
    max_tokens: int = Field(
        default=DEFAULT_MAX_TOKENS,
        ge=1,
        description="Maximum completion tokens",
    )
    max_retries: int = Field(
        default=3,
        ge=1,
        le=10,
        description="Maximum API attempts per request",
    )
    timeout_seconds: float = Field(
        default=60.0,
        gt=0,
        le=300,
        description="API request timeout",
    )

    @field_validator("base_url", mode="after")
    @classmethod
    def normalize_base_url(cls, value: str) -> str:
        """Normalize the endpoint so path joining stays predictable."""
        if not value.startswith(("http://", "https://")):
            raise ConfigurationError(
                f"base_url must be an http(s) URL, got {value!r}",
                config_key="base_url",
            )
        return value.rstrip("/")


class GameSettings(BaseSettings):
    """Configuration for game engine behavior.

    Attributes:
        flee_dc: Difficulty a flee roll must meet.
        max_tool_rounds: Model round-trips allowed in one narrative send loop.
        default_opening_prompt: First user message when a template has none.
        dice_seed: Optional seed for reproducible sessions.
    """

    model_config = SettingsConfigDict(
        env_prefix="ADVENTURE_ENGINE_GAME_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    flee_dc: int = Field(
        default=FLEE_DC,
        ge=1,
        le=30,
        description="Difficulty of a flee attempt",
    )
    max_tool_rounds: int = Field(
        default=MAX_TOOL_ROUNDS,
        ge=1,
        le=100,
        description="Model round-trips per send loop",
    )
    default_opening_prompt: str = Field(
        default=DEFAULT_OPENING_PROMPT,
        min_length=1,
        description="Opening user message fallback",
    )
    dice_seed: int | None = Field(
        default=None,
        description="Seed for the dice roller",
    )


class Settings(BaseSettings):
    """Main application settings aggregating all configuration domains.

    Attributes:
        app_name: Application name.
        app_version: Application version string.
        debug: Enable debug mode.
        log_level: Application logging level.
        json_logs: Emit JSON log lines instead of console output.
        ai: Narrative service settings.
        game: Game engine settings.
    """

    model_config = SettingsConfigDict(
        env_prefix="ADVENTURE_ENGINE_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        env_nested_delimiter="__",
    )

    app_name: str = Field(
        default="Adventure Engine",
        description="Application name",
    )
    app_version: str = Field(
        default="0.1.0",
        description="Application version",
    )
    debug: bool = Field(
        default=False,
        description="Enable debug mode",
    )
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO",
        description="Logging level",
    )
    json_logs: bool = Field(
        default=False,
        description="Render logs as JSON",
    )

    ai: AIProviderSettings = Field(default_factory=AIProviderSettings)
    game: GameSettings = Field(default_factory=GameSettings)

    @property
    def is_production(self) -> bool:
        """Check if running in production mode."""
        return not self.debug


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Get the application settings singleton.

    Returns:
        The application Settings instance.

    Raises:
        ConfigurationError: If configuration is missing or invalid.
    """
    try:
        return Settings()
    except ConfigurationError:
        raise
    except Exception as exc:
        raise ConfigurationError(
            f"Failed to load application settings: {exc}",
            details={"original_error": str(exc)},
        ) from exc


def clear_settings_cache() -> None:
    """Clear the settings cache, forcing a reload on next access."""
    get_settings.cache_clear()


__all__ = [
    "AIProviderSettings",
    "GameSettings",
    "Settings",
    "get_settings",
    "clear_settings_cache",
]
