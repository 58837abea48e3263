"""Core module providing configuration, logging, and base exceptions.

Exports:
    Exceptions:
        AdventureEngineError: Base exception for all application errors.
        UnknownEntityError: Identifier missing from a definition table.
        InvalidExpressionError: Malformed dice notation.
        AIControlError: Narrative-service failures.

    Configuration:
        Settings: Main application settings class.
        get_settings: Get the settings singleton.
        clear_settings_cache: Force settings reload.

    Logging:
        configure_logging: Set up application logging.
        get_logger: Get a configured logger instance.
        bind_context: Add context to log entries.
        clear_context: Clear logging context.
"""

from __future__ import annotations

from adventure_engine.core.config import (
    AIProviderSettings,
    GameSettings,
    Settings,
    clear_settings_cache,
    get_settings,
)
from adventure_engine.core.exceptions import (
    AdventureEngineError,
    AIConnectionError,
    AIControlError,
    AIResponseError,
    CombatError,
    ConfigurationError,
    DiceRollError,
    EmptyResponseError,
    GameEngineError,
    InvalidExpressionError,
    ToolExecutionError,
    UnknownAbilityError,
    UnknownEnemyError,
    UnknownEntityError,
    UnknownSceneError,
)
from adventure_engine.core.logging import (
    bind_context,
    clear_context,
    configure_logging,
    get_logger,
)


__all__ = [
    # Base exception
    "AdventureEngineError",
    # Game engine exceptions
    "GameEngineError",
    "UnknownEntityError",
    "UnknownSceneError",
    "UnknownEnemyError",
    "UnknownAbilityError",
    "CombatError",
    "DiceRollError",
    "InvalidExpressionError",
    "ToolExecutionError",
    # AI control exceptions
    "AIControlError",
    "AIConnectionError",
    "AIResponseError",
    "EmptyResponseError",
    # Configuration exceptions
    "ConfigurationError",
    # Configuration
    "Settings",
    "AIProviderSettings",
    "GameSettings",
    "get_settings",
    "clear_settings_cache",
    # Logging
    "configure_logging",
    "get_logger",
    "bind_context",
    "clear_context",
]
