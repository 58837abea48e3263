"""Custom exception hierarchy for the adventure engine.

All exceptions inherit from AdventureEngineError, enabling unified error
handling at the application boundary while preserving domain-specific
context in the ``details`` mapping.

Lookup and malformed-input errors (unknown scene, enemy or ability, bad
dice notation) are raised to the caller of the single operation that hit
them. Narrative-service errors are caught by the orchestrator and reported
as events. Tool handler errors are folded into tool results.

Example:
    >>> from adventure_engine.core.exceptions import UnknownSceneError
    >>> raise UnknownSceneError("Scene not found", entity_id="crypt_gate")
"""

from __future__ import annotations

from typing import Any


class AdventureEngineError(Exception):
    """Base exception for all adventure engine errors.

    Attributes:
        message: Human-readable error description.
        details: Optional dictionary containing additional error context.
    """

    def __init__(self, message: str, *, details: dict[str, Any] | None = None) -> None:
        self.message = message
        self.details = details or {}
        super().__init__(self._format_message())

    def _format_message(self) -> str:
        """Format the exception message with optional details.

        Returns:
            Formatted error message including any provided details.
        """
        if self.details:
            detail_str = ", ".join(f"{k}={v!r}" for k, v in self.details.items())
            return f"{self.message} [{detail_str}]"
        return self.message

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(message={self.message!r}, details={self.details!r})"


# =============================================================================
# Game Engine Domain Exceptions
# =============================================================================


class GameEngineError(AdventureEngineError):
    """Base exception for all game engine errors.

    Raised when there are issues with scene flow, combat resolution,
    inventory handling or dice evaluation.
    """


class UnknownEntityError(GameEngineError):
    """Raised when an identifier is absent from its definition table."""

    entity_kind: str = "entity"

    def __init__(
        self,
        message: str,
        *,
        entity_id: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize unknown entity error with the missing identifier.

        Args:
            message: Human-readable error description.
            entity_id: The identifier that could not be resolved.
            details: Optional dictionary containing additional error context.
        """
        combined_details = details or {}
        combined_details["entity_kind"] = self.entity_kind
        if entity_id is not None:
            combined_details["entity_id"] = entity_id
        super().__init__(message, details=combined_details)
        self.entity_id = entity_id


class UnknownSceneError(UnknownEntityError):
    """Raised when a scene id is not in the scene table."""

    entity_kind = "scene"


class UnknownEnemyError(UnknownEntityError):
    """Raised when an enemy id is not in the enemy definition table."""

    entity_kind = "enemy"


class UnknownAbilityError(UnknownEntityError):
    """Raised when an actor has no score for the named ability."""

    entity_kind = "ability"


class CombatError(GameEngineError):
    """Raised when combat resolution encounters an error.

    This includes issues with initiative ordering or an invalid phase
    transition.
    """

    def __init__(
        self,
        message: str,
        *,
        combatant_id: str | None = None,
        round_number: int | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize combat error with combat context.

        Args:
            message: Human-readable error description.
            combatant_id: Identifier of the combatant involved.
            round_number: Current combat round when error occurred.
            details: Optional dictionary containing additional error context.
        """
        combined_details = details or {}
        if combatant_id:
            combined_details["combatant_id"] = combatant_id
        if round_number is not None:
            combined_details["round_number"] = round_number
        super().__init__(message, details=combined_details)


class DiceRollError(GameEngineError):
    """Raised when dice rolling operations fail."""

    def __init__(
        self,
        message: str,
        *,
        expression: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize dice roll error with expression context.

        Args:
            message: Human-readable error description.
            expression: The dice expression that caused the error.
            details: Optional dictionary containing additional error context.
        """
        combined_details = details or {}
        if expression is not None:
            combined_details["expression"] = expression
        super().__init__(message, details=combined_details)


class InvalidExpressionError(DiceRollError):
    """Raised when a dice string does not match ``<count>d<sides>[+|-mod]``."""


class ToolExecutionError(GameEngineError):
    """Raised inside a tool handler when a tool call cannot be applied.

    The dispatcher never lets this escape; it becomes the ``error`` field
    of the tool result returned to the model.
    """

    def __init__(
        self,
        message: str,
        *,
        tool_name: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        combined_details = details or {}
        if tool_name:
            combined_details["tool_name"] = tool_name
        super().__init__(message, details=combined_details)


# =============================================================================
# AI Control Domain Exceptions
# =============================================================================


class AIControlError(AdventureEngineError):
    """Base exception for all narrative-service errors.

    Raised when there are issues with model interactions, including
    API calls and response parsing.
    """

    def __init__(
        self,
        message: str,
        *,
        model: str | None = None,
        provider: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize AI control error with model context.

        Args:
            message: Human-readable error description.
            model: Name of the AI model involved.
            provider: Base URL or name of the AI provider.
            details: Optional dictionary containing additional error context.
        """
        combined_details = details or {}
        if model:
            combined_details["model"] = model
        if provider:
            combined_details["provider"] = provider
        super().__init__(message, details=combined_details)


class AIConnectionError(AIControlError):
    """Raised when the narrative service cannot be reached.

    This covers network failures, timeouts, rejected credentials and
    error payloads returned by the service.
    """


class AIResponseError(AIControlError):
    """Raised when a narrative-service response cannot be used."""


class EmptyResponseError(AIResponseError):
    """Raised when the service answers without an assistant message."""


# =============================================================================
# Configuration Exceptions
# =============================================================================


class ConfigurationError(AdventureEngineError):
    """Raised when application configuration is invalid."""

    def __init__(
        self,
        message: str,
        *,
        config_key: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize configuration error with config key context.

        Args:
            message: Human-readable error description.
            config_key: The configuration key that caused the error.
            details: Optional dictionary containing additional error context.
        """
        combined_details = details or {}
        if config_key:
            combined_details["config_key"] = config_key
        super().__init__(message, details=combined_details)


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
]
