"""Structured logging for the adventure engine.

Output is driven by :class:`~adventure_engine.core.config.Settings`
(``log_level`` and ``json_logs``). The engine binds the running adventure
to the structlog context when one is loaded, so every entry of a session
carries its title and mode. Pydantic models and enums passed as log
values, such as event payloads, are rendered as plain data.

Example:
    >>> from adventure_engine.core.logging import configure_logging, get_logger
    >>> configure_logging(Settings(log_level="DEBUG", json_logs=True))
    >>> logger = get_logger(__name__)
    >>> logger.info("Combat started", enemies=2, round=1)
"""

from __future__ import annotations

import logging
import sys
from enum import Enum
from typing import TYPE_CHECKING, Any

import structlog
from pydantic import BaseModel
from structlog.types import Processor

from adventure_engine.core.config import Settings, get_settings
from adventure_engine.core.exceptions import ConfigurationError


if TYPE_CHECKING:
    from structlog.types import EventDict, WrappedLogger


STDLIB_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"

QUIET_LOGGERS = ("httpx", "httpcore", "openai")
"""Third-party loggers held at WARNING; they log every request at INFO."""


# =============================================================================
# Processors
# =============================================================================


def add_app_context(app_name: str, app_version: str) -> Processor:
    """Build a processor tagging each entry with the application and version."""

    def processor(
        logger: WrappedLogger,
        method_name: str,
        event_dict: EventDict,
    ) -> EventDict:
        event_dict.setdefault("app", app_name)
        event_dict.setdefault("version", app_version)
        return event_dict

    return processor


def dump_models(
    logger: WrappedLogger,
    method_name: str,
    event_dict: EventDict,
) -> EventDict:
    """Render pydantic models and enum members as JSON-ready values."""
    for key, value in event_dict.items():
        if isinstance(value, BaseModel):
            event_dict[key] = value.model_dump(mode="json")
        elif isinstance(value, Enum):
            event_dict[key] = value.value
    return event_dict


def resolve_level(name: str) -> int:
    """Map a level name to its numeric value.

    Raises:
        ConfigurationError: If the name is not a standard logging level.
    """
    level = logging.getLevelNamesMapping().get(name.upper())
    if level is None:
        raise ConfigurationError(f"Unknown log level: {name}", config_key="log_level")
    return level


# =============================================================================
# Setup
# =============================================================================


def configure_logging(
    settings: Settings | None = None,
    *,
    level: str | None = None,
    json_format: bool | None = None,
    log_file: str | None = None,
) -> None:
    """Configure structlog and the stdlib bridge.

    Args:
        settings: Source of ``log_level``, ``json_logs`` and the app name.
            Defaults to the cached settings.
        level: Overrides ``settings.log_level``.
        json_format: Overrides ``settings.json_logs``.
        log_file: Optional file that also receives stdlib log records.

    Raises:
        ConfigurationError: If ``level`` is not a logging level name.
    """
    settings = settings or get_settings()
    numeric_level = resolve_level(level or settings.log_level)
    as_json = settings.json_logs if json_format is None else json_format

    processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        add_app_context(settings.app_name, settings.app_version),
        dump_models,
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
    ]
    if as_json:
        processors += [structlog.processors.format_exc_info, structlog.processors.JSONRenderer()]
    else:
        processors.append(
            structlog.dev.ConsoleRenderer(
                colors=settings.debug,
                exception_formatter=structlog.dev.plain_traceback,
            )
        )

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(numeric_level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )

    handlers: list[logging.Handler] = [logging.StreamHandler(sys.stdout)]
    if log_file:
        handlers.append(logging.FileHandler(log_file))
    logging.basicConfig(format=STDLIB_FORMAT, level=numeric_level, handlers=handlers, force=True)
    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(max(numeric_level, logging.WARNING))


def get_logger(name: str | None = None) -> structlog.BoundLogger:
    return structlog.get_logger(name)


# =============================================================================
# Session Context
# =============================================================================


def bind_context(**kwargs: Any) -> None:
    """Bind values included in every later entry, e.g. the adventure title."""
    structlog.contextvars.bind_contextvars(**kwargs)


def clear_context() -> None:
    structlog.contextvars.clear_contextvars()


__all__ = [
    "add_app_context",
    "dump_models",
    "resolve_level",
    "configure_logging",
    "get_logger",
    "bind_context",
    "clear_context",
]
