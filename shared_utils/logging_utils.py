"""
Centralized logging utilities with scoped loggers.
Provides structured logging with consistent field names across services.
"""

import logging
import sys
from enum import Enum

import structlog

from shared_utils.constants import Environment


class LogLevel(str, Enum):
    """Log level enumeration."""
    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


def _build_processors(environment: str) -> list:
    processors = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
    ]
    if environment == Environment.DEVELOPMENT.value:
        processors.append(structlog.dev.ConsoleRenderer())
    else:
        # JSON output for log shipping
        processors.append(structlog.processors.JSONRenderer())
    return processors


def configure_logging(
    level: str = LogLevel.INFO.value,
    environment: str = Environment.PRODUCTION.value,
) -> None:
    """Configure structlog and the stdlib bridge.

    In production and staging, output is JSON. In development it is
    console-friendly formatted text.

    Args:
        level: Root log level name.
        environment: Environment value, selects the renderer.
    """
    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=getattr(logging, level.upper(), logging.INFO),
        force=True,
    )
    structlog.configure(
        processors=_build_processors(environment),
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )


configure_logging()


def get_scoped_logger(scope: str) -> structlog.BoundLogger:
    """Get a scoped logger for a specific service/component.

    Args:
        scope: LogScope value (api, room_coordinator, lifecycle_trigger, ...)

    Returns:
        Structured logger bound to scope.
    """
    logger = structlog.get_logger()
    return logger.bind(scope=scope)


class ContextualLogger:
    """Helper class for managing contextual logging within a scope."""

    def __init__(self, scope: str):
        self.scope = scope
        self.logger = get_scoped_logger(scope)

    def info(self, event_name: str, **kwargs):
        """Log info message with scope."""
        self.logger.info(event_name, **kwargs)

    def debug(self, event_name: str, **kwargs):
        """Log debug message with scope."""
        self.logger.debug(event_name, **kwargs)

    def warning(self, event_name: str, **kwargs):
        """Log warning message with scope."""
        self.logger.warning(event_name, **kwargs)

    def error(self, event_name: str, **kwargs):
        """Log error message with scope."""
        self.logger.error(event_name, **kwargs)

    def critical(self, event_name: str, **kwargs):
        """Log critical message with scope."""
        self.logger.critical(event_name, **kwargs)
