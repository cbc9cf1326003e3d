"""Logging and observability configuration using Pydantic Logfire.

All modules use Python's standard logging library (logging.getLogger(__name__)),
and Logfire captures and enriches these logs once configured.

Standard usage:
    import logging
    logger = logging.getLogger(__name__)
    logger.info("Message", extra={"key": "value"})

Structured logging utilities:
    log_with_context(logger, "info", "Message", definition_id="12", inserted=3)
"""

import logging

import logfire

from chorecycle.core.config import settings


def configure_logfire() -> None:
    """Configure Pydantic Logfire with token from environment."""
    logfire.configure(
        token=settings.logfire_token,
        service_name="chorecycle",
        service_version="0.1.0",
        environment=settings.environment,
        send_to_logfire="if-token-present",
    )

    logger = logging.getLogger(__name__)
    logger.info("Logfire configured successfully")


def span(name: str) -> logfire.LogfireSpan:
    """Create a custom span for engine operations.

    Usage:
        with span("materializer.materialize"):
            ...
    """
    return logfire.span(name)


def log_with_context(
    logger: logging.Logger,
    level: str,
    message: str,
    **context: object,
) -> None:
    """Log a message with structured context fields.

    Args:
        logger: Logger instance to use
        level: Log level ("debug", "info", "warning", "error", "critical")
        message: Log message
        **context: Additional context fields (definition_id, instance_id, actor_id, etc.)
    """
    log_method = getattr(logger, level.lower())
    log_method(message, extra=context)


def log_with_definition_context(
    logger: logging.Logger,
    level: str,
    message: str,
    definition_id: str | None = None,
    **extra: object,
) -> None:
    """Log a message tagged with the owning definition.

    Usage:
        log_with_definition_context(logger, "info", "Regenerated", definition_id="7", inserted=4)
    """
    context = {"definition_id": definition_id, **extra} if definition_id else extra
    log_with_context(logger, level, message, **context)
