"""Structured logging configuration with operation ID support.

This module sets up structured logging using structlog with JSON output and
automatic injection of the current history operation ID, so that every event
emitted while serving one facade call can be correlated.
"""

import logging
import sys
from contextvars import ContextVar
from typing import Any, Optional

import structlog

# Context variable holding the ID of the history operation being served
operation_id_var: ContextVar[Optional[str]] = ContextVar("operation_id", default=None)


def add_operation_id(
    logger: logging.Logger, method_name: str, event_dict: dict[str, Any]
) -> dict[str, Any]:
    """Add the operation ID to a log event if one is set.

    Args:
        logger: Logger instance
        method_name: Log method name (info, error, etc.)
        event_dict: Event dictionary to modify

    Returns:
        Modified event dictionary with operation_id
    """
    operation_id = get_operation_id()
    if operation_id:
        event_dict["operation_id"] = operation_id
    return event_dict


def setup_logging(log_level: str = "INFO", json_logs: bool = True) -> None:
    """Configure structured logging with structlog.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        json_logs: If True, output logs in JSON format; otherwise use console format

    Raises:
        ValueError: If log_level is not a known level name

    Example:
        >>> setup_logging(log_level="INFO", json_logs=True)
        >>> logger = get_logger(__name__)
        >>> logger.info("history_service_started", backend="sql")
    """
    level = logging.getLevelName(log_level.upper())
    if not isinstance(level, int):
        raise ValueError(f"Unknown log level: {log_level}")

    logging.basicConfig(format="%(message)s", stream=sys.stdout, level=level)

    shared_processors = [
        structlog.contextvars.merge_contextvars,
        add_operation_id,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
    ]

    if json_logs:
        renderers = [structlog.processors.format_exc_info, structlog.processors.JSONRenderer()]
    else:
        renderers = [structlog.dev.ConsoleRenderer()]

    structlog.configure(
        processors=shared_processors + renderers,
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """Get a structured logger instance.

    Args:
        name: Logger name (typically __name__)

    Returns:
        Configured structlog logger
    """
    return structlog.get_logger(name)


def set_operation_id(operation_id: str) -> None:
    """Set the operation ID for the current context.

    Args:
        operation_id: Unique identifier of the running history operation
    """
    operation_id_var.set(operation_id)


def get_operation_id() -> Optional[str]:
    """Get the current operation ID.

    Returns:
        Operation ID if set, None otherwise
    """
    return operation_id_var.get()


def clear_operation_id() -> None:
    """Clear the operation ID from the current context."""
    operation_id_var.set(None)
