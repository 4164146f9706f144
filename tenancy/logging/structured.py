"""Structured logging with structlog.

Provides:
- JSON-formatted log output for production
- Request-scoped context (request_id, user_id, workspace_id) kept in
  structlog.contextvars, so concurrent requests never see each other's values
- Factory function for creating loggers
"""

import logging
import sys
from typing import Optional
from uuid import UUID

import structlog
from structlog.types import EventDict, WrappedLogger

from tenancy.config import LOG_JSON, LOG_LEVEL, SERVICE_NAME


def add_request_context(
    logger: WrappedLogger,
    method_name: str,
    event_dict: EventDict,
) -> EventDict:
    """Add request context (request_id, user_id, workspace_id) to log entries.

    Values passed explicitly to the log call win over bound context.
    """
    return structlog.contextvars.merge_contextvars(logger, method_name, event_dict)


def add_service_info(
    logger: WrappedLogger,
    method_name: str,
    event_dict: EventDict,
) -> EventDict:
    """Add service information to log entries."""
    event_dict["service"] = SERVICE_NAME
    return event_dict


def configure_structlog(
    json_format: bool = True,
    log_level: str = "INFO",
) -> None:
    """Configure structlog for the application.

    Args:
        json_format: If True, output JSON logs (for production).
                     If False, output human-readable logs (for development).
        log_level: The minimum log level to output (DEBUG, INFO, WARNING, ERROR).
    """
    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=getattr(logging, log_level.upper()),
    )

    shared_processors: list = [
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        add_service_info,
        add_request_context,
    ]

    if json_format:
        renderer = [
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            structlog.processors.JSONRenderer(),
        ]
    else:
        renderer = [
            structlog.processors.format_exc_info,
            structlog.dev.ConsoleRenderer(colors=False),
        ]

    structlog.configure(
        processors=shared_processors + renderer,
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """Get a structured logger with the given name.

    Example:
        logger = get_logger(__name__)
        logger.info("member_removed", workspace_id=str(ws.id), user_id=str(uid))
    """
    return structlog.get_logger(name)


def bind_context(
    request_id: Optional[str] = None,
    user_id: Optional[UUID] = None,
    workspace_id: Optional[UUID] = None,
) -> None:
    """Bind context variables for the current request scope.

    These values will be included in all subsequent log entries
    until clear_context() is called.
    """
    values = {}
    if request_id:
        values["request_id"] = request_id
    if user_id:
        values["user_id"] = str(user_id)
    if workspace_id:
        values["workspace_id"] = str(workspace_id)
    structlog.contextvars.bind_contextvars(**values)


def clear_context() -> None:
    """Clear all bound context variables.

    Only affects the current context: other requests (asyncio tasks or
    threads) keep their own bindings.
    """
    structlog.contextvars.clear_contextvars()


def get_context() -> dict[str, str]:
    """Return a copy of the currently bound context."""
    return structlog.contextvars.get_contextvars()


# Initialize from config; can be reconfigured by calling configure_structlog()
configure_structlog(json_format=LOG_JSON, log_level=LOG_LEVEL)
