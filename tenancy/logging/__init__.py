"""Structured logging for the tenancy core."""

from tenancy.logging.structured import (
    configure_structlog,
    get_logger,
    bind_context,
    clear_context,
    get_context,
)

__all__ = [
    "configure_structlog",
    "get_logger",
    "bind_context",
    "clear_context",
    "get_context",
]
