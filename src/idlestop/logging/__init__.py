"""Structured logging module for idlestop.

Provides journald, text and JSON output with the service context
(activation mode, lifecycle state, shutdown reason) on every record.
"""

from idlestop.logging.config import configure_logging, resolve_format
from idlestop.logging.context import (
    ServiceContextFilter,
    get_service_context,
    service_context,
)
from idlestop.logging.handlers import JournalFormatter, JSONFormatter, TextFormatter

__all__ = [
    "JSONFormatter",
    "JournalFormatter",
    "ServiceContextFilter",
    "TextFormatter",
    "configure_logging",
    "get_service_context",
    "resolve_format",
    "service_context",
]
