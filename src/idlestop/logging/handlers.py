"""Formatters for idlestop's log output.

JournalFormatter writes the ``<N>`` priority prefix understood by journald
when stderr is a journal stream; JSONFormatter writes one JSON object per
record.
"""

from __future__ import annotations

import json
import logging
import os
from datetime import UTC, datetime
from typing import Any

TEXT_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(service_tag)s%(message)s"
TEXT_DATEFMT = "%Y-%m-%dT%H:%M:%S%z"

# journald adds its own timestamp and identifier
JOURNAL_FORMAT = "%(service_tag)s%(name)s: %(message)s"

# Attributes set by ServiceContextFilter
SERVICE_FIELDS = ("activation", "service_state", "shutdown_reason")

_RESERVED_ATTRS = frozenset(
    logging.LogRecord("", 0, "", 0, "", None, None).__dict__
) | {"message", "asctime", "service_tag", *SERVICE_FIELDS}


def syslog_priority(levelno: int) -> int:
    """Map a logging level to a syslog priority (sd-daemon(3))."""
    if levelno >= logging.CRITICAL:
        return 2
    if levelno >= logging.ERROR:
        return 3
    if levelno >= logging.WARNING:
        return 4
    if levelno >= logging.INFO:
        return 6
    return 7


class TextFormatter(logging.Formatter):
    """Plain text lines, tolerant of records that bypassed the filter."""

    def __init__(
        self, fmt: str = TEXT_FORMAT, datefmt: str | None = TEXT_DATEFMT
    ) -> None:
        super().__init__(fmt, datefmt=datefmt)

    def format(self, record: logging.LogRecord) -> str:
        if not hasattr(record, "service_tag"):
            record.service_tag = ""
        return super().format(record)


class JournalFormatter(TextFormatter):
    """Text lines prefixed with ``<N>`` so journald keeps the log level.

    Continuation lines of a traceback get the same prefix, otherwise
    journald would log them at the stream's default priority.
    """

    def __init__(self) -> None:
        super().__init__(JOURNAL_FORMAT, datefmt=None)

    def format(self, record: logging.LogRecord) -> str:
        prefix = f"<{syslog_priority(record.levelno)}>"
        text = super().format(record)
        return "\n".join(prefix + line for line in text.splitlines())


class JSONFormatter(logging.Formatter):
    """Format log records as JSON objects.

    Each log entry is a valid JSON object with:
    - timestamp: ISO-8601 UTC
    - level: Log level name
    - logger: Logger name (omitted for root)
    - message: Log message
    - pid: Process id, one per activation
    - activation, service_state, shutdown_reason: Service context, when set
    - context: Values passed through ``extra=``
    - exception: Formatted traceback, if any
    """

    def format(self, record: logging.LogRecord) -> str:
        record_time = datetime.fromtimestamp(record.created, tz=UTC)
        log_entry: dict[str, Any] = {
            "timestamp": record_time.isoformat(),
            "level": record.levelname,
            "message": record.getMessage(),
            "pid": record.process if record.process is not None else os.getpid(),
        }

        if record.name and record.name != "root":
            log_entry["logger"] = record.name

        for key in SERVICE_FIELDS:
            value = getattr(record, key, None)
            if value is not None:
                log_entry[key] = value

        context = {
            key: value
            for key, value in record.__dict__.items()
            if key not in _RESERVED_ATTRS and not key.startswith("_")
        }
        if context:
            log_entry["context"] = context

        if record.exc_info:
            log_entry["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_entry, default=str)
