"""Root logger setup for idlestop.

Records always go to stderr, which journald captures when idlestop runs
as a systemd service. A log file, when configured, is written in addition.
"""

from __future__ import annotations

import logging
import os
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import TYPE_CHECKING

from idlestop.logging.context import ServiceContextFilter
from idlestop.logging.handlers import JournalFormatter, JSONFormatter, TextFormatter

if TYPE_CHECKING:
    from idlestop.config.models import LoggingConfig

_LEVEL_MAP: dict[str, int] = {
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warning": logging.WARNING,
    "error": logging.ERROR,
}


def resolve_format(name: str) -> str:
    """Resolve "auto" to "journal" under journald and "text" otherwise."""
    name = name.lower()
    if name != "auto":
        return name
    return "journal" if os.environ.get("JOURNAL_STREAM") else "text"


def make_formatter(name: str) -> logging.Formatter:
    """Formatter for a resolved format name."""
    if name == "json":
        return JSONFormatter()
    if name == "journal":
        return JournalFormatter()
    return TextFormatter()


def configure_logging(config: LoggingConfig) -> None:
    """Configure the root logger based on LoggingConfig.

    The file handler uses the text format unless json was asked for, since
    the journal priority prefix means nothing outside journald.

    Args:
        config: Logging configuration.
    """
    level = _LEVEL_MAP.get(config.level.lower(), logging.INFO)
    stream_format = resolve_format(config.format)
    context_filter = ServiceContextFilter()

    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    root_logger.handlers.clear()

    stderr_handler = logging.StreamHandler(sys.stderr)
    stderr_handler.setLevel(level)
    stderr_handler.setFormatter(make_formatter(stream_format))
    stderr_handler.addFilter(context_filter)
    root_logger.addHandler(stderr_handler)

    if config.file:
        file_format = "json" if stream_format == "json" else "text"
        try:
            file_path = Path(config.file).expanduser()
            file_path.parent.mkdir(parents=True, exist_ok=True)
            file_handler = RotatingFileHandler(
                file_path,
                maxBytes=config.max_bytes,
                backupCount=config.backup_count,
                encoding="utf-8",
            )
        except OSError as e:
            root_logger.warning("Could not open log file %s: %s", config.file, e)
        else:
            file_handler.setLevel(level)
            file_handler.setFormatter(make_formatter(file_format))
            file_handler.addFilter(context_filter)
            root_logger.addHandler(file_handler)

    # aiohttp logs every request at INFO; keep it out of the service log
    # unless debugging.
    logging.getLogger("aiohttp.access").setLevel(max(level, logging.WARNING))
