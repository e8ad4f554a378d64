"""Configuration data models for idlestop.

This module defines dataclasses for idlestop configuration options.
"""

from dataclasses import dataclass, field
from pathlib import Path

DEFAULT_BIND = "127.0.0.1"
DEFAULT_PORT = 6060
DEFAULT_IDLE_TIMEOUT = 300.0
DEFAULT_SHUTDOWN_TIMEOUT = 30.0


@dataclass
class ServerConfig:
    """Configuration for the HTTP service and its idle shutdown.

    ``bind`` and ``port`` are only used when no socket was handed over by
    the activation authority.
    """

    bind: str = DEFAULT_BIND
    """Network address for the fallback listener. Default localhost."""

    port: int = DEFAULT_PORT
    """Port for the fallback listener."""

    idle_timeout: float = DEFAULT_IDLE_TIMEOUT
    """Seconds without a request before a socket-activated service stops."""

    shutdown_timeout: float = DEFAULT_SHUTDOWN_TIMEOUT
    """Grace period in seconds for in-flight requests before a forced close."""

    static_dir: Path | None = None
    """Optional directory served as static files under /."""

    def __post_init__(self) -> None:
        """Validate configuration."""
        if not 1 <= self.port <= 65535:
            raise ValueError(f"port must be 1-65535, got {self.port}")
        if self.idle_timeout <= 0:
            raise ValueError(f"idle_timeout must be positive, got {self.idle_timeout}")
        if self.shutdown_timeout <= 0:
            raise ValueError(
                f"shutdown_timeout must be positive, got {self.shutdown_timeout}"
            )


LOG_LEVELS = ("debug", "info", "warning", "error")
LOG_FORMATS = ("auto", "text", "journal", "json")


@dataclass
class LoggingConfig:
    """Where and how the service logs.

    Records always go to stderr, which journald captures for a systemd
    unit; ``file`` adds a rotating log file next to it.
    """

    level: str = "info"
    """One of LOG_LEVELS."""

    format: str = "auto"
    """One of LOG_FORMATS. "auto" picks "journal" when stderr is connected
    to journald (JOURNAL_STREAM is set) and "text" otherwise."""

    file: Path | None = None
    """Optional log file, rotated at ``max_bytes``."""

    max_bytes: int = 10_485_760
    """Size at which the log file is rotated."""

    backup_count: int = 5
    """Number of rotated log files to keep."""

    def __post_init__(self) -> None:
        """Normalize names and validate."""
        self.level = self.level.lower()
        self.format = self.format.lower()
        if self.level not in LOG_LEVELS:
            raise ValueError(
                f"level must be one of {', '.join(LOG_LEVELS)}, got {self.level}"
            )
        if self.format not in LOG_FORMATS:
            raise ValueError(
                f"format must be one of {', '.join(LOG_FORMATS)}, got {self.format}"
            )
        if self.max_bytes <= 0 or self.backup_count < 0:
            raise ValueError(
                "max_bytes must be positive and backup_count not negative, "
                f"got {self.max_bytes} and {self.backup_count}"
            )


@dataclass
class IdlestopConfig:
    """Main configuration container.

    Aggregates all configuration sections.
    """

    server: ServerConfig = field(default_factory=ServerConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)
