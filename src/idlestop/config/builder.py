"""Configuration builder with explicit layering.

Each source (config file, environment, CLI) is turned into a ConfigSource
where None means "not specified here". ConfigBuilder applies sources in
order of increasing precedence and builds the final IdlestopConfig.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Any

from idlestop.config.durations import parse_duration
from idlestop.config.env import EnvReader
from idlestop.config.models import (
    DEFAULT_BIND,
    DEFAULT_IDLE_TIMEOUT,
    DEFAULT_PORT,
    DEFAULT_SHUTDOWN_TIMEOUT,
    IdlestopConfig,
    LoggingConfig,
    ServerConfig,
)
from idlestop.exceptions import ConfigError

logger = logging.getLogger(__name__)

# Environment variable behind each ConfigSource field
ENV_VARS: dict[str, str] = {
    "server_bind": "IDLESTOP_SERVER_BIND",
    "server_port": "IDLESTOP_SERVER_PORT",
    "server_idle_timeout": "IDLESTOP_IDLE_TIMEOUT",
    "server_shutdown_timeout": "IDLESTOP_SHUTDOWN_TIMEOUT",
    "server_static_dir": "IDLESTOP_STATIC_DIR",
    "logging_level": "IDLESTOP_LOG_LEVEL",
    "logging_file": "IDLESTOP_LOG_FILE",
    "logging_format": "IDLESTOP_LOG_FORMAT",
}


@dataclass
class ConfigSource:
    """Configuration values from a single source.

    None values indicate "not specified in this source" and do not
    override values from lower-precedence sources.
    """

    # Server config
    server_bind: str | None = None
    server_port: int | None = None
    server_idle_timeout: float | None = None
    server_shutdown_timeout: float | None = None
    server_static_dir: Path | None = None

    # Logging config
    logging_level: str | None = None
    logging_file: Path | None = None
    logging_format: str | None = None
    logging_max_bytes: int | None = None
    logging_backup_count: int | None = None


class ConfigBuilder:
    """Builds IdlestopConfig by layering ConfigSources with precedence.

    Later sources override earlier ones (for non-None values).

    Example:
        builder = ConfigBuilder()
        builder.apply(source_from_file(file_config), source_name="file")
        builder.apply_valid(source_from_env(reader), source_name="env")
        builder.apply(cli_source, source_name="cli")
        config = builder.build()
    """

    def __init__(self) -> None:
        """Initialize the builder with no values set."""
        self._values: dict[str, Any] = {}
        self._origins: dict[str, str] = {}

    def apply(self, source: ConfigSource, source_name: str = "unknown") -> None:
        """Apply configuration source, overriding existing values.

        Args:
            source: Configuration source to apply.
            source_name: Label recorded as the origin of each value.
        """
        for name, value in _set_values(source):
            self._values[name] = value
            self._origins[name] = source_name

    def apply_valid(
        self,
        source: ConfigSource,
        source_name: str = "unknown",
        labels: dict[str, str] | None = None,
    ) -> None:
        """Apply only the values of ``source`` that pass validation.

        An invalid value is logged and skipped, so the value from a lower
        precedence source (or the default) stays in effect.

        Args:
            source: Configuration source to apply.
            source_name: Label recorded as the origin of each value.
            labels: Names to report invalid fields under, e.g. the
                environment variable a field was read from.
        """
        labels = labels or {}
        for name, value in _set_values(source):
            trial = ConfigBuilder()
            trial._values[name] = value
            try:
                trial.build()
            except ConfigError as e:
                logger.warning(
                    "Ignoring invalid %s value for %s: %s",
                    source_name,
                    labels.get(name, name),
                    e,
                )
                continue
            self._values[name] = value
            self._origins[name] = source_name

    def origin(self, key: str) -> str:
        """Return which source supplied a value ("default" if none did)."""
        return self._origins.get(key, "default")

    def _get(self, key: str, default: Any) -> Any:
        return self._values.get(key, default)

    def build(self) -> IdlestopConfig:
        """Build the final IdlestopConfig with defaults for unset values.

        Returns:
            Complete IdlestopConfig.

        Raises:
            ConfigError: If a merged value fails validation.
        """
        try:
            server = ServerConfig(
                bind=self._get("server_bind", DEFAULT_BIND),
                port=self._get("server_port", DEFAULT_PORT),
                idle_timeout=self._get("server_idle_timeout", DEFAULT_IDLE_TIMEOUT),
                shutdown_timeout=self._get(
                    "server_shutdown_timeout", DEFAULT_SHUTDOWN_TIMEOUT
                ),
                static_dir=self._get("server_static_dir", None),
            )
            defaults = LoggingConfig()
            logging_config = LoggingConfig(
                level=self._get("logging_level", defaults.level),
                file=self._get("logging_file", defaults.file),
                format=self._get("logging_format", defaults.format),
                max_bytes=self._get("logging_max_bytes", defaults.max_bytes),
                backup_count=self._get("logging_backup_count", defaults.backup_count),
            )
        except (TypeError, ValueError) as e:
            raise ConfigError(str(e)) from e

        return IdlestopConfig(server=server, logging=logging_config)


def _set_values(source: ConfigSource) -> list[tuple[str, Any]]:
    """(field, value) pairs of ``source`` that are not None."""
    pairs = ((f.name, getattr(source, f.name)) for f in fields(source))
    return [(name, value) for name, value in pairs if value is not None]


def _type_name(expected: type | tuple[type, ...]) -> str:
    if isinstance(expected, tuple):
        return " or ".join(t.__name__ for t in expected)
    return expected.__name__


def _table(file_config: dict[str, Any], name: str) -> dict[str, Any]:
    table = file_config.get(name, {})
    if not isinstance(table, dict):
        raise ConfigError(f"[{name}] must be a table, got {type(table).__name__}")
    return table


def _typed(
    table: dict[str, Any],
    section: str,
    key: str,
    expected: type | tuple[type, ...],
) -> Any:
    """Return ``table[key]`` if it has the expected TOML type, else raise.

    TOML booleans are rejected where a number is expected.
    """
    value = table.get(key)
    if value is None:
        return None
    if isinstance(value, expected) and (
        expected is bool or not isinstance(value, bool)
    ):
        return value
    raise ConfigError(
        f"[{section}] {key} must be {_type_name(expected)}, "
        f"got {type(value).__name__}: {value!r}"
    )


def source_from_file(file_config: dict[str, Any]) -> ConfigSource:
    """Create ConfigSource from a parsed TOML config file.

    Args:
        file_config: Parsed configuration dictionary.

    Returns:
        ConfigSource with values from the config file.

    Raises:
        ConfigError: If a value has the wrong type or a duration cannot be
            parsed.
    """
    server = _table(file_config, "server")
    log = _table(file_config, "logging")
    duration = (str, int, float)

    def path(table: dict[str, Any], section: str, key: str) -> Path | None:
        value = _typed(table, section, key, str)
        return Path(value).expanduser() if value else None

    def seconds(key: str) -> float | None:
        value = _typed(server, "server", key, duration)
        return parse_duration(value) if value is not None else None

    return ConfigSource(
        server_bind=_typed(server, "server", "bind", str),
        server_port=_typed(server, "server", "port", int),
        server_idle_timeout=seconds("idle_timeout"),
        server_shutdown_timeout=seconds("shutdown_timeout"),
        server_static_dir=path(server, "server", "static_dir"),
        logging_level=_typed(log, "logging", "level", str),
        logging_file=path(log, "logging", "file"),
        logging_format=_typed(log, "logging", "format", str),
        logging_max_bytes=_typed(log, "logging", "max_bytes", int),
        logging_backup_count=_typed(log, "logging", "backup_count", int),
    )


def source_from_env(reader: EnvReader) -> ConfigSource:
    """Create ConfigSource from IDLESTOP_* environment variables.

    Args:
        reader: EnvReader instance for reading environment variables.

    Returns:
        ConfigSource with values from environment variables.
    """
    return ConfigSource(
        server_bind=reader.get_str(ENV_VARS["server_bind"]),
        server_port=reader.get_int(ENV_VARS["server_port"]),
        server_idle_timeout=reader.get_duration(ENV_VARS["server_idle_timeout"]),
        server_shutdown_timeout=reader.get_duration(
            ENV_VARS["server_shutdown_timeout"]
        ),
        server_static_dir=reader.get_path(ENV_VARS["server_static_dir"]),
        logging_level=reader.get_str(ENV_VARS["logging_level"]),
        logging_file=reader.get_path(ENV_VARS["logging_file"]),
        logging_format=reader.get_str(ENV_VARS["logging_format"]),
    )
