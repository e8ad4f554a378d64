"""Command-line overrides for the logging configuration."""

from __future__ import annotations

from dataclasses import replace

from idlestop.config.models import LoggingConfig
from idlestop.exceptions import ConfigError


def build_logging_config(
    base: LoggingConfig,
    *,
    level: str | None = None,
    format: str | None = None,
    verbose: bool = False,
) -> LoggingConfig:
    """Return ``base`` with the serve command's logging options applied.

    Args:
        base: Logging configuration from file and environment.
        level: --log-level value.
        format: --log-format value.
        verbose: --verbose flag; forces debug and wins over ``level``.

    Raises:
        ConfigError: If an override fails validation.
    """
    overrides: dict[str, str] = {}
    if verbose:
        overrides["level"] = "debug"
    elif level is not None:
        overrides["level"] = level
    if format is not None:
        overrides["format"] = format

    try:
        return replace(base, **overrides)
    except ValueError as e:
        raise ConfigError(str(e)) from e


def configure_logging_from_cli(
    base: LoggingConfig,
    *,
    level: str | None = None,
    format: str | None = None,
    verbose: bool = False,
) -> LoggingConfig:
    """Apply the CLI overrides to ``base`` and configure the root logger.

    Returns:
        The LoggingConfig that was applied.
    """
    from idlestop.logging import configure_logging

    final_config = build_logging_config(
        base, level=level, format=format, verbose=verbose
    )
    configure_logging(final_config)
    return final_config
