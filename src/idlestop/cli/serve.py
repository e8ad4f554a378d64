"""CLI serve command.

This module provides the `idlestop serve` command. Under systemd socket
activation it serves the handed-over socket and exits after the idle
timeout; started by hand it binds its own listener and runs until
stopped.
"""

from __future__ import annotations

import asyncio
import logging
import sys
from pathlib import Path

import click

from idlestop.cli.exit_codes import ExitCode
from idlestop.config import configure_logging_from_cli, get_config, parse_duration
from idlestop.config.models import LOG_FORMATS, LOG_LEVELS
from idlestop.exceptions import ActivationError, ConfigError

logger = logging.getLogger(__name__)


class DurationParamType(click.ParamType):
    """Click parameter accepting seconds or strings such as "5m" or "1h30m"."""

    name = "duration"

    def convert(self, value, param, ctx) -> float:
        if isinstance(value, float):
            return value
        try:
            return parse_duration(value)
        except ConfigError as e:
            self.fail(str(e), param, ctx)


DURATION = DurationParamType()


@click.command("serve")
@click.option(
    "--config",
    "-c",
    "config_path",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    default=None,
    help="Path to configuration file (default: ~/.config/idlestop/config.toml).",
)
@click.option(
    "--bind",
    type=str,
    default=None,
    help="Address to bind when not socket-activated (default: 127.0.0.1).",
)
@click.option(
    "--port",
    "-p",
    type=click.IntRange(1, 65535),
    default=None,
    help="Port to bind when not socket-activated (default: 6060).",
)
@click.option(
    "--idle-timeout",
    type=DURATION,
    default=None,
    help="Inactivity timeout for socket activation, e.g. 300 or 5m (default: 5m).",
)
@click.option(
    "--shutdown-timeout",
    type=DURATION,
    default=None,
    help="Grace period for in-flight requests before closing (default: 30s).",
)
@click.option(
    "--static-dir",
    type=click.Path(exists=True, file_okay=False, path_type=Path),
    default=None,
    help="Directory to serve as static files.",
)
@click.option(
    "--log-level",
    type=click.Choice(LOG_LEVELS, case_sensitive=False),
    default=None,
    help="Override log level (default: info).",
)
@click.option(
    "--log-format",
    type=click.Choice(LOG_FORMATS, case_sensitive=False),
    default=None,
    help="Log format (default: auto, journal under systemd, text otherwise).",
)
@click.option(
    "--verbose",
    "-v",
    is_flag=True,
    default=False,
    help="Verbose mode (same as --log-level debug).",
)
def serve_command(
    config_path: Path | None,
    bind: str | None,
    port: int | None,
    idle_timeout: float | None,
    shutdown_timeout: float | None,
    static_dir: Path | None,
    log_level: str | None,
    log_format: str | None,
    verbose: bool,
) -> None:
    """Serve HTTP and exit after a period of inactivity.

    If systemd passed exactly one listening socket (LISTEN_FDS), the
    service stops accepting connections once no request has arrived for
    --idle-timeout, waits up to --shutdown-timeout for in-flight requests
    and exits. Without a passed socket it binds --bind/--port and runs
    until SIGTERM or Ctrl+C.

    Configuration precedence (highest to lowest):
      1. CLI flags
      2. Environment variables (IDLESTOP_*)
      3. Config file (--config or ~/.config/idlestop/config.toml)
      4. Default values

    \b
    Examples:
        idlestop serve                          # Start with defaults
        idlestop serve --idle-timeout 10m       # Longer idle period
        idlestop serve --static-dir ./public    # Serve a directory
        idlestop serve --log-format json        # One JSON object per line
    """
    try:
        config = get_config(
            config_path,
            bind=bind,
            port=port,
            idle_timeout=idle_timeout,
            shutdown_timeout=shutdown_timeout,
            static_dir=static_dir,
        )
        configure_logging_from_cli(
            config.logging, level=log_level, format=log_format, verbose=verbose
        )
    except ConfigError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(ExitCode.CONFIG_ERROR)

    from idlestop.server.runner import run_service

    logger.debug(
        "Starting idlestop (bind=%s, port=%d, idle_timeout=%.1fs, "
        "shutdown_timeout=%.1fs)",
        config.server.bind,
        config.server.port,
        config.server.idle_timeout,
        config.server.shutdown_timeout,
    )

    try:
        exit_code = asyncio.run(run_service(config.server))
    except ActivationError as e:
        logger.error("%s", e.message)
        sys.exit(ExitCode.BIND_ERROR if e.bind_failed else ExitCode.ACTIVATION_ERROR)
    except KeyboardInterrupt:
        logger.info("Interrupted before the service started")
        sys.exit(ExitCode.INTERRUPTED)
    except OSError as e:
        logger.error("Server error: %s", e)
        sys.exit(ExitCode.GENERAL_ERROR)

    sys.exit(exit_code)
