"""Configuration loader with precedence handling.

Configuration is loaded with the following precedence (highest to lowest):
1. CLI arguments (passed directly to get_config)
2. Environment variables (IDLESTOP_*)
3. Config file (~/.config/idlestop/config.toml)
4. Default values

Environment variables:
- IDLESTOP_CONFIG_PATH: Path to config file (overrides default location)
- IDLESTOP_SERVER_BIND: Address for the fallback listener
- IDLESTOP_SERVER_PORT: Port for the fallback listener
- IDLESTOP_IDLE_TIMEOUT: Inactivity timeout, e.g. "5m"
- IDLESTOP_SHUTDOWN_TIMEOUT: Grace period for in-flight requests, e.g. "30s"
- IDLESTOP_STATIC_DIR: Directory served as static files
- IDLESTOP_LOG_LEVEL / IDLESTOP_LOG_FORMAT / IDLESTOP_LOG_FILE: Logging
"""

from __future__ import annotations

import logging
import os
import tomllib
from pathlib import Path
from typing import Any

from idlestop.config.builder import (
    ENV_VARS,
    ConfigBuilder,
    ConfigSource,
    source_from_env,
    source_from_file,
)
from idlestop.config.env import EnvReader
from idlestop.config.models import IdlestopConfig
from idlestop.exceptions import ConfigError

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_DIR = Path.home() / ".config" / "idlestop"
DEFAULT_CONFIG_FILE = DEFAULT_CONFIG_DIR / "config.toml"


def get_default_config_path() -> Path:
    """Get the default config file path.

    Can be overridden by IDLESTOP_CONFIG_PATH environment variable.
    """
    env_path = os.environ.get("IDLESTOP_CONFIG_PATH")
    if env_path:
        return Path(env_path).expanduser()
    return DEFAULT_CONFIG_FILE


def load_config_file(path: Path | None = None) -> dict[str, Any]:
    """Load configuration from a TOML file.

    Args:
        path: Path to config file. If None, uses the default location.

    Returns:
        Parsed configuration dict. Empty dict if the file doesn't exist.

    Raises:
        ConfigError: If the file exists but cannot be read or parsed.
    """
    if path is None:
        path = get_default_config_path()

    try:
        with path.open("rb") as f:
            return tomllib.load(f)
    except FileNotFoundError:
        logger.debug("No config file at %s, using defaults", path)
        return {}
    except tomllib.TOMLDecodeError as e:
        raise ConfigError(f"Invalid TOML in {path}: {e}") from e
    except OSError as e:
        raise ConfigError(f"Cannot read config file {path}: {e}") from e


def get_config(
    config_path: Path | None = None,
    *,
    bind: str | None = None,
    port: int | None = None,
    idle_timeout: float | None = None,
    shutdown_timeout: float | None = None,
    static_dir: Path | None = None,
    env_reader: EnvReader | None = None,
) -> IdlestopConfig:
    """Get idlestop configuration with full precedence handling.

    Args:
        config_path: Path to config file (overrides IDLESTOP_CONFIG_PATH).
        bind: CLI override for the fallback bind address.
        port: CLI override for the fallback port.
        idle_timeout: CLI override for the idle timeout in seconds.
        shutdown_timeout: CLI override for the grace period in seconds.
        static_dir: CLI override for the static directory.
        env_reader: Optional EnvReader for testing (uses os.environ if None).

    Returns:
        IdlestopConfig with merged configuration.

    Raises:
        ConfigError: If the config file is invalid or a file or CLI value
            fails validation. Invalid IDLESTOP_* values are logged and
            ignored.
    """
    reader = env_reader or EnvReader()

    file_config = load_config_file(config_path)

    cli_source = ConfigSource(
        server_bind=bind,
        server_port=port,
        server_idle_timeout=idle_timeout,
        server_shutdown_timeout=shutdown_timeout,
        server_static_dir=static_dir,
    )

    # Build with precedence: file < env < cli
    builder = ConfigBuilder()
    builder.apply(source_from_file(file_config), source_name="file")
    builder.apply_valid(source_from_env(reader), source_name="env", labels=ENV_VARS)
    builder.apply(cli_source, source_name="cli")

    config = builder.build()
    logger.debug(
        "Configuration: idle_timeout=%.1fs (%s), shutdown_timeout=%.1fs (%s)",
        config.server.idle_timeout,
        builder.origin("server_idle_timeout"),
        config.server.shutdown_timeout,
        builder.origin("server_shutdown_timeout"),
    )
    return config
