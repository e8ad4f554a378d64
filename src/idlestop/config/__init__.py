"""Configuration management for idlestop.

Configuration is loaded with precedence handling:
1. CLI flags (highest priority)
2. Environment variables (IDLESTOP_*)
3. Config file (~/.config/idlestop/config.toml)
4. Default values (lowest priority)
"""

from idlestop.config.builder import (
    ConfigBuilder,
    ConfigSource,
    source_from_env,
    source_from_file,
)
from idlestop.config.durations import parse_duration
from idlestop.config.env import EnvReader
from idlestop.config.loader import (
    get_config,
    get_default_config_path,
    load_config_file,
)
from idlestop.config.logging_factory import (
    build_logging_config,
    configure_logging_from_cli,
)
from idlestop.config.models import (
    IdlestopConfig,
    LoggingConfig,
    ServerConfig,
)

__all__ = [
    # Models
    "IdlestopConfig",
    "LoggingConfig",
    "ServerConfig",
    # Loader
    "get_config",
    "get_default_config_path",
    "load_config_file",
    # Builder
    "ConfigBuilder",
    "ConfigSource",
    "source_from_env",
    "source_from_file",
    # Environment
    "EnvReader",
    # Durations
    "parse_duration",
    # Logging factory
    "build_logging_config",
    "configure_logging_from_cli",
]
