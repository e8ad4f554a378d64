"""Environment variable reader with dependency injection support.

This module provides the EnvReader class for reading and parsing
IDLESTOP_* environment variables with type conversion. It accepts an
optional env mapping so tests never have to touch os.environ.
"""

from __future__ import annotations

import logging
import os
from collections.abc import Mapping
from pathlib import Path

from idlestop.config.durations import parse_duration
from idlestop.exceptions import ConfigError

logger = logging.getLogger(__name__)


class EnvReader:
    """Environment variable reader with type conversion.

    Invalid values are logged and replaced by the default, so a typo in
    the unit file never prevents the service from starting.

    Example:
        reader = EnvReader(env={"IDLESTOP_SERVER_PORT": "9000"})
        reader.get_int("IDLESTOP_SERVER_PORT", 6060)  # 9000
    """

    def __init__(self, env: Mapping[str, str] | None = None) -> None:
        """Initialize the environment reader.

        Args:
            env: Optional mapping to use instead of os.environ.
        """
        self._env: Mapping[str, str] = env if env is not None else os.environ

    def get_str(self, var: str, default: str | None = None) -> str | None:
        """Get a string, or default if unset or empty."""
        value = self._env.get(var)
        if not value:
            return default
        return value

    def get_int(self, var: str, default: int | None = None) -> int | None:
        """Get an integer from environment variable.

        Args:
            var: Environment variable name.
            default: Default value if not set or invalid.

        Returns:
            Parsed integer value, or default if not set or invalid.
        """
        value = self._env.get(var)
        if value is None:
            return default
        try:
            return int(value)
        except ValueError:
            logger.warning("Invalid integer value for %s: %s", var, value)
            return default

    def get_duration(self, var: str, default: float | None = None) -> float | None:
        """Get a duration in seconds (see parse_duration).

        Args:
            var: Environment variable name.
            default: Default value if not set or invalid.

        Returns:
            Seconds, or default if not set or invalid.
        """
        value = self._env.get(var)
        if value is None:
            return default
        try:
            return parse_duration(value)
        except ConfigError:
            logger.warning("Invalid duration value for %s: %s", var, value)
            return default

    def get_path(self, var: str, default: Path | None = None) -> Path | None:
        """Get a path with tilde expansion, or default if unset."""
        value = self._env.get(var)
        if not value:
            return default
        return Path(value).expanduser()
