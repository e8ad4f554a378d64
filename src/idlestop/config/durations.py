"""Duration parsing for configuration values.

Durations are accepted either as plain seconds (``90``, ``1.5``) or as
Go-style duration strings made of number/unit pairs (``300ms``, ``30s``,
``5m``, ``1h30m``).
"""

from __future__ import annotations

import re

from idlestop.exceptions import ConfigError

_UNIT_SECONDS: dict[str, float] = {
    "ns": 1e-9,
    "us": 1e-6,
    "µs": 1e-6,
    "ms": 1e-3,
    "s": 1.0,
    "m": 60.0,
    "h": 3600.0,
}

_COMPONENT_RE = re.compile(r"(\d+(?:\.\d*)?|\.\d+)(ns|us|µs|ms|s|m|h)")


def parse_duration(value: str | int | float) -> float:
    """Parse a duration into seconds.

    Args:
        value: Seconds as a number, a numeric string, or a duration string
            such as "5m" or "1h30m".

    Returns:
        Duration in seconds.

    Raises:
        ConfigError: If the value cannot be parsed or is negative.

    Example:
        >>> parse_duration("1m30s")
        90.0
        >>> parse_duration(45)
        45.0
    """
    if isinstance(value, bool) or not isinstance(value, (str, int, float)):
        raise ConfigError(f"invalid duration: {value!r}")

    if isinstance(value, (int, float)):
        seconds = float(value)
    else:
        text = value.strip()
        if not text:
            raise ConfigError("invalid duration: empty string")
        try:
            seconds = float(text)
        except ValueError:
            seconds = _parse_components(text)

    if seconds < 0:
        raise ConfigError(f"duration must not be negative: {value!r}")
    return seconds


def _parse_components(text: str) -> float:
    """Sum the number/unit pairs of a Go-style duration string."""
    total = 0.0
    pos = 0
    for match in _COMPONENT_RE.finditer(text):
        if match.start() != pos:
            break
        total += float(match.group(1)) * _UNIT_SECONDS[match.group(2)]
        pos = match.end()

    if pos == 0 or pos != len(text):
        raise ConfigError(f"invalid duration: {text!r}")
    return total
