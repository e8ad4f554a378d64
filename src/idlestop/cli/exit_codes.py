"""Centralized exit codes for the idlestop CLI.

Exit code ranges:
    0: Success (including idle shutdown and signal-driven shutdown)
    1-9: General errors
    10-19: Startup errors (configuration, listener acquisition)
"""

from enum import IntEnum


class ExitCode(IntEnum):
    """Exit codes for idlestop CLI commands."""

    # Success (0)
    SUCCESS = 0

    # General errors (1-9)
    GENERAL_ERROR = 1
    INTERRUPTED = 2  # Ctrl+C before the service started

    # Startup errors (10-19)
    CONFIG_ERROR = 11
    ACTIVATION_ERROR = 12
    BIND_ERROR = 13
