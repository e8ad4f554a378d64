"""Exceptions raised by idlestop.

Startup errors (configuration, listener acquisition) are fatal and are
mapped to exit codes by the CLI. Shutdown errors are only ever logged.
"""


class IdlestopError(Exception):
    """Base exception for idlestop errors."""


class ConfigError(IdlestopError):
    """Raised when configuration values are missing or invalid."""


class ActivationError(IdlestopError):
    """Raised when no usable listener can be obtained at startup.

    Covers a violated activation contract (malformed LISTEN_* variables,
    more than one socket handed over) and failure to bind the fallback
    listener.
    """

    def __init__(self, message: str, *, bind_failed: bool = False) -> None:
        """Initialize activation error.

        Args:
            message: Human-readable error description.
            bind_failed: True when the fallback listener could not be bound.
        """
        self.message = message
        self.bind_failed = bind_failed
        super().__init__(message)


class ShutdownTimeoutError(IdlestopError):
    """Raised when in-flight requests outlive the shutdown grace period."""

    def __init__(self, timeout: float, remaining: int) -> None:
        """Initialize shutdown timeout error.

        Args:
            timeout: Grace period that elapsed, in seconds.
            remaining: Number of requests still in flight.
        """
        self.timeout = timeout
        self.remaining = remaining
        super().__init__(
            f"graceful shutdown timed out after {timeout:.1f}s "
            f"with {remaining} request(s) in flight"
        )
