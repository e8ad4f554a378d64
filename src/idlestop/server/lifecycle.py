"""Service lifecycle management.

This module tracks the server lifecycle state (Running -> Draining ->
Closed) and the progress of shutdown, whether it was triggered by the idle
timer or by a signal.
"""

from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta
from enum import Enum


class ServerState(Enum):
    """Lifecycle state of the HTTP service."""

    RUNNING = "running"
    DRAINING = "draining"
    CLOSED = "closed"


@dataclass
class ShutdownState:
    """Tracks shutdown progress for graceful termination."""

    initiated: datetime | None = None
    """UTC timestamp when shutdown was initiated, None if not shutting down."""

    timeout_deadline: datetime | None = None
    """UTC timestamp after which remaining requests are cancelled."""

    reason: str | None = None
    """What triggered shutdown: "idle" or a signal name."""

    closed: datetime | None = None
    """UTC timestamp when the service reached CLOSED."""

    forced: bool = False
    """True if in-flight requests had to be cancelled."""

    errors: list[str] = field(default_factory=list)
    """Errors reported by the graceful stop or forced close."""

    @property
    def is_shutting_down(self) -> bool:
        """Returns True if shutdown has been initiated."""
        return self.initiated is not None


@dataclass
class RequestStats:
    """Request counters kept by the HTTP service."""

    requests: int = 0
    """Requests accepted for handling."""

    in_flight: int = 0
    """Requests whose response has not been fully written yet."""

    rejected: int = 0
    """Requests answered with 503 while draining."""


@dataclass
class ServiceLifecycle:
    """Manages service state and shutdown bookkeeping.

    Only the shutdown path (idle watcher or signal handler) calls the
    transition methods; request handlers only read the state.
    """

    shutdown_timeout: float = 30.0
    """Seconds to wait for in-flight requests before a forced close."""

    start_time: datetime = field(default_factory=lambda: datetime.now(UTC))
    """UTC timestamp when the service started."""

    state: ServerState = ServerState.RUNNING
    """Current lifecycle state."""

    shutdown_state: ShutdownState = field(default_factory=ShutdownState)
    """Current shutdown state."""

    @property
    def uptime_seconds(self) -> float:
        """Returns seconds since service startup."""
        return (datetime.now(UTC) - self.start_time).total_seconds()

    @property
    def is_shutting_down(self) -> bool:
        """Returns True if shutdown has been initiated."""
        return self.shutdown_state.is_shutting_down

    @property
    def is_closed(self) -> bool:
        """Returns True once the service has reached CLOSED."""
        return self.state is ServerState.CLOSED

    def initiate_shutdown(self, reason: str = "shutdown") -> bool:
        """Move from RUNNING to DRAINING.

        Sets shutdown timestamps and deadline. Idempotent - only the first
        call has any effect.

        Args:
            reason: What triggered the shutdown.

        Returns:
            True if this call started the shutdown.
        """
        if self.state is not ServerState.RUNNING:
            return False

        now = datetime.now(UTC)
        self.state = ServerState.DRAINING
        self.shutdown_state.initiated = now
        self.shutdown_state.reason = reason
        self.shutdown_state.timeout_deadline = now + timedelta(
            seconds=self.shutdown_timeout
        )
        return True

    def mark_closed(self, *, forced: bool = False) -> None:
        """Move to the terminal CLOSED state. Idempotent.

        Args:
            forced: True if unfinished requests were cancelled.
        """
        if self.state is ServerState.CLOSED:
            return

        now = datetime.now(UTC)
        if self.shutdown_state.initiated is None:
            self.shutdown_state.initiated = now
        self.state = ServerState.CLOSED
        self.shutdown_state.closed = now
        self.shutdown_state.forced = forced

    def record_error(self, message: str) -> None:
        """Remember an error reported during shutdown."""
        self.shutdown_state.errors.append(message)
