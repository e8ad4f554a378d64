"""Service context for structured logging.

run_service() enters service_context() before it starts serving, so every
record logged from the service (including request handlers, whose tasks
inherit the context) can carry the activation mode, the lifecycle state
and the shutdown reason.
"""

from __future__ import annotations

import contextvars
import logging
from contextlib import contextmanager
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Generator

    from idlestop.server.lifecycle import ServiceLifecycle

_activation: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "activation", default=None
)
_lifecycle: contextvars.ContextVar[ServiceLifecycle | None] = contextvars.ContextVar(
    "lifecycle", default=None
)


@contextmanager
def service_context(
    lifecycle: ServiceLifecycle, *, socket_activated: bool
) -> Generator[None, None, None]:
    """Attach a running service to records logged inside the block.

    Args:
        lifecycle: Lifecycle of the service; read on every record, so state
            changes show up without re-entering the context.
        socket_activated: Whether the listener was handed over by the
            service manager.

    Example:
        with service_context(lifecycle, socket_activated=True):
            logger.info("Idle timeout reached")  # [socket:running] ...
    """
    old_activation = _activation.get()
    old_lifecycle = _lifecycle.get()
    try:
        _activation.set("socket" if socket_activated else "manual")
        _lifecycle.set(lifecycle)
        yield
    finally:
        _activation.set(old_activation)
        _lifecycle.set(old_lifecycle)


def get_service_context() -> tuple[str | None, str | None, str | None]:
    """Get the current service context.

    Returns:
        Tuple of (activation, state, shutdown_reason), all None outside
        service_context().
    """
    activation = _activation.get()
    lifecycle = _lifecycle.get()
    if lifecycle is None:
        return activation, None, None
    return activation, lifecycle.state.value, lifecycle.shutdown_state.reason


class ServiceContextFilter(logging.Filter):
    """Logging filter that injects the service context into log records.

    Adds activation, service_state and shutdown_reason attributes for the
    JSON format, and a compact service_tag such as ``[socket:draining] ``
    for the text formats.
    """

    def filter(self, record: logging.LogRecord) -> bool:
        activation, state, reason = get_service_context()

        record.activation = activation
        record.service_state = state
        record.shutdown_reason = reason

        if activation and state:
            record.service_tag = f"[{activation}:{state}] "
        else:
            record.service_tag = ""

        return True
