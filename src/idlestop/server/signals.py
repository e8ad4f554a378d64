"""Signal handler setup for the service.

SIGTERM (from systemd) and SIGINT (Ctrl+C) trigger the same graceful
shutdown sequence as the idle timer.
"""

import asyncio
import logging
import signal
from collections.abc import Callable

logger = logging.getLogger(__name__)

SHUTDOWN_SIGNALS = (signal.SIGTERM, signal.SIGINT)


def setup_signal_handlers(
    loop: asyncio.AbstractEventLoop,
    on_shutdown: Callable[[signal.Signals], None],
) -> None:
    """Register ``on_shutdown`` for SIGTERM and SIGINT.

    Args:
        loop: The asyncio event loop to register handlers on.
        on_shutdown: Called on the loop with the received signal.
    """
    for sig in SHUTDOWN_SIGNALS:
        try:
            loop.add_signal_handler(sig, on_shutdown, sig)
            logger.debug("Registered handler for %s", sig.name)
        except (ValueError, RuntimeError, NotImplementedError) as e:
            # ValueError: not in main thread
            # NotImplementedError: platform without add_signal_handler
            logger.warning("Failed to register handler for %s: %s", sig.name, e)


def remove_signal_handlers(loop: asyncio.AbstractEventLoop) -> None:
    """Remove the shutdown signal handlers.

    Args:
        loop: The asyncio event loop to remove handlers from.
    """
    for sig in SHUTDOWN_SIGNALS:
        try:
            loop.remove_signal_handler(sig)
            logger.debug("Removed handler for %s", sig.name)
        except (ValueError, RuntimeError, NotImplementedError):
            pass  # Handler may not have been registered
