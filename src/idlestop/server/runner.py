"""Service startup and shutdown sequencing.

run_service() decides how the service runs from what the activation
authority handed over:

- no socket: bind the configured address and run until signalled;
- one socket: serve it and shut down after the idle timeout;
- more than one socket: refuse to start.
"""

from __future__ import annotations

import asyncio
import logging
import signal
import socket

from aiohttp import web

from idlestop import __version__
from idlestop.activity import ActivityTimer
from idlestop.config.models import ServerConfig
from idlestop.logging import service_context
from idlestop.server.activation import listen_fds, select_listener
from idlestop.server.app import CONTEXT_KEY, ServiceContext, create_app
from idlestop.server.idle import IdleShutdownController, drain_and_close
from idlestop.server.lifecycle import ServiceLifecycle
from idlestop.server.service import HTTPService
from idlestop.server.signals import remove_signal_handlers, setup_signal_handlers

logger = logging.getLogger(__name__)


async def run_service(
    config: ServerConfig,
    *,
    app: web.Application | None = None,
    sockets: list[socket.socket] | None = None,
) -> int:
    """Serve until the service is closed.

    Args:
        config: Server configuration.
        app: Application to serve. Defaults to create_app().
        sockets: Listeners to use instead of reading LISTEN_FDS.

    Returns:
        Exit code, 0 when the service was shut down normally (idle timeout
        or signal, graceful or forced).

    Raises:
        ActivationError: If more than one socket was handed over or the
            fallback listener cannot be bound. Nothing is served.
    """
    if sockets is None:
        sockets = listen_fds(unset_environment=True)
    sock, activated = select_listener(sockets, config.bind, config.port)

    lifecycle = ServiceLifecycle(shutdown_timeout=config.shutdown_timeout)
    timer = ActivityTimer(config.idle_timeout) if activated else None
    context = ServiceContext(
        lifecycle=lifecycle, socket_activated=activated, timer=timer
    )
    if app is None:
        app = create_app(context, static_dir=config.static_dir)
    else:
        app[CONTEXT_KEY] = context

    service = HTTPService(app, sock, lifecycle=lifecycle, stats=context.stats)

    controller: IdleShutdownController | None = None
    if activated:
        controller = IdleShutdownController(
            service,
            config.idle_timeout,
            grace_period=config.shutdown_timeout,
            timer=timer,
        )
        controller.install(app)

    loop = asyncio.get_running_loop()
    stop_tasks: set[asyncio.Task[None]] = set()

    def handle_shutdown_signal(sig: signal.Signals) -> None:
        logger.info("Received %s, initiating graceful shutdown", sig.name)
        task = asyncio.create_task(
            drain_and_close(service, config.shutdown_timeout, reason=sig.name)
        )
        stop_tasks.add(task)
        task.add_done_callback(stop_tasks.discard)

    with service_context(lifecycle, socket_activated=activated):
        setup_signal_handlers(loop, handle_shutdown_signal)
        try:
            await service.start()
            _log_startup(service, config, activated)
            if controller is not None:
                controller.start()
            await service.wait_closed()
        finally:
            remove_signal_handlers(loop)
            if controller is not None:
                await controller.stop()
            if not lifecycle.is_closed:
                await service.close()
            if stop_tasks:
                await asyncio.gather(*stop_tasks, return_exceptions=True)

        shutdown = lifecycle.shutdown_state
        logger.info(
            "idlestop stopped (reason=%s, forced=%s, uptime=%.1fs)",
            shutdown.reason or "closed",
            shutdown.forced,
            lifecycle.uptime_seconds,
        )
    return 0


def _log_startup(service: HTTPService, config: ServerConfig, activated: bool) -> None:
    """Log where and how the service is running."""
    logger.info("idlestop %s serving on %s", __version__, service.address)
    if activated:
        logger.info(
            "Socket-activated: shutting down after %.1fs without requests "
            "(grace period %.1fs)",
            config.idle_timeout,
            config.shutdown_timeout,
        )
    else:
        logger.info("No socket passed by the service manager, idle shutdown disabled")
