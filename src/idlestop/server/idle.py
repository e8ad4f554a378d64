"""Idle shutdown for socket-activated services.

IdleShutdownController taps every request to reset an ActivityTimer and
runs a single watcher task that waits for the timer to expire. On
expiration it stops the server: a graceful stop bounded by the grace
period, then a forced close.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from functools import wraps
from typing import Protocol

from aiohttp import web

from idlestop.activity import ActivityTimer

logger = logging.getLogger(__name__)

Handler = Callable[[web.Request], Awaitable[web.StreamResponse]]

DEFAULT_GRACE_PERIOD = 30.0


class ShutdownTarget(Protocol):
    """Server operations the shutdown sequence drives."""

    async def shutdown(self, timeout: float, *, reason: str = ...) -> None:
        """Stop accepting work and wait for in-flight work up to timeout."""

    async def close(self) -> None:
        """Close all listeners and connections immediately."""


async def drain_and_close(
    server: ShutdownTarget, grace_period: float, *, reason: str
) -> None:
    """Stop ``server``: graceful stop bounded by ``grace_period``, then close.

    Errors from either step are logged and never retried; close() is
    always attempted so the server ends up closed.

    Args:
        server: Server to stop.
        grace_period: Seconds in-flight requests get to finish.
        reason: What triggered the shutdown.
    """
    try:
        await server.shutdown(grace_period, reason=reason)
    except Exception as e:
        logger.warning("Error during server shutdown: %s", e)

    try:
        await server.close()
    except Exception as e:
        logger.error("Error during server close: %s", e)


class IdleShutdownController:
    """Shuts a server down after a period without requests.

    The controller does not own the server; it only issues shutdown
    commands to it from its watcher task.

    Example:
        controller = IdleShutdownController(service, idle_timeout=300.0)
        controller.install(app)  # before the app is started
        controller.start()
    """

    def __init__(
        self,
        server: ShutdownTarget,
        idle_timeout: float,
        *,
        grace_period: float = DEFAULT_GRACE_PERIOD,
        timer: ActivityTimer | None = None,
    ) -> None:
        """Create the controller and arm its timer.

        Args:
            server: Server to stop once idle.
            idle_timeout: Seconds without requests before shutdown starts.
            grace_period: Seconds in-flight requests get to finish.
            timer: Existing timer to use instead of creating one.
        """
        self._server = server
        self.grace_period = grace_period
        self.timer = timer if timer is not None else ActivityTimer(idle_timeout)
        self.middleware = self._create_activity_middleware()
        self._watch_task: asyncio.Task[bool] | None = None

    def wrap(self, handler: Handler) -> Handler:
        """Wrap a request handler so each request counts as activity.

        The timer is reset before the handler runs. The handler's response
        and exceptions pass through unchanged.
        """

        @wraps(handler)
        async def activity_handler(request: web.Request) -> web.StreamResponse:
            self.timer.reset()
            return await handler(request)

        return activity_handler

    def _create_activity_middleware(self):
        @web.middleware
        async def activity_middleware(
            request: web.Request, handler: Handler
        ) -> web.StreamResponse:
            """Reset the idle timer, then hand the request on."""
            self.timer.reset()
            return await handler(request)

        return activity_middleware

    def install(self, app: web.Application) -> None:
        """Put the activity middleware first in ``app``'s chain."""
        app.middlewares.insert(0, self.middleware)

    def start(self) -> asyncio.Task[bool]:
        """Start the watcher task on the running loop."""
        if self._watch_task is not None:
            raise RuntimeError("idle watcher already started")
        self._watch_task = asyncio.create_task(
            self.watch(), name="idle-shutdown-watcher"
        )
        return self._watch_task

    async def stop(self) -> None:
        """Stop the watcher and disarm the timer. Idempotent.

        If the timer already fired, waits for the running shutdown to
        finish instead of interrupting it.
        """
        self.timer.stop()
        task, self._watch_task = self._watch_task, None
        if task is None or task.done():
            return
        if self.timer.fired:
            await task
            return
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass

    async def watch(self) -> bool:
        """Wait for the idle timer, then shut the server down.

        Returns:
            True if the idle shutdown ran, False if the timer was stopped
            before it fired.
        """
        expired = self.timer.expired()
        try:
            await asyncio.wrap_future(expired)
        except asyncio.CancelledError:
            self.timer.stop()
            task = asyncio.current_task()
            if task is not None and task.cancelling():
                raise
            return False

        logger.info(
            "HTTP inactivity timeout (%.1fs without requests), shutting down",
            self.timer.duration,
        )
        await drain_and_close(self._server, self.grace_period, reason="idle")
        return True
