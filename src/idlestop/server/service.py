"""HTTP service bound to a single listening socket.

HTTPService runs an aiohttp Application on a socket obtained from the
activation authority (or bound as a fallback) and exposes the two stop
operations the shutdown path needs:

- shutdown(timeout): stop accepting connections and wait for in-flight
  requests, up to ``timeout`` seconds.
- close(): tear everything down, cancelling requests that are still running.
"""

from __future__ import annotations

import asyncio
import logging
import socket

from aiohttp import web

from idlestop.exceptions import ShutdownTimeoutError
from idlestop.server.idle import Handler
from idlestop.server.lifecycle import RequestStats, ServerState, ServiceLifecycle

logger = logging.getLogger(__name__)

# How long a forced close lets running handlers react to cancellation
FORCE_CLOSE_TIMEOUT = 0.5


def format_address(address: object) -> str:
    """Render a socket address for log messages."""
    if isinstance(address, tuple) and len(address) >= 2:
        host, port = address[0], address[1]
        if ":" in str(host):
            return f"[{host}]:{port}"
        return f"{host}:{port}"
    return str(address)


class HTTPService:
    """Serves an aiohttp Application on one pre-bound listening socket.

    The service counts in-flight requests with a middleware so that a
    graceful shutdown knows when the last request has finished. Once
    draining, requests arriving on kept-alive connections are answered
    with 503 and the connection is closed.

    Only the shutdown path calls shutdown() and close(); request handlers
    never mutate the listener.

    Example:
        service = HTTPService(app, sock)
        await service.start()
        ...
        await service.shutdown(30.0, reason="idle")
        await service.close()
    """

    def __init__(
        self,
        app: web.Application,
        sock: socket.socket,
        *,
        lifecycle: ServiceLifecycle | None = None,
        stats: RequestStats | None = None,
        force_close_timeout: float = FORCE_CLOSE_TIMEOUT,
    ) -> None:
        """Prepare the service. The application must not be frozen yet.

        Args:
            app: Application to serve.
            sock: Listening socket.
            lifecycle: Lifecycle record to update (a new one if None).
            stats: Request counters to update (new ones if None).
            force_close_timeout: Seconds a forced close waits for cancelled
                handlers to unwind.
        """
        self.app = app
        self.lifecycle = lifecycle if lifecycle is not None else ServiceLifecycle()
        self._sock = sock
        self._address = sock.getsockname()
        self._force_close_timeout = force_close_timeout
        self._runner: web.AppRunner | None = None
        self._site: web.SockSite | None = None
        self.stats = stats if stats is not None else RequestStats()
        self._drained = asyncio.Event()
        self._drained.set()
        self._closed = asyncio.Event()
        self._stop_lock = asyncio.Lock()

        app.middlewares.append(self._create_tracking_middleware())

    @property
    def address(self) -> str:
        """Address of the listening socket, e.g. "127.0.0.1:6060"."""
        return format_address(self._address)

    @property
    def in_flight(self) -> int:
        """Number of requests currently being handled."""
        return self.stats.in_flight

    @property
    def state(self) -> ServerState:
        """Current lifecycle state."""
        return self.lifecycle.state

    def _create_tracking_middleware(self):
        @web.middleware
        async def request_tracking_middleware(
            request: web.Request, handler: Handler
        ) -> web.StreamResponse:
            """Count in-flight requests and refuse new ones while draining.

            aiohttp writes the response body after the handler returns, in
            the task that runs the request, so a request stays in flight
            until that task is done.
            """
            if self.lifecycle.state is not ServerState.RUNNING:
                self.stats.rejected += 1
                response = web.Response(status=503, text="Service is shutting down\n")
                response.force_close()
                return response

            self.stats.requests += 1
            self.stats.in_flight += 1
            self._drained.clear()
            asyncio.current_task().add_done_callback(self._request_finished)
            return await handler(request)

        return request_tracking_middleware

    def _request_finished(self, task: asyncio.Task) -> None:
        self.stats.in_flight -= 1
        if self.stats.in_flight == 0:
            self._drained.set()

    async def start(self) -> None:
        """Start serving on the socket.

        Raises:
            RuntimeError: If the service was already started.
            OSError: If the socket cannot be served.
        """
        if self._runner is not None or self._closed.is_set():
            raise RuntimeError("HTTPService can only be started once")

        self._runner = web.AppRunner(
            self.app,
            handle_signals=False,
            shutdown_timeout=self._force_close_timeout,
        )
        await self._runner.setup()
        self._site = web.SockSite(self._runner, self._sock)
        await self._site.start()
        logger.debug("HTTP service accepting connections on %s", self.address)

    async def shutdown(self, timeout: float, *, reason: str = "shutdown") -> None:
        """Stop accepting connections and wait for in-flight requests.

        On success the service is CLOSED. If requests are still running
        when ``timeout`` elapses, the service stays DRAINING and the caller
        is expected to close() it.

        Args:
            timeout: Grace period in seconds.
            reason: What triggered the shutdown (recorded in the lifecycle).

        Raises:
            ShutdownTimeoutError: If the grace period elapsed first.
        """
        async with self._stop_lock:
            if self.lifecycle.is_closed:
                return

            self.lifecycle.shutdown_timeout = timeout
            if self.lifecycle.initiate_shutdown(reason):
                logger.info(
                    "Draining HTTP service (%s): waiting up to %.1fs for %d "
                    "in-flight request(s)",
                    reason,
                    timeout,
                    self.stats.in_flight,
                )

            if self._site is not None:
                await self._site.stop()
                self._site = None

            try:
                await asyncio.wait_for(self._drained.wait(), timeout)
            except asyncio.TimeoutError as e:
                err = ShutdownTimeoutError(timeout, self.stats.in_flight)
                self.lifecycle.record_error(str(err))
                raise err from e

            await self._release(forced=False)

    async def close(self) -> None:
        """Close the listener and all connections immediately.

        Requests still running are cancelled. No-op once CLOSED.
        """
        async with self._stop_lock:
            if self.lifecycle.is_closed:
                return
            forced = self.stats.in_flight > 0
            if forced:
                logger.warning(
                    "Forcing close with %d request(s) still in flight",
                    self.stats.in_flight,
                )
            await self._release(forced=forced)

    async def wait_closed(self) -> None:
        """Block until the service reaches CLOSED."""
        await self._closed.wait()

    async def _release(self, *, forced: bool) -> None:
        """Release the runner and socket and mark the service CLOSED."""
        runner, self._runner, self._site = self._runner, None, None
        try:
            if runner is not None:
                await runner.cleanup()
        except Exception as e:
            self.lifecycle.record_error(f"cleanup failed: {e}")
            raise
        finally:
            self._sock.close()
            self.lifecycle.mark_closed(forced=forced)
            self._closed.set()
            logger.info("HTTP service closed%s", " (forced)" if forced else "")
