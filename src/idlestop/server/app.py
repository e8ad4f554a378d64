"""HTTP application bundled with the service.

The idle shutdown machinery works with any aiohttp Application. This module
provides a small default one: a /health endpoint describing the service, a
/debug/vars endpoint with process and request counters, and an optional
static directory.
"""

from __future__ import annotations

import logging
import os
import resource
import sys
from dataclasses import asdict, dataclass, field
from pathlib import Path

from aiohttp import web

from idlestop import __version__
from idlestop.activity import ActivityTimer
from idlestop.server.lifecycle import RequestStats, ServerState, ServiceLifecycle

logger = logging.getLogger(__name__)


@dataclass
class ServiceContext:
    """Runtime state shared with request handlers.

    Built once at startup and stored in the application under CONTEXT_KEY,
    so handlers never reach for module-level state.
    """

    lifecycle: ServiceLifecycle
    """Lifecycle of the HTTP service."""

    socket_activated: bool = False
    """True when the listener was handed over by the activation authority."""

    timer: ActivityTimer | None = None
    """Idle timer, present only when idle shutdown is installed."""

    stats: RequestStats = field(default_factory=RequestStats)
    """Request counters, updated by the HTTP service."""

    version: str = __version__
    """idlestop version string."""


CONTEXT_KEY = web.AppKey("context", ServiceContext)


@dataclass
class HealthStatus:
    """Health check response payload."""

    status: str
    """Overall status: 'healthy' or 'draining'."""

    state: str
    """Lifecycle state: 'running', 'draining' or 'closed'."""

    uptime_seconds: float
    """Seconds since service startup."""

    version: str
    """idlestop version string."""

    socket_activated: bool
    """True if the listener came from the activation authority."""

    idle_timeout: float | None = None
    """Configured idle timeout, None when idle shutdown is not installed."""

    idle_seconds: float | None = None
    """Seconds since the previous request, None without idle shutdown."""

    shutting_down: bool = False
    """True if shutdown is in progress."""

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        return asdict(self)


def build_health_status(context: ServiceContext) -> HealthStatus:
    """Describe the service for /health."""
    lifecycle = context.lifecycle
    running = lifecycle.state is ServerState.RUNNING
    timer = context.timer
    return HealthStatus(
        status="healthy" if running else "draining",
        state=lifecycle.state.value,
        uptime_seconds=round(lifecycle.uptime_seconds, 3),
        version=context.version,
        socket_activated=context.socket_activated,
        idle_timeout=timer.duration if timer is not None else None,
        idle_seconds=round(timer.idle_seconds, 3) if timer is not None else None,
        shutting_down=lifecycle.is_shutting_down,
    )


async def health_handler(request: web.Request) -> web.Response:
    """Handle GET /health requests.

    Returns 200 with a HealthStatus payload while running, 503 once the
    service is draining.

    Note that the request itself counts as activity, so polling /health
    keeps a socket-activated service alive.
    """
    context = request.app[CONTEXT_KEY]
    health = build_health_status(context)
    status_code = 200 if health.status == "healthy" else 503
    return web.json_response(health.to_dict(), status=status_code)


def build_debug_vars(context: ServiceContext) -> dict:
    """Process and request counters for /debug/vars."""
    stats = context.stats
    usage = resource.getrusage(resource.RUSAGE_SELF)
    return {
        "cmdline": sys.argv,
        "pid": os.getpid(),
        "uptime_seconds": round(context.lifecycle.uptime_seconds, 3),
        "requests": stats.requests,
        "in_flight": stats.in_flight,
        "rejected": stats.rejected,
        "max_rss_kb": usage.ru_maxrss,
    }


async def debug_vars_handler(request: web.Request) -> web.Response:
    """Handle GET /debug/vars requests.

    The counts include the /debug/vars request itself.
    """
    context = request.app[CONTEXT_KEY]
    return web.json_response(build_debug_vars(context))


def create_app(
    context: ServiceContext, static_dir: Path | None = None
) -> web.Application:
    """Create and configure the aiohttp Application.

    Args:
        context: Runtime state made available to handlers.
        static_dir: Optional directory served as static files under /.

    Returns:
        Configured aiohttp Application instance.
    """
    app = web.Application()
    app[CONTEXT_KEY] = context

    app.router.add_get("/health", health_handler)
    app.router.add_get("/debug/vars", debug_vars_handler)

    if static_dir is not None:
        if not static_dir.is_dir():
            logger.warning(
                "Static directory %s does not exist, not serving it", static_dir
            )
        else:
            app.router.add_static("/", static_dir, show_index=False)
            logger.debug("Serving static files from %s", static_dir)

    return app
