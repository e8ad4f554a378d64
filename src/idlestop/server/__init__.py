"""HTTP service with idle shutdown for socket activation."""

from idlestop.server.app import CONTEXT_KEY, ServiceContext, create_app
from idlestop.server.idle import IdleShutdownController, drain_and_close
from idlestop.server.lifecycle import ServerState, ServiceLifecycle
from idlestop.server.runner import run_service
from idlestop.server.service import HTTPService

__all__ = [
    "CONTEXT_KEY",
    "HTTPService",
    "IdleShutdownController",
    "ServerState",
    "ServiceContext",
    "ServiceLifecycle",
    "create_app",
    "drain_and_close",
    "run_service",
]
