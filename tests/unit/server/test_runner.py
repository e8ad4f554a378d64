"""Tests for run_service() startup and shutdown sequencing."""

import asyncio
import logging
import signal
import socket
import time
from unittest.mock import patch

import aiohttp
import pytest
from aiohttp import web

from idlestop.config.models import ServerConfig
from idlestop.exceptions import ActivationError
from idlestop.logging import ServiceContextFilter
from idlestop.server.activation import bind_listener
from idlestop.server.app import CONTEXT_KEY
from idlestop.server.runner import run_service


def base_url(sock: socket.socket) -> str:
    host, port = sock.getsockname()[:2]
    return f"http://{host}:{port}"


async def wait_until_serving(url: str, timeout: float = 5.0) -> None:
    """Poll ``url`` until the service answers."""
    deadline = time.monotonic() + timeout
    async with aiohttp.ClientSession() as session:
        while True:
            try:
                async with session.get(url) as resp:
                    await resp.read()
                    return
            except aiohttp.ClientConnectionError:
                if time.monotonic() > deadline:
                    raise
                await asyncio.sleep(0.05)


class TestRunServiceActivated:
    """One socket handed over: serve it and stop when idle."""

    @pytest.mark.asyncio
    async def test_exits_after_idle_timeout(self) -> None:
        """With no traffic the service returns 0 after the idle timeout."""
        listener = bind_listener("127.0.0.1", 0)
        config = ServerConfig(idle_timeout=0.3, shutdown_timeout=1.0)

        begin = time.monotonic()
        code = await asyncio.wait_for(
            run_service(config, sockets=[listener]), timeout=5
        )

        assert code == 0
        assert time.monotonic() - begin >= 0.25
        assert listener.fileno() == -1

    @pytest.mark.asyncio
    async def test_log_records_carry_service_context(
        self, caplog: pytest.LogCaptureFixture
    ) -> None:
        """Records logged by the service name the activation and shutdown."""
        caplog.handler.addFilter(ServiceContextFilter())
        listener = bind_listener("127.0.0.1", 0)
        config = ServerConfig(idle_timeout=0.2, shutdown_timeout=1.0)

        with caplog.at_level(logging.INFO):
            await asyncio.wait_for(run_service(config, sockets=[listener]), timeout=5)

        stopped = next(
            r for r in caplog.records if r.getMessage().startswith("idlestop stopped")
        )
        assert stopped.activation == "socket"
        assert stopped.service_state == "closed"
        assert stopped.shutdown_reason == "idle"

    @pytest.mark.asyncio
    async def test_health_reports_activation(self) -> None:
        """The bundled app reports socket activation and idle timer."""
        listener = bind_listener("127.0.0.1", 0)
        url = base_url(listener)
        config = ServerConfig(idle_timeout=1.0, shutdown_timeout=1.0)
        task = asyncio.create_task(run_service(config, sockets=[listener]))

        async with aiohttp.ClientSession() as session:
            await wait_until_serving(url + "/health")
            async with session.get(url + "/health") as resp:
                body = await resp.json()

        assert body["socket_activated"] is True
        assert body["idle_timeout"] == 1.0
        assert await asyncio.wait_for(task, timeout=5) == 0

    @pytest.mark.asyncio
    async def test_custom_app(self) -> None:
        """A supplied application is served with idle shutdown installed."""

        async def hello(request: web.Request) -> web.Response:
            context = request.app[CONTEXT_KEY]
            return web.Response(text=f"activated={context.socket_activated}")

        app = web.Application()
        app.router.add_get("/hello", hello)
        listener = bind_listener("127.0.0.1", 0)
        url = base_url(listener)
        config = ServerConfig(idle_timeout=0.5, shutdown_timeout=1.0)
        task = asyncio.create_task(
            run_service(config, app=app, sockets=[listener])
        )

        await wait_until_serving(url + "/hello")
        async with aiohttp.ClientSession() as session:
            async with session.get(url + "/hello") as resp:
                assert await resp.text() == "activated=True"

        assert await asyncio.wait_for(task, timeout=5) == 0


class TestRunServiceNotActivated:
    """No socket handed over: bind the fallback and run until stopped."""

    @pytest.mark.asyncio
    async def test_runs_past_idle_timeout(self, free_port: int) -> None:
        """Without activation the idle timeout does not apply."""
        config = ServerConfig(port=free_port, idle_timeout=0.2)
        url = f"http://127.0.0.1:{free_port}"
        task = asyncio.create_task(run_service(config, sockets=[]))

        await wait_until_serving(url + "/health")
        await asyncio.sleep(0.6)

        async with aiohttp.ClientSession() as session:
            async with session.get(url + "/health") as resp:
                assert resp.status == 200
                body = await resp.json()
        assert body["socket_activated"] is False
        assert body["idle_timeout"] is None
        assert not task.done()

        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task

    @pytest.mark.asyncio
    async def test_signal_triggers_graceful_shutdown(self, free_port: int) -> None:
        """SIGTERM drains the service and run_service returns 0."""
        captured = []

        def fake_setup(loop, on_shutdown):
            captured.append(on_shutdown)

        config = ServerConfig(port=free_port, shutdown_timeout=1.0)
        with (
            patch("idlestop.server.runner.setup_signal_handlers", fake_setup),
            patch("idlestop.server.runner.remove_signal_handlers"),
        ):
            task = asyncio.create_task(run_service(config, sockets=[]))
            await wait_until_serving(f"http://127.0.0.1:{free_port}/health")

            captured[0](signal.SIGTERM)
            code = await asyncio.wait_for(task, timeout=5)

        assert code == 0

    @pytest.mark.asyncio
    async def test_bind_failure(self, listener: socket.socket) -> None:
        """A busy fallback port is a startup error."""
        port = listener.getsockname()[1]

        with pytest.raises(ActivationError) as exc_info:
            await run_service(ServerConfig(port=port), sockets=[])

        assert exc_info.value.bind_failed is True


class TestRunServiceRejected:
    """More than one socket handed over: refuse to start."""

    @pytest.mark.asyncio
    async def test_many_sockets(self) -> None:
        """Nothing is served and every passed socket is closed."""
        sockets = [bind_listener("127.0.0.1", 0) for _ in range(2)]

        with pytest.raises(ActivationError, match="Unexpected number of sockets"):
            await run_service(ServerConfig(), sockets=sockets)

        assert all(sock.fileno() == -1 for sock in sockets)

    @pytest.mark.asyncio
    async def test_reads_activation_environment(
        self, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        """Without explicit sockets the LISTEN_* variables are consulted."""
        monkeypatch.setenv("LISTEN_PID", "1")
        monkeypatch.setenv("LISTEN_FDS", "bogus")

        with pytest.raises(ActivationError, match="Malformed"):
            await run_service(ServerConfig())
