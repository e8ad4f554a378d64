"""Unit tests for signal handler setup."""

import asyncio
import logging
import signal
from unittest.mock import MagicMock

import pytest

from idlestop.server.signals import (
    SHUTDOWN_SIGNALS,
    remove_signal_handlers,
    setup_signal_handlers,
)


class TestSignalSetup:
    """Tests for signal handler registration."""

    def test_sigterm_and_sigint_trigger_shutdown(self) -> None:
        """Both SIGTERM and SIGINT are handled."""
        assert set(SHUTDOWN_SIGNALS) == {signal.SIGTERM, signal.SIGINT}

    def test_registers_handler_for_each_signal(self) -> None:
        """The callback is registered with the signal as argument."""
        loop = MagicMock()
        callback = MagicMock()

        setup_signal_handlers(loop, callback)

        assert loop.add_signal_handler.call_count == 2
        for (sig, func, arg), _ in loop.add_signal_handler.call_args_list:
            assert func is callback
            assert arg is sig

    def test_registration_failure_is_logged(
        self, caplog: pytest.LogCaptureFixture
    ) -> None:
        """Platforms without signal support only log a warning."""
        loop = MagicMock()
        loop.add_signal_handler.side_effect = NotImplementedError()

        with caplog.at_level(logging.WARNING):
            setup_signal_handlers(loop, MagicMock())

        assert "Failed to register handler for SIGTERM" in caplog.text

    def test_remove_ignores_unregistered(self) -> None:
        """Removing handlers that were never set does not raise."""
        loop = MagicMock()
        loop.remove_signal_handler.side_effect = RuntimeError()

        remove_signal_handlers(loop)

        assert loop.remove_signal_handler.call_count == 2

    def test_handler_runs_on_loop(self) -> None:
        """A real signal reaches the callback on the event loop."""

        async def _test() -> list[signal.Signals]:
            loop = asyncio.get_running_loop()
            received: list[signal.Signals] = []
            setup_signal_handlers(loop, received.append)
            try:
                loop.call_soon(signal.raise_signal, signal.SIGINT)
                for _ in range(50):
                    if received:
                        break
                    await asyncio.sleep(0.01)
            finally:
                remove_signal_handlers(loop)
            return received

        assert asyncio.run(_test()) == [signal.SIGINT]
