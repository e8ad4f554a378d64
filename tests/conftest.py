"""Shared test fixtures for idlestop."""

import socket
from collections.abc import Iterator
from pathlib import Path

import pytest

from idlestop.server.activation import bind_listener


@pytest.fixture(autouse=True)
def isolated_env(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    """Keep tests away from the user's config and the real activation env."""
    for var in (
        "LISTEN_PID",
        "LISTEN_FDS",
        "LISTEN_FDNAMES",
        "IDLESTOP_SERVER_BIND",
        "IDLESTOP_SERVER_PORT",
        "IDLESTOP_IDLE_TIMEOUT",
        "IDLESTOP_SHUTDOWN_TIMEOUT",
        "IDLESTOP_STATIC_DIR",
        "IDLESTOP_LOG_LEVEL",
        "IDLESTOP_LOG_FORMAT",
        "IDLESTOP_LOG_FILE",
        "JOURNAL_STREAM",
    ):
        monkeypatch.delenv(var, raising=False)
    monkeypatch.setenv("IDLESTOP_CONFIG_PATH", str(tmp_path / "no-config.toml"))


@pytest.fixture
def listener() -> Iterator[socket.socket]:
    """A listening TCP socket on a free localhost port."""
    sock = bind_listener("127.0.0.1", 0)
    yield sock
    sock.close()


@pytest.fixture
def free_port() -> int:
    """A localhost port that was free a moment ago."""
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as s:
        s.bind(("127.0.0.1", 0))
        return s.getsockname()[1]
