"""Unit tests for EnvReader."""

import logging
from pathlib import Path

import pytest

from idlestop.config import EnvReader


class TestEnvReader:
    """Tests for typed environment reads."""

    def test_get_str(self) -> None:
        """Empty strings count as unset."""
        reader = EnvReader(env={"A": "value", "B": ""})
        assert reader.get_str("A") == "value"
        assert reader.get_str("B", "default") == "default"
        assert reader.get_str("MISSING") is None

    def test_get_int(self) -> None:
        """Integers are parsed."""
        reader = EnvReader(env={"PORT": "9000"})
        assert reader.get_int("PORT") == 9000
        assert reader.get_int("MISSING", 6060) == 6060

    def test_get_int_invalid_logs_and_returns_default(
        self, caplog: pytest.LogCaptureFixture
    ) -> None:
        """An invalid integer is logged and ignored."""
        reader = EnvReader(env={"PORT": "abc"})
        with caplog.at_level(logging.WARNING):
            assert reader.get_int("PORT", 6060) == 6060
        assert "Invalid integer value for PORT" in caplog.text

    def test_get_duration(self) -> None:
        """Durations accept units."""
        reader = EnvReader(env={"IDLE": "5m"})
        assert reader.get_duration("IDLE") == 300.0

    def test_get_duration_invalid_logs_and_returns_default(
        self, caplog: pytest.LogCaptureFixture
    ) -> None:
        """An invalid duration is logged and ignored."""
        reader = EnvReader(env={"IDLE": "soon"})
        with caplog.at_level(logging.WARNING):
            assert reader.get_duration("IDLE") is None
        assert "Invalid duration value for IDLE" in caplog.text

    def test_get_path_expands_user(self) -> None:
        """Paths get tilde expansion."""
        reader = EnvReader(env={"DIR": "~/www"})
        assert reader.get_path("DIR") == Path("~/www").expanduser()
