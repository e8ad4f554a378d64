"""Unit tests for duration parsing."""

import pytest

from idlestop.config import parse_duration
from idlestop.exceptions import ConfigError


class TestParseDuration:
    """Tests for parse_duration()."""

    @pytest.mark.parametrize(
        ("value", "expected"),
        [
            (45, 45.0),
            (1.5, 1.5),
            ("90", 90.0),
            ("0.25", 0.25),
            ("300ms", 0.3),
            ("30s", 30.0),
            ("5m", 300.0),
            ("1h30m", 5400.0),
            ("1m30s", 90.0),
            ("1.5h", 5400.0),
            (" 10s ", 10.0),
        ],
    )
    def test_valid_durations(self, value, expected: float) -> None:
        """Numbers and Go-style strings are converted to seconds."""
        assert parse_duration(value) == pytest.approx(expected)

    @pytest.mark.parametrize("value", ["", "   ", "5x", "m5", "5m garbage", "1h 30m"])
    def test_invalid_strings(self, value: str) -> None:
        """Strings that are not durations are rejected."""
        with pytest.raises(ConfigError, match="invalid duration"):
            parse_duration(value)

    @pytest.mark.parametrize("value", [-1, "-5"])
    def test_negative_rejected(self, value) -> None:
        """Negative durations are rejected."""
        with pytest.raises(ConfigError, match="negative"):
            parse_duration(value)

    def test_bool_rejected(self) -> None:
        """A TOML boolean is not a duration."""
        with pytest.raises(ConfigError):
            parse_duration(True)

    @pytest.mark.parametrize("value", [[1], {"s": 5}, None])
    def test_non_scalar_rejected(self, value) -> None:
        """Only strings and numbers are durations."""
        with pytest.raises(ConfigError, match="invalid duration"):
            parse_duration(value)
