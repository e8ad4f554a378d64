"""Unit tests for the logging configuration factory."""

from unittest.mock import patch

import pytest

from idlestop.config import build_logging_config, configure_logging_from_cli
from idlestop.config.models import LoggingConfig
from idlestop.exceptions import ConfigError


class TestBuildLoggingConfig:
    """Tests for build_logging_config()."""

    def test_no_overrides_keeps_base(self) -> None:
        """Without overrides the base values are kept."""
        base = LoggingConfig(level="warning", format="json", max_bytes=1024)
        result = build_logging_config(base)

        assert result == base

    def test_overrides_applied(self) -> None:
        """Level and format overrides replace base values."""
        result = build_logging_config(
            LoggingConfig(max_bytes=1024), level="ERROR", format="journal"
        )

        assert result.level == "error"
        assert result.format == "journal"
        assert result.max_bytes == 1024

    def test_verbose_wins_over_level(self) -> None:
        result = build_logging_config(LoggingConfig(), level="error", verbose=True)
        assert result.level == "debug"

    def test_invalid_override_raises_config_error(self) -> None:
        """Invalid values surface as ConfigError."""
        with pytest.raises(ConfigError, match="level"):
            build_logging_config(LoggingConfig(), level="chatty")


class TestConfigureLoggingFromCli:
    """Tests for configure_logging_from_cli()."""

    def test_configures_and_returns_final_config(self) -> None:
        """The merged configuration is applied and returned."""
        with patch("idlestop.logging.configure_logging") as mock_configure:
            result = configure_logging_from_cli(LoggingConfig(), level="error")

        mock_configure.assert_called_once_with(result)
        assert result.level == "error"
