"""Tests for CLI exit codes."""

from idlestop.cli.exit_codes import ExitCode


class TestExitCodes:
    """Exit codes are part of the service unit contract."""

    def test_values(self) -> None:
        assert ExitCode.SUCCESS == 0
        assert ExitCode.GENERAL_ERROR == 1
        assert ExitCode.INTERRUPTED == 2
        assert ExitCode.CONFIG_ERROR == 11
        assert ExitCode.ACTIVATION_ERROR == 12
        assert ExitCode.BIND_ERROR == 13

    def test_unique(self) -> None:
        values = [code.value for code in ExitCode]
        assert len(values) == len(set(values))
