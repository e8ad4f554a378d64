"""Unit tests for the service logging context."""

import logging

from idlestop.logging import ServiceContextFilter, get_service_context, service_context
from idlestop.server.lifecycle import ServiceLifecycle


def filtered_record() -> logging.LogRecord:
    record = logging.LogRecord(
        "idlestop.test", logging.INFO, __file__, 1, "x", (), None
    )
    assert ServiceContextFilter().filter(record)
    return record


class TestServiceContext:
    """Tests for service_context() and ServiceContextFilter."""

    def test_outside_context(self) -> None:
        """Without a running service the fields are empty."""
        assert get_service_context() == (None, None, None)

        record = filtered_record()
        assert record.activation is None
        assert record.service_tag == ""

    def test_socket_activated_service(self) -> None:
        lifecycle = ServiceLifecycle()
        with service_context(lifecycle, socket_activated=True):
            record = filtered_record()

        assert record.activation == "socket"
        assert record.service_state == "running"
        assert record.shutdown_reason is None
        assert record.service_tag == "[socket:running] "

    def test_follows_lifecycle_changes(self) -> None:
        """State and shutdown reason are read when the record is logged."""
        lifecycle = ServiceLifecycle()
        with service_context(lifecycle, socket_activated=False):
            lifecycle.initiate_shutdown(reason="SIGTERM")
            record = filtered_record()

        assert record.activation == "manual"
        assert record.service_state == "draining"
        assert record.shutdown_reason == "SIGTERM"
        assert record.service_tag == "[manual:draining] "

    def test_restored_on_exit(self) -> None:
        outer = ServiceLifecycle()
        with service_context(outer, socket_activated=True):
            with service_context(ServiceLifecycle(), socket_activated=False):
                assert get_service_context()[0] == "manual"
            assert get_service_context()[0] == "socket"
        assert get_service_context() == (None, None, None)
