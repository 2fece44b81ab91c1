"""
Unit tests for telemetry module.
"""

import logging
from unittest.mock import MagicMock

from sdkprovision.core.telemetry import (
    REDACTED,
    LoggingTelemetrySink,
    TelemetryEvent,
    send_safely,
)


class TestTelemetryEvent:
    """Test TelemetryEvent annotations."""

    def test_chaining(self):
        """Test add and add_error return the event."""
        error = OSError("disk full")
        event = TelemetryEvent("installer.androidSdk")

        result = event.add("error.description", "ErrorOnExtract").add_error(error)

        assert result is event
        assert event.get("error.description") == "ErrorOnExtract"
        assert event.errors == [error]

    def test_get_latest_value(self):
        """Test get returns the most recent value for a key."""
        event = TelemetryEvent("e").add("k", 1).add("k", 2)
        assert event.get("k") == 2
        assert event.get("missing") is None

    def test_pii_flag(self):
        """Test PII marking is kept per property."""
        event = TelemetryEvent("e").add("error.message", "stderr", is_pii=True)
        assert event.properties[0].is_pii

    def test_is_empty(self):
        """Test a fresh event is empty."""
        assert TelemetryEvent("e").is_empty()
        assert not TelemetryEvent("e").add("k", "v").is_empty()


class TestLoggingTelemetrySink:
    """Test LoggingTelemetrySink."""

    def test_pii_redacted(self, caplog):
        """Test PII values never reach the log."""
        event = TelemetryEvent("installer.androidSdk")
        event.add("installer.platform", "darwin")
        event.add("error.message", "/Users/alice/secret", is_pii=True)

        with caplog.at_level(logging.DEBUG, logger="sdkprovision.core.telemetry"):
            LoggingTelemetrySink().send(event)

        assert "installer.platform=darwin" in caplog.text
        assert f"error.message={REDACTED}" in caplog.text
        assert "/Users/alice/secret" not in caplog.text


class TestSendSafely:
    """Test send_safely."""

    def test_sends_event(self):
        """Test a non-empty event is delivered."""
        sink = MagicMock()
        event = TelemetryEvent("e").add("k", "v")

        send_safely(sink, event)

        sink.send.assert_called_once_with(event)

    def test_skips_empty_event(self):
        """Test empty events are not sent."""
        sink = MagicMock()
        send_safely(sink, TelemetryEvent("e"))
        sink.send.assert_not_called()

    def test_no_sink(self):
        """Test a missing sink is allowed."""
        send_safely(None, TelemetryEvent("e").add("k", "v"))

    def test_sink_failure_contained(self, caplog):
        """Test sink errors are logged and never raised."""
        sink = MagicMock()
        sink.send.side_effect = RuntimeError("collector down")

        send_safely(sink, TelemetryEvent("e").add("k", "v"))

        assert "collector down" in caplog.text
