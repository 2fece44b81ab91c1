"""
Telemetry annotations for installer runs.

Installers annotate a TelemetryEvent with key/value properties and errors as
they run. Each property carries a PII flag; the event only marks data, the
sink decides what to do with marked values. Sinks must never block or fail
the installation, so ``send_safely`` swallows and logs sink failures.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, List, Optional, Protocol

logger = logging.getLogger(__name__)

REDACTED = "<redacted>"


@dataclass
class TelemetryProperty:
    """One annotated value."""

    key: str
    value: Any
    is_pii: bool = False


@dataclass
class TelemetryEvent:
    """
    Collection of annotations for one installer run.

    Example:
        >>> event = TelemetryEvent("installer.androidSdk")
        >>> event.add("error.description", "ErrorOnChildProcess").add(
        ...     "error.message", "stderr text", is_pii=True
        ... )
    """

    name: str
    properties: List[TelemetryProperty] = field(default_factory=list)
    errors: List[BaseException] = field(default_factory=list)

    def add(self, key: str, value: Any, is_pii: bool = False) -> "TelemetryEvent":
        """Add a property and return the event for chaining."""
        self.properties.append(TelemetryProperty(key, value, is_pii))
        return self

    def add_error(self, error: BaseException) -> "TelemetryEvent":
        """Attach an error object and return the event for chaining."""
        self.errors.append(error)
        return self

    def get(self, key: str) -> Optional[Any]:
        """Get the most recent value recorded for a key."""
        for prop in reversed(self.properties):
            if prop.key == key:
                return prop.value
        return None

    def is_empty(self) -> bool:
        return not self.properties and not self.errors


class TelemetrySink(Protocol):
    """Destination for telemetry events."""

    def send(self, event: TelemetryEvent) -> None: ...


class LoggingTelemetrySink:
    """Sink that writes events to the log with PII values redacted."""

    def __init__(self, log: Optional[logging.Logger] = None):
        self.log = log or logger

    def send(self, event: TelemetryEvent) -> None:
        for prop in event.properties:
            value = REDACTED if prop.is_pii else prop.value
            self.log.debug(f"telemetry {event.name}: {prop.key}={value}")
        for error in event.errors:
            self.log.debug(
                f"telemetry {event.name}: error={type(error).__name__}: {error}"
            )


def send_safely(sink: Optional[TelemetrySink], event: TelemetryEvent) -> None:
    """
    Deliver an event without letting sink failures escape.

    Args:
        sink: Telemetry sink (nothing is sent when None)
        event: Event to deliver
    """
    if sink is None or event.is_empty():
        return

    try:
        sink.send(event)
    except Exception as e:
        logger.warning(f"Telemetry sink failed: {e}")
