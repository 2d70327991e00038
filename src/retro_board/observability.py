"""Logging and telemetry for the feedback board."""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Optional, Protocol

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger("retro_board")


class SeverityLevel(int, Enum):
    """Severity of a telemetry trace."""
    VERBOSE = 0
    INFORMATION = 1
    WARNING = 2
    ERROR = 3
    CRITICAL = 4


class TelemetryExceptions:
    """Names of the traces reported by the board services."""
    ITEMS_NOT_FOUND_FOR_BOARD = "ItemsNotFoundForBoard"


_LOG_LEVELS = {
    SeverityLevel.VERBOSE: logging.DEBUG,
    SeverityLevel.INFORMATION: logging.INFO,
    SeverityLevel.WARNING: logging.WARNING,
    SeverityLevel.ERROR: logging.ERROR,
    SeverityLevel.CRITICAL: logging.CRITICAL,
}


class TelemetrySinkProtocol(Protocol):
    """Protocol for telemetry sinks."""

    def track_trace(
        self,
        name: str,
        error: Optional[BaseException] = None,
        severity: SeverityLevel = SeverityLevel.INFORMATION,
    ) -> None:
        """Report a named trace."""
        ...

    def track_exception(self, error: BaseException) -> None:
        """Report an exception."""
        ...


class LoggingTelemetry:
    """Telemetry sink that writes traces and exceptions to the package logger."""

    def track_trace(
        self,
        name: str,
        error: Optional[BaseException] = None,
        severity: SeverityLevel = SeverityLevel.INFORMATION,
    ) -> None:
        message = f"Trace: {name}"
        if error is not None:
            message += f" ({type(error).__name__}: {error})"
        logger.log(_LOG_LEVELS.get(severity, logging.INFO), message)

    def track_exception(self, error: BaseException) -> None:
        logger.error(f"Exception: {type(error).__name__}: {error}")


@dataclass
class TelemetryEvent:
    """A trace or exception captured by RecordingTelemetry."""

    kind: str  # trace/exception
    name: str
    error: Optional[BaseException] = None
    severity: Optional[SeverityLevel] = None
    recorded_at: str = field(default_factory=lambda: datetime.now().isoformat())


class RecordingTelemetry(LoggingTelemetry):
    """
    Telemetry sink that keeps every event in memory.

    Used by the mock wiring and by tests to inspect what was reported.
    """

    def __init__(self):
        self.events: list[TelemetryEvent] = []

    def track_trace(
        self,
        name: str,
        error: Optional[BaseException] = None,
        severity: SeverityLevel = SeverityLevel.INFORMATION,
    ) -> None:
        self.events.append(TelemetryEvent("trace", name, error, severity))
        super().track_trace(name, error, severity)

    def track_exception(self, error: BaseException) -> None:
        self.events.append(TelemetryEvent("exception", type(error).__name__, error))
        super().track_exception(error)

    @property
    def traces(self) -> list[TelemetryEvent]:
        return [e for e in self.events if e.kind == "trace"]

    @property
    def exceptions(self) -> list[TelemetryEvent]:
        return [e for e in self.events if e.kind == "exception"]


class TelemetryObserver:
    """
    Guards calls into a telemetry sink.

    Telemetry is a side channel: a failing sink is logged and otherwise
    ignored so it never changes the result of the operation reporting to it.
    """

    def __init__(self, sink: Optional[TelemetrySinkProtocol] = None):
        self.sink = sink or LoggingTelemetry()

    def trace(
        self,
        name: str,
        error: Optional[BaseException] = None,
        severity: SeverityLevel = SeverityLevel.INFORMATION,
    ) -> None:
        try:
            self.sink.track_trace(name, error, severity)
        except Exception as e:
            logger.debug(f"Telemetry sink failed on trace {name}: {e}")

    def exception(self, error: BaseException) -> None:
        try:
            self.sink.track_exception(error)
        except Exception as e:
            logger.debug(f"Telemetry sink failed on exception report: {e}")
