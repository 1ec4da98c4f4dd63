"""Telemetry state, history buffers and the operator console."""

from .console import ConsoleLog
from .merger import EMPTY_SNAPSHOT, TelemetrySnapshot, merge
from .series import HistoryPoint, RangePolicy, SeriesBuffer, SeriesStats, VisualRange, monotonic_ms

__all__ = [
    "EMPTY_SNAPSHOT",
    "ConsoleLog",
    "HistoryPoint",
    "RangePolicy",
    "SeriesBuffer",
    "SeriesStats",
    "TelemetrySnapshot",
    "VisualRange",
    "merge",
    "monotonic_ms",
]
