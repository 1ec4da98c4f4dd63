"""Control-surface state shared between the Qt panes and the device link."""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Callable, Dict, Mapping, Optional, Protocol

from osh_dashboard.link.codec import MOTOR_START, MOTOR_STOP, Command, SetSpeed, clamp_speed
from osh_dashboard.telemetry.merger import EMPTY_SNAPSHOT, TelemetrySnapshot
from osh_dashboard.telemetry.series import SeriesBuffer, monotonic_ms

METRICS = ("rpm", "temperature", "voltage")
SPEED_PRESETS = (0, 20, 40, 60, 80, 100)
SPEED_DISPLAY_STEP = 20


class CommandSink(Protocol):
    def send(self, command: Command, quiet: bool = False) -> bool:
        ...


@dataclass(frozen=True)
class MetricSpec:
    name: str
    title: str
    unit: str
    decimals: int


METRIC_SPECS: Dict[str, MetricSpec] = {
    "rpm": MetricSpec("rpm", "Impeller RPM", "RPM", 0),
    "temperature": MetricSpec("temperature", "Exhaust Temperature", "°C", 1),
    "voltage": MetricSpec("voltage", "Battery Voltage", "V", 2),
}


@dataclass(frozen=True)
class MetricReadout:
    """Current value plus rolling min/max of the retained history."""

    spec: MetricSpec
    value: float
    minimum: Optional[float] = None
    maximum: Optional[float] = None

    @property
    def value_text(self) -> str:
        return f"{self.value:.{self.spec.decimals}f}"

    @property
    def range_text(self) -> str:
        if self.minimum is None or self.maximum is None:
            return "min -- / max --"
        digits = self.spec.decimals
        return f"min {self.minimum:.{digits}f} / max {self.maximum:.{digits}f}"


def round_to_step(value: float, step: int = SPEED_DISPLAY_STEP) -> int:
    """Round half-up to the nearest ``step`` (display only)."""
    return int(math.floor(value / step + 0.5)) * step


class ControlSurface:
    """Speed/start/stop logic behind the operator controls.

    Outbound speed commands carry the exact clamped value; only the speed
    reported back by the device is quantised to 20% steps for display.
    """

    def __init__(
        self,
        sink: CommandSink,
        buffers: Mapping[str, SeriesBuffer],
        clock: Callable[[], float] = monotonic_ms,
    ) -> None:
        self.sink = sink
        self.buffers = buffers
        self._clock = clock
        self.speed = 0
        self.is_started = False
        self.connected = False
        self.snapshot: TelemetrySnapshot = EMPTY_SNAPSHOT

    # -- enablement ------------------------------------------------------
    @property
    def speed_controls_enabled(self) -> bool:
        return self.connected

    @property
    def start_enabled(self) -> bool:
        return self.connected and not self.is_started

    @property
    def stop_enabled(self) -> bool:
        return self.connected and self.is_started

    # -- link inputs -----------------------------------------------------
    def on_connection_changed(self, connected: bool) -> None:
        self.connected = connected
        if not connected:
            self.is_started = False

    def on_snapshot(self, snapshot: TelemetrySnapshot) -> None:
        previous, self.snapshot = self.snapshot, snapshot
        if snapshot.is_empty():
            return
        now = self._clock()
        for name in METRICS:
            value = getattr(snapshot, name)
            buffer = self.buffers.get(name)
            if value is not None and buffer is not None:
                buffer.push(value, at=now)
        # Device state only overrides operator input when the device reports a change
        if snapshot.speed_setting is not None and snapshot.speed_setting != previous.speed_setting:
            self.speed = round_to_step(snapshot.speed_setting)
        if snapshot.motor_active is not None and snapshot.motor_active != previous.motor_active:
            self.is_started = snapshot.motor_active

    # -- operator commands -----------------------------------------------
    def set_speed(self, value: float) -> int:
        self.speed = clamp_speed(value)
        if self.connected:
            self.sink.send(SetSpeed(self.speed))
        return self.speed

    def preset(self, value: int) -> int:
        return self.set_speed(value)

    def start(self) -> bool:
        if not self.start_enabled:
            return False
        self.is_started = True
        self.sink.send(MOTOR_START)
        self.sink.send(SetSpeed(clamp_speed(self.speed)))
        return True

    def stop(self) -> bool:
        if not self.stop_enabled:
            return False
        self.is_started = False
        self.sink.send(MOTOR_STOP)
        return True

    # -- display ---------------------------------------------------------
    def readout(self, metric: str) -> MetricReadout:
        spec = METRIC_SPECS[metric]
        value = getattr(self.snapshot, metric)
        buffer = self.buffers.get(metric)
        stats = buffer.stats() if buffer is not None else None
        return MetricReadout(
            spec=spec,
            value=0.0 if value is None else value,
            minimum=stats.minimum if stats else None,
            maximum=stats.maximum if stats else None,
        )

    def sweep(self, now: Optional[float] = None) -> int:
        """Age out old history in every buffer."""
        now = self._clock() if now is None else now
        return sum(buffer.sweep(now) for buffer in self.buffers.values())
