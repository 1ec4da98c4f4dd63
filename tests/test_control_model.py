import pytest

from osh_dashboard.gui.model import METRICS, ControlSurface, round_to_step
from osh_dashboard.link import MOTOR_START, MOTOR_STOP, SetSpeed
from osh_dashboard.telemetry import EMPTY_SNAPSHOT, SeriesBuffer, TelemetrySnapshot, merge


class FakeSink:
    def __init__(self):
        self.sent = []

    def send(self, command, quiet=False):
        self.sent.append(command)
        return True


def build_surface(now=1000.0):
    sink = FakeSink()
    buffers = {name: SeriesBuffer(capacity=50, window_ms=30_000) for name in METRICS}
    surface = ControlSurface(sink, buffers, clock=lambda: now)
    return surface, sink, buffers


@pytest.mark.parametrize("value, expected", [(0, 0), (9, 0), (10, 20), (37, 40), (50, 60), (30, 40), (100, 100)])
def test_round_to_step(value, expected):
    assert round_to_step(value) == expected


def test_speed_sent_exactly_when_connected():
    surface, sink, _ = build_surface()
    surface.on_connection_changed(True)
    assert surface.set_speed(37) == 37
    assert surface.set_speed(140) == 100
    assert sink.sent == [SetSpeed(37), SetSpeed(100)]


def test_speed_not_sent_while_disconnected():
    surface, sink, _ = build_surface()
    surface.preset(60)
    assert surface.speed == 60
    assert sink.sent == []
    assert not surface.speed_controls_enabled


def test_start_sends_motor_start_then_speed():
    surface, sink, _ = build_surface()
    assert surface.start() is False
    surface.on_connection_changed(True)
    surface.speed = 40
    assert surface.start_enabled and not surface.stop_enabled
    assert surface.start() is True
    assert sink.sent == [MOTOR_START, SetSpeed(40)]
    assert surface.stop_enabled and not surface.start_enabled
    assert surface.stop() is True
    assert sink.sent[-1] == MOTOR_STOP
    assert not surface.is_started


def test_disconnect_clears_started_flag():
    surface, _, _ = build_surface()
    surface.on_connection_changed(True)
    surface.start()
    surface.on_connection_changed(False)
    assert not surface.is_started
    assert not surface.start_enabled and not surface.stop_enabled


def test_snapshot_drives_display_and_history():
    surface, _, buffers = build_surface(now=5000.0)
    surface.on_snapshot(TelemetrySnapshot(rpm=1200.0, temperature=31.5, speed_setting=50, motor_active=True))
    assert surface.speed == 60
    assert surface.is_started
    assert buffers["rpm"].latest().timestamp == 5000.0
    assert buffers["temperature"].latest().timestamp == 5000.0
    assert len(buffers["voltage"]) == 0


def test_empty_snapshot_records_nothing():
    surface, _, buffers = build_surface()
    surface.speed = 40
    surface.on_snapshot(EMPTY_SNAPSHOT)
    assert surface.speed == 40
    assert all(len(buffer) == 0 for buffer in buffers.values())


def test_readout_text():
    surface, _, _ = build_surface()
    readout = surface.readout("voltage")
    assert readout.value_text == "0.00"
    assert readout.range_text == "min -- / max --"

    surface.on_snapshot(TelemetrySnapshot(voltage=12.3))
    surface.on_snapshot(TelemetrySnapshot(voltage=11.5))
    readout = surface.readout("voltage")
    assert readout.value_text == "11.50"
    assert readout.range_text == "min 11.50 / max 12.30"


def test_sweep_ages_out_every_buffer():
    surface, _, buffers = build_surface(now=0.0)
    surface.on_snapshot(TelemetrySnapshot(rpm=1.0, temperature=2.0, voltage=3.0))
    assert surface.sweep(now=30_001) == 3
    assert all(len(buffer) == 0 for buffer in buffers.values())


def test_unrelated_frame_keeps_started_state():
    surface, sink, _ = build_surface()
    surface.on_connection_changed(True)
    surface.on_snapshot(merge(EMPTY_SNAPSHOT, {"motor_active": False, "speed": 40}))
    assert surface.start() is True
    surface.on_snapshot(merge(surface.snapshot, {"temperature": 21.5}))
    assert surface.is_started
    assert not surface.start_enabled
    assert surface.stop_enabled


def test_unrelated_frame_keeps_operator_speed():
    surface, sink, _ = build_surface()
    surface.on_connection_changed(True)
    surface.on_snapshot(merge(EMPTY_SNAPSHOT, {"speed": 0, "motor_active": False}))
    surface.set_speed(37)
    surface.on_snapshot(merge(surface.snapshot, {"rpm": 900}))
    assert surface.speed == 37
    surface.start()
    assert sink.sent[-2:] == [MOTOR_START, SetSpeed(37)]


def test_changed_device_speed_still_syncs():
    surface, _, _ = build_surface()
    surface.on_connection_changed(True)
    surface.on_snapshot(merge(EMPTY_SNAPSHOT, {"speed": 20}))
    surface.set_speed(37)
    surface.on_snapshot(merge(surface.snapshot, {"speed": 50}))
    assert surface.speed == 60
    surface.on_snapshot(merge(surface.snapshot, {"motor_active": True}))
    assert surface.is_started
