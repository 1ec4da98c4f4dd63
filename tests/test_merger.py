from osh_dashboard.telemetry import EMPTY_SNAPSHOT, TelemetrySnapshot, merge


def test_absent_fields_are_kept():
    snapshot = merge(EMPTY_SNAPSHOT, {"rpm": 900, "temperature": 35.0})
    snapshot = merge(snapshot, {"rpm": 950})
    assert snapshot.rpm == 950.0
    assert snapshot.temperature == 35.0
    assert snapshot.voltage is None


def test_falsy_values_overwrite():
    snapshot = merge(EMPTY_SNAPSHOT, {"speed": 60, "motor_active": True})
    snapshot = merge(snapshot, {"motor_active": False})
    assert snapshot.motor_active is False
    assert snapshot.speed_setting == 60
    snapshot = merge(snapshot, {"speed": 0})
    assert snapshot.speed_setting == 0
    assert snapshot.motor_active is False


def test_last_frame_wins_per_field():
    frames = [
        {"rpm": 1, "voltage": 12.0},
        {"temperature": 20.0},
        {"rpm": 3, "motor_active": True},
        {"voltage": 11.5, "firmware": "x"},
    ]
    snapshot = EMPTY_SNAPSHOT
    for frame in frames:
        snapshot = merge(snapshot, frame)
    assert snapshot == TelemetrySnapshot(
        rpm=3.0, temperature=20.0, voltage=11.5, speed_setting=None, motor_active=True
    )


def test_merge_is_pure():
    previous = TelemetrySnapshot(rpm=10.0)
    merged = merge(previous, {"rpm": 20})
    assert previous.rpm == 10.0
    assert merged.rpm == 20.0
    assert merge(previous, {"unrelated": 1}) is previous


def test_unusable_values_overwrite_with_none():
    snapshot = merge(TelemetrySnapshot(rpm=10.0, motor_active=True), {"rpm": "fast", "motor_active": "yes"})
    assert snapshot.rpm is None
    assert snapshot.motor_active is None


def test_speed_is_clamped_to_percent():
    assert merge(EMPTY_SNAPSHOT, {"speed": 140}).speed_setting == 100
    assert merge(EMPTY_SNAPSHOT, {"speed": 33.7}).speed_setting == 33
