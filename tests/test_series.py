import math

from osh_dashboard.telemetry import HistoryPoint, RangePolicy, SeriesBuffer, VisualRange

RPM_POLICY = RangePolicy(floor=-5.0, ceiling=10.0, padding=5.0)


class FakeClock:
    def __init__(self, now=0.0):
        self.now = now

    def __call__(self):
        return self.now


def test_capacity_keeps_most_recent_in_order():
    series = SeriesBuffer(capacity=3, window_ms=60_000)
    for index in range(7):
        series.push(float(index), at=float(index))
    assert [p.value for p in series.snapshot()] == [4.0, 5.0, 6.0]
    assert [p.timestamp for p in series.snapshot()] == [4.0, 5.0, 6.0]
    assert series.first_index == 4
    assert series.end_index == 7


def test_non_finite_values_are_ignored():
    series = SeriesBuffer(capacity=5)
    assert series.push(float("nan"), at=1.0) is False
    assert series.push(float("inf"), at=2.0) is False
    assert series.push(3.0, at=3.0) is True
    assert series.snapshot() == (HistoryPoint(3.0, 3.0),)


def test_push_evicts_by_age_of_pushed_point():
    series = SeriesBuffer(capacity=10, window_ms=1000)
    series.push(1.0, at=0.0)
    series.push(2.0, at=500.0)
    series.push(3.0, at=1200.0)
    assert [p.value for p in series.snapshot()] == [2.0, 3.0]


def test_sweep_drains_idle_buffer():
    clock = FakeClock()
    series = SeriesBuffer(capacity=10, window_ms=30_000, clock=clock)
    series.push(5.0)
    clock.now = 29_000.0
    assert series.sweep() == 0
    assert len(series) == 1
    clock.now = 30_001.0
    assert series.sweep() == 1
    assert len(series) == 0
    assert series.snapshot() == ()


def test_snapshot_is_a_copy():
    series = SeriesBuffer(capacity=2)
    series.push(1.0, at=0.0)
    view = series.snapshot()
    series.push(2.0, at=1.0)
    series.push(3.0, at=2.0)
    assert view == (HistoryPoint(0.0, 1.0),)


def test_rpm_range_uses_floor_and_ceiling():
    series = SeriesBuffer(policy=RPM_POLICY)
    for index, value in enumerate([0.0, 4.0, 10.0, 7.5]):
        series.push(value, at=float(index))
    assert series.range() == VisualRange(-5.0, 10.0)
    series.push(17.0, at=10.0)
    assert series.range() == VisualRange(-5.0, 22.0)


def test_range_expands_below_floor():
    series = SeriesBuffer(policy=RangePolicy(floor=0.0, ceiling=30.0, padding=5.0))
    series.push(-3.0, at=0.0)
    assert series.range() == VisualRange(-8.0, 30.0)


def test_empty_range_is_default_span():
    assert SeriesBuffer(policy=RPM_POLICY).range() == VisualRange(-5.0, 10.0)
    assert SeriesBuffer().range() == VisualRange(0.0, 1.0)


def test_identical_values_get_nonzero_span():
    series = SeriesBuffer()
    series.push(4.0, at=0.0)
    series.push(4.0, at=1.0)
    visual = series.range()
    assert visual.span > 0
    assert math.isclose(visual.min + visual.max, 8.0)


def test_explicit_range_is_returned_verbatim():
    series = SeriesBuffer(policy=RPM_POLICY)
    series.push(100.0, at=0.0)
    series.set_range(2.0, 3.0)
    assert series.range() == VisualRange(2.0, 3.0)
    assert not series.is_auto_range
    series.set_range(float("nan"), 3.0)
    assert series.is_auto_range
    assert series.range() == VisualRange(-5.0, 105.0)


def test_stats_track_retained_values():
    series = SeriesBuffer(capacity=3)
    assert series.stats() is None
    for index, value in enumerate([9.0, 1.0, 5.0, 3.0]):
        series.push(value, at=float(index))
    stats = series.stats()
    assert (stats.minimum, stats.maximum, stats.latest) == (1.0, 5.0, 3.0)
    assert series.latest() == HistoryPoint(3.0, 3.0)


def test_clear_advances_sequence():
    series = SeriesBuffer(capacity=4)
    series.push(1.0, at=0.0)
    series.push(2.0, at=1.0)
    series.clear()
    assert len(series) == 0
    assert series.first_index == series.end_index == 2
