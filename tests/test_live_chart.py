import pytest

from osh_dashboard.gui.chart_feed import ChartFeed, RedrawGate
from osh_dashboard.telemetry.series import SeriesBuffer


def filled(capacity, window_ms, samples):
    buffer = SeriesBuffer(capacity=capacity, window_ms=window_ms)
    for at, value in samples:
        buffer.push(value, at=at)
    return buffer


def test_feed_ingests_incrementally():
    buffer = filled(10, 60_000, [(0, 1.0), (100, 2.0)])
    feed = ChartFeed()
    assert feed.ingest(buffer) == 2
    buffer.push(3.0, at=200)
    assert feed.ingest(buffer) == 1
    assert feed.ingest(buffer) == 0
    assert len(feed) == 3
    assert feed.cursor == buffer.end_index
    assert feed.resets == 0


def test_feed_drops_evicted_points_after_age_sweep():
    buffer = filled(10, 1000, [(0, 1.0), (100, 2.0), (200, 3.0), (250, 4.0), (300, 5.0)])
    feed = ChartFeed()
    feed.ingest(buffer)
    assert len(feed) == 5

    assert buffer.sweep(now=1250) == 3
    assert feed.ingest(buffer) == 0
    assert feed.resets == 0
    _, values = feed.line_data()
    assert values == [4.0, 5.0]
    assert values == [point.value for point in buffer.snapshot()]


def test_feed_adds_only_new_point_at_capacity():
    buffer = filled(5, 60_000, [(at, float(at)) for at in range(5)])
    feed = ChartFeed()
    assert feed.ingest(buffer) == 5
    buffer.push(5.0, at=5)
    assert feed.ingest(buffer) == 1
    assert feed.resets == 0
    assert feed.line_data()[1] == [1.0, 2.0, 3.0, 4.0, 5.0]


def test_feed_resets_when_it_fell_behind_the_buffer():
    buffer = filled(3, 60_000, [(0, 1.0)])
    feed = ChartFeed()
    feed.ingest(buffer)
    for at, value in ((1, 2.0), (2, 3.0), (3, 4.0), (4, 5.0)):
        buffer.push(value, at=at)
    assert feed.ingest(buffer) == 3
    assert feed.resets == 1
    assert feed.line_data()[1] == [3.0, 4.0, 5.0]


def test_feed_follows_buffer_once_it_wraps():
    buffer = filled(3, 60_000, [(0, 1.0), (1, 2.0), (2, 3.0)])
    feed = ChartFeed()
    feed.ingest(buffer)
    buffer.push(4.0, at=3)
    feed.ingest(buffer)
    assert feed.line_data()[1] == [2.0, 3.0, 4.0]
    for at, value in ((4, 5.0), (5, 6.0)):
        buffer.push(value, at=at)
    feed.ingest(buffer)
    assert feed.line_data()[1] == [4.0, 5.0, 6.0]


def test_feed_empties_when_buffer_cleared():
    buffer = filled(10, 60_000, [(0, 1.0), (1, 2.0)])
    feed = ChartFeed()
    feed.ingest(buffer)
    buffer.clear()
    assert feed.ingest(buffer) == 0
    assert len(feed) == 0
    assert feed.line_data() == ([], [])


def test_line_data_is_relative_to_newest_point():
    buffer = filled(10, 60_000, [(1000, 1.0), (1500, 2.0), (3000, 3.0)])
    feed = ChartFeed()
    feed.ingest(buffer)
    xs, ys = feed.line_data()
    assert xs == pytest.approx([-2.0, -1.5, 0.0])
    assert ys == [1.0, 2.0, 3.0]


def test_gate_coalesces_requests_into_one_frame():
    gate = RedrawGate()
    assert gate.take() is False
    for _ in range(25):
        gate.request()
    assert gate.pending
    assert gate.take() is True
    assert gate.take() is False
    assert gate.requests == 25
    assert gate.frames_drawn == 1
