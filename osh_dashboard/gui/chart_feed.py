"""Incremental chart ingestion and per-frame redraw coalescing."""

from __future__ import annotations

from typing import List, Tuple

from osh_dashboard.telemetry.series import SeriesBuffer


class ChartFeed:
    """Mirrors the points of a :class:`SeriesBuffer` that a chart has drawn.

    ``cursor`` is the sequence number of the next point to ingest. Points the
    buffer has evicted are dropped from the front of the feed; the feed only
    resets and re-ingests from the oldest point when the cursor falls outside
    the buffer's retained sequence range.
    """

    def __init__(self) -> None:
        self._timestamps: List[float] = []
        self._values: List[float] = []
        self._base = 0
        self._cursor = 0
        self.resets = 0

    def __len__(self) -> int:
        return len(self._values)

    @property
    def cursor(self) -> int:
        return self._cursor

    def reset(self, start: int = 0) -> None:
        self._timestamps.clear()
        self._values.clear()
        self._base = start
        self._cursor = start
        self.resets += 1

    def _trim(self, start: int) -> None:
        evicted = start - self._base
        if evicted > 0:
            del self._timestamps[:evicted]
            del self._values[:evicted]
            self._base = start

    def ingest(self, buffer: SeriesBuffer) -> int:
        """Take in points not yet seen. Returns how many were added."""
        start, end = buffer.first_index, buffer.end_index
        if not start <= self._cursor <= end or self._base > start:
            self.reset(start)
        else:
            self._trim(start)
        if self._cursor == end:
            return 0
        timestamps, values = buffer.as_arrays()
        offset = self._cursor - start
        # one entry per sequence number so the front can be trimmed by index
        self._timestamps.extend(float(t) for t in timestamps[offset:])
        self._values.extend(float(v) for v in values[offset:])
        self._cursor = end
        return end - start - offset

    def anchor(self) -> float:
        return self._timestamps[-1] if self._timestamps else 0.0

    def line_data(self) -> Tuple[List[float], List[float]]:
        """X in seconds relative to the newest point (<= 0), Y unchanged."""
        anchor = self.anchor()
        xs = [(t - anchor) / 1000.0 for t in self._timestamps]
        return xs, list(self._values)


class RedrawGate:
    """At most one redraw per display frame, however many requests arrive."""

    def __init__(self) -> None:
        self._pending = False
        self.requests = 0
        self.frames_drawn = 0

    @property
    def pending(self) -> bool:
        return self._pending

    def request(self) -> None:
        self.requests += 1
        self._pending = True

    def take(self) -> bool:
        """Called once per frame tick; True when a redraw is due."""
        if not self._pending:
            return False
        self._pending = False
        self.frames_drawn += 1
        return True
