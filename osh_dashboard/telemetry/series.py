"""Bounded, time-windowed per-metric history for the live charts."""

from __future__ import annotations

import math
import time
from dataclasses import dataclass
from typing import Callable, Optional, Tuple

import numpy as np

DEFAULT_CAPACITY = 600
DEFAULT_WINDOW_MS = 30_000.0
DEFAULT_SPAN = (0.0, 1.0)


def monotonic_ms() -> float:
    return time.monotonic() * 1000.0


@dataclass(frozen=True)
class HistoryPoint:
    """Single sample of one metric."""

    timestamp: float
    value: float


@dataclass(frozen=True)
class VisualRange:
    min: float
    max: float

    @property
    def span(self) -> float:
        return self.max - self.min


@dataclass(frozen=True)
class SeriesStats:
    minimum: float
    maximum: float
    latest: float


@dataclass(frozen=True)
class RangePolicy:
    """Autoscale rule for one metric.

    With a ``floor``/``ceiling`` baseline the range always covers
    ``[floor, ceiling]`` and grows by ``padding`` only where data exceeds it.
    Without a baseline the range hugs the data with 10% padding.
    """

    floor: Optional[float] = None
    ceiling: Optional[float] = None
    padding: float = 5.0

    @property
    def has_baseline(self) -> bool:
        return self.floor is not None and self.ceiling is not None

    def empty_range(self) -> VisualRange:
        if self.has_baseline:
            return VisualRange(self.floor, self.ceiling)
        return VisualRange(*DEFAULT_SPAN)

    def compute(self, low: float, high: float) -> VisualRange:
        if self.has_baseline:
            top = high + self.padding if high > self.ceiling else self.ceiling
            bottom = low - self.padding if low < self.floor else self.floor
            return VisualRange(bottom, top)
        if low == high:
            low -= 0.5
            high += 0.5
        pad = (high - low) * 0.1
        return VisualRange(low - pad, high + pad)


class SeriesBuffer:
    """Fixed-capacity ring of ``(timestamp_ms, value)`` samples.

    Two bounds apply at once: at most ``capacity`` points, none older than
    ``window_ms``. Both are enforced on :meth:`push`; :meth:`sweep` applies
    the age bound against the clock so an idle buffer still drains.
    """

    def __init__(
        self,
        capacity: int = DEFAULT_CAPACITY,
        window_ms: float = DEFAULT_WINDOW_MS,
        policy: Optional[RangePolicy] = None,
        clock: Callable[[], float] = monotonic_ms,
    ) -> None:
        if capacity < 1:
            raise ValueError("capacity must be at least 1")
        if window_ms <= 0:
            raise ValueError("window_ms must be positive")
        self.capacity = capacity
        self.window_ms = float(window_ms)
        self.policy = policy or RangePolicy()
        self._clock = clock
        self._timestamps = np.zeros(capacity, dtype=np.float64)
        self._values = np.zeros(capacity, dtype=np.float64)
        self._head = 0
        self._count = 0
        # absolute sequence number of the oldest retained point
        self._first_index = 0
        self._explicit: Optional[VisualRange] = None

    def __len__(self) -> int:
        return self._count

    @property
    def first_index(self) -> int:
        return self._first_index

    @property
    def end_index(self) -> int:
        return self._first_index + self._count

    # ------------------------------------------------------------------
    def push(self, value: float, at: Optional[float] = None) -> bool:
        """Append a sample; non-finite values are ignored."""
        try:
            value = float(value)
        except (TypeError, ValueError):
            return False
        if not math.isfinite(value):
            return False
        timestamp = self._clock() if at is None else float(at)

        if self._count == self.capacity:
            self._drop_oldest()
        slot = (self._head + self._count) % self.capacity
        self._timestamps[slot] = timestamp
        self._values[slot] = value
        self._count += 1
        self._evict_older_than(timestamp)
        return True

    def sweep(self, now: Optional[float] = None) -> int:
        """Evict points that aged out of the window. Returns the number dropped."""
        return self._evict_older_than(self._clock() if now is None else now)

    def clear(self) -> None:
        self._first_index += self._count
        self._head = 0
        self._count = 0

    def _drop_oldest(self) -> None:
        self._head = (self._head + 1) % self.capacity
        self._count -= 1
        self._first_index += 1

    def _evict_older_than(self, now: float) -> int:
        dropped = 0
        while self._count and now - self._timestamps[self._head] > self.window_ms:
            self._drop_oldest()
            dropped += 1
        return dropped

    # ------------------------------------------------------------------
    def _ordered(self, column: np.ndarray) -> np.ndarray:
        end = self._head + self._count
        if end <= self.capacity:
            return column[self._head:end].copy()
        return np.concatenate((column[self._head:], column[: end - self.capacity]))

    def as_arrays(self) -> Tuple[np.ndarray, np.ndarray]:
        """Chronological copies of the retained timestamps and values."""
        return self._ordered(self._timestamps), self._ordered(self._values)

    def snapshot(self) -> Tuple[HistoryPoint, ...]:
        timestamps, values = self.as_arrays()
        return tuple(HistoryPoint(float(t), float(v)) for t, v in zip(timestamps, values))

    def latest(self) -> Optional[HistoryPoint]:
        if not self._count:
            return None
        slot = (self._head + self._count - 1) % self.capacity
        return HistoryPoint(float(self._timestamps[slot]), float(self._values[slot]))

    def stats(self) -> Optional[SeriesStats]:
        if not self._count:
            return None
        _, values = self.as_arrays()
        return SeriesStats(float(values.min()), float(values.max()), float(values[-1]))

    # ------------------------------------------------------------------
    def set_range(self, minimum: float, maximum: float) -> None:
        """Pin the visual range; a non-finite bound returns to autoscaling."""
        if math.isfinite(minimum) and math.isfinite(maximum):
            self._explicit = VisualRange(float(minimum), float(maximum))
        else:
            self._explicit = None

    def clear_range(self) -> None:
        self._explicit = None

    @property
    def is_auto_range(self) -> bool:
        return self._explicit is None

    def range(self) -> VisualRange:
        if self._explicit is not None:
            return self._explicit
        if not self._count:
            return self.policy.empty_range()
        _, values = self.as_arrays()
        return self.policy.compute(float(values.min()), float(values.max()))
