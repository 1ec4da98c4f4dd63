"""Graphical user interface components for the motor dashboard."""

from __future__ import annotations

from .chart_feed import ChartFeed, RedrawGate
from .model import (
    METRIC_SPECS,
    METRICS,
    SPEED_PRESETS,
    ControlSurface,
    MetricReadout,
    MetricSpec,
    round_to_step,
)

__all__ = [
    "METRIC_SPECS",
    "METRICS",
    "SPEED_PRESETS",
    "ChartFeed",
    "ControlSurface",
    "MetricReadout",
    "MetricSpec",
    "RedrawGate",
    "round_to_step",
]
