"""Scrolling single-metric chart embedded in Qt."""

from __future__ import annotations

from typing import Optional

from PySide6.QtCore import QTimer
from PySide6.QtWidgets import QSizePolicy, QVBoxLayout, QWidget
from matplotlib.backends.backend_qtagg import FigureCanvasQTAgg as FigureCanvas
from matplotlib.figure import Figure

from osh_dashboard.gui.chart_feed import ChartFeed, RedrawGate
from osh_dashboard.telemetry.series import SeriesBuffer

FRAME_INTERVAL_MS = 16
X_WINDOW_S = 30.0


class LiveChart(QWidget):
    """Draws one SeriesBuffer as a line over a trailing time window.

    Pushes and range changes only request a redraw; the frame timer performs
    at most one draw per tick.
    """

    def __init__(
        self,
        buffer: SeriesBuffer,
        color: str = "tab:blue",
        x_window_s: float = X_WINDOW_S,
        frame_interval_ms: int = FRAME_INTERVAL_MS,
        parent: Optional[QWidget] = None,
    ) -> None:
        super().__init__(parent)
        self.buffer = buffer
        self.x_window_s = x_window_s
        self.feed = ChartFeed()
        self.gate = RedrawGate()

        self._figure = Figure(figsize=(5, 1.6))
        self._canvas = FigureCanvas(self._figure)
        self._canvas.setSizePolicy(QSizePolicy.Expanding, QSizePolicy.Expanding)

        layout = QVBoxLayout()
        layout.setContentsMargins(0, 0, 0, 0)
        layout.addWidget(self._canvas)
        self.setLayout(layout)

        self._ax = self._figure.add_subplot(111)
        self._ax.grid(True, linestyle="--", linewidth=0.3)
        self._ax.set_xlim(-self.x_window_s, 0.0)
        self._line = self._ax.plot([], [], color=color, linewidth=2)[0]
        self._figure.tight_layout()

        self._frame_timer = QTimer(self)
        self._frame_timer.timeout.connect(self._on_frame)
        self._frame_timer.start(frame_interval_ms)
        self.request_redraw()

    def request_redraw(self) -> None:
        self.gate.request()

    def set_range(self, minimum: float, maximum: float) -> None:
        self.buffer.set_range(minimum, maximum)
        self.request_redraw()

    def resizeEvent(self, event) -> None:  # noqa: N802 - Qt override
        super().resizeEvent(event)
        self.request_redraw()

    def _on_frame(self) -> None:
        if self.gate.take():
            self.redraw()

    def redraw(self) -> None:
        self.feed.ingest(self.buffer)
        xs, ys = self.feed.line_data()
        self._line.set_data(xs, ys)
        self._ax.set_xlim(-self.x_window_s, 0.0)
        visual = self.buffer.range()
        self._ax.set_ylim(visual.min, visual.max)
        self._canvas.draw_idle()
