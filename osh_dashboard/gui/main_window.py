"""Qt-based main window for monitoring and controlling the motor controller."""

from __future__ import annotations

import logging
from typing import Dict, Optional

from PySide6.QtCore import Qt, QTimer, Signal
from PySide6.QtWidgets import (
    QApplication,
    QGridLayout,
    QGroupBox,
    QHBoxLayout,
    QLabel,
    QLineEdit,
    QMainWindow,
    QMessageBox,
    QPlainTextEdit,
    QPushButton,
    QSlider,
    QSplitter,
    QVBoxLayout,
    QWidget,
)

from osh_dashboard.gui.model import METRIC_SPECS, METRICS, SPEED_PRESETS, ControlSurface, MetricReadout
from osh_dashboard.gui.widgets import LiveChart
from osh_dashboard.io import AddressStore, DashboardConfig, load_config
from osh_dashboard.link import ConfigurationError, DeviceLink
from osh_dashboard.link.qt_transport import QtScheduler, qt_transport_factory
from osh_dashboard.telemetry import ConsoleLog, RangePolicy, SeriesBuffer

log = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Layout constants
WINDOW_DEFAULT_SIZE = (1280, 820)
WINDOW_TITLE = "OSH Vacuum Controller"
ADDRESS_PLACEHOLDER = "192.168.1.100"
CONSOLE_MIN_WIDTH = 320

LED_ON_STYLE = "color: #34d399; font-weight: bold;"
LED_OFF_STYLE = "color: #f87171; font-weight: bold;"

METRIC_COLORS = {
    "rpm": "#818cf8",
    "temperature": "#f472b6",
    "voltage": "#34d399",
}


class ConnectionPane(QGroupBox):
    """Address entry, connect/disconnect toggle, status LED and console."""

    connect_requested = Signal(str)
    disconnect_requested = Signal()
    reconnect_requested = Signal()

    def __init__(self, address: str = "", max_lines: int = 1000) -> None:
        super().__init__("Connection")
        self._connected = False

        self.address_edit = QLineEdit(address)
        self.address_edit.setPlaceholderText(ADDRESS_PLACEHOLDER)
        self.address_edit.returnPressed.connect(self._on_toggle)
        self.connect_btn = QPushButton("Connect")
        self.connect_btn.clicked.connect(self._on_toggle)
        self.reconnect_btn = QPushButton("Reconnect")
        self.reconnect_btn.clicked.connect(self.reconnect_requested.emit)
        self.status_label = QLabel()
        self.console = QPlainTextEdit()
        self.console.setReadOnly(True)
        self.console.setPlaceholderText("No messages yet...")
        self.console.setMinimumWidth(CONSOLE_MIN_WIDTH)
        self.console.setMaximumBlockCount(max_lines)

        address_row = QHBoxLayout()
        address_row.addWidget(QLabel("Device IP Address"))
        address_row.addWidget(self.address_edit)

        buttons = QHBoxLayout()
        buttons.addWidget(self.connect_btn)
        buttons.addWidget(self.reconnect_btn)

        layout = QVBoxLayout()
        layout.addLayout(address_row)
        layout.addLayout(buttons)
        layout.addWidget(self.status_label)
        layout.addWidget(QLabel("Console"))
        layout.addWidget(self.console)
        self.setLayout(layout)
        self.set_connected(False)

    def _on_toggle(self) -> None:
        if self._connected:
            self.disconnect_requested.emit()
            return
        address = self.address_edit.text().strip()
        if address:
            self.connect_requested.emit(address)

    def set_connected(self, connected: bool) -> None:
        self._connected = connected
        self.connect_btn.setText("Disconnect" if connected else "Connect")
        self.reconnect_btn.setVisible(not connected)
        self.address_edit.setEnabled(not connected)
        self.status_label.setText("● Connected" if connected else "● Disconnected")
        self.status_label.setStyleSheet(LED_ON_STYLE if connected else LED_OFF_STYLE)

    def append_console(self, line: str) -> None:
        self.console.appendPlainText(line)
        bar = self.console.verticalScrollBar()
        bar.setValue(bar.maximum())


class SpeedPane(QGroupBox):
    """Speed slider, presets and start/stop buttons."""

    speed_changed = Signal(int)
    start_requested = Signal()
    stop_requested = Signal()

    def __init__(self) -> None:
        super().__init__("Motor Control")
        self.speed_label = QLabel("Motor Speed: 0%")
        self.slider = QSlider(Qt.Horizontal)
        self.slider.setRange(0, 100)
        self.slider.setSingleStep(1)
        # valueChanged, not sliderReleased: every step is sent immediately
        self.slider.valueChanged.connect(self.speed_changed.emit)

        presets = QHBoxLayout()
        self.preset_buttons = []
        for value in SPEED_PRESETS:
            btn = QPushButton(f"{value}%")
            btn.clicked.connect(lambda _, v=value: self.speed_changed.emit(v))
            presets.addWidget(btn)
            self.preset_buttons.append(btn)

        self.start_btn = QPushButton("Start")
        self.stop_btn = QPushButton("Stop")
        self.start_btn.clicked.connect(self.start_requested.emit)
        self.stop_btn.clicked.connect(self.stop_requested.emit)
        controls = QHBoxLayout()
        controls.addWidget(self.start_btn)
        controls.addWidget(self.stop_btn)
        controls.addStretch()

        layout = QVBoxLayout()
        layout.addWidget(self.speed_label)
        layout.addWidget(self.slider)
        layout.addLayout(presets)
        layout.addLayout(controls)
        self.setLayout(layout)

    def update_state(self, surface: ControlSurface) -> None:
        self.speed_label.setText(f"Motor Speed: {surface.speed}%")
        self.slider.blockSignals(True)
        self.slider.setValue(surface.speed)
        self.slider.blockSignals(False)
        enabled = surface.speed_controls_enabled
        self.slider.setEnabled(enabled)
        for btn in self.preset_buttons:
            btn.setEnabled(enabled)
        self.start_btn.setEnabled(surface.start_enabled)
        self.stop_btn.setEnabled(surface.stop_enabled)


class MetricCard(QGroupBox):
    """Current value, rolling min/max and the live chart of one metric."""

    def __init__(self, metric: str, chart: LiveChart) -> None:
        spec = METRIC_SPECS[metric]
        super().__init__(spec.title)
        self.chart = chart
        self.value_label = QLabel()
        self.value_label.setStyleSheet("font-size: 22px; font-weight: bold;")
        self.unit_label = QLabel(spec.unit)
        self.range_label = QLabel()

        header = QHBoxLayout()
        header.addWidget(self.value_label)
        header.addWidget(self.unit_label)
        header.addStretch()
        header.addWidget(self.range_label)

        layout = QVBoxLayout()
        layout.addLayout(header)
        layout.addWidget(chart)
        self.setLayout(layout)

    def update_readout(self, readout: MetricReadout) -> None:
        self.value_label.setText(readout.value_text)
        self.range_label.setText(readout.range_text)


def build_buffers(config: DashboardConfig) -> Dict[str, SeriesBuffer]:
    buffers: Dict[str, SeriesBuffer] = {}
    for metric in METRICS:
        limits = config.metrics.get(metric)
        policy = RangePolicy(limits.floor, limits.ceiling, limits.padding) if limits else RangePolicy()
        buffers[metric] = SeriesBuffer(
            capacity=config.series.max_points,
            window_ms=config.series.window_s * 1000.0,
            policy=policy,
        )
    return buffers


class MainWindow(QMainWindow):
    """Main UI window wiring the device link to the panes."""

    def __init__(self, config: Optional[DashboardConfig] = None, address: Optional[str] = None) -> None:
        super().__init__()
        self.setWindowTitle(WINDOW_TITLE)
        self.resize(*WINDOW_DEFAULT_SIZE)

        self.config = config or load_config()
        self.console = ConsoleLog(max_lines=self.config.console.max_lines)
        self.address_store = AddressStore(self.config.session_file)
        self.link = DeviceLink(
            transport_factory=qt_transport_factory(self),
            scheduler=QtScheduler(self),
            console=self.console,
            address_store=self.address_store,
            port=self.config.link.port,
            reconnect_delay_s=self.config.link.reconnect_delay_s,
            heartbeat_interval_s=self.config.link.heartbeat_interval_s,
            on_connection_changed=self._on_connection_changed,
            on_snapshot=self._on_snapshot,
        )
        self.buffers = build_buffers(self.config)
        self.surface = ControlSurface(self.link, self.buffers)

        self.connection_pane = ConnectionPane(
            address or self.address_store.load(),
            max_lines=self.config.console.max_lines,
        )
        self.speed_pane = SpeedPane()
        self.cards: Dict[str, MetricCard] = {}
        charts_widget = QWidget()
        charts_layout = QGridLayout()
        for row, metric in enumerate(METRICS):
            chart = LiveChart(
                self.buffers[metric],
                color=METRIC_COLORS[metric],
                x_window_s=self.config.chart.x_window_s,
                frame_interval_ms=self.config.chart.frame_interval_ms,
            )
            card = MetricCard(metric, chart)
            self.cards[metric] = card
            charts_layout.addWidget(card, row, 0)
        charts_widget.setLayout(charts_layout)

        right_widget = QWidget()
        right_layout = QVBoxLayout()
        right_layout.addWidget(self.speed_pane)
        right_layout.addWidget(charts_widget, stretch=1)
        right_widget.setLayout(right_layout)

        splitter = QSplitter()
        splitter.addWidget(self.connection_pane)
        splitter.addWidget(right_widget)
        splitter.setStretchFactor(0, 0)
        splitter.setStretchFactor(1, 1)
        self.setCentralWidget(splitter)

        self.console.subscribe(self.connection_pane.append_console)
        self.connection_pane.connect_requested.connect(self.connect_to)
        self.connection_pane.disconnect_requested.connect(self.link.disconnect)
        self.connection_pane.reconnect_requested.connect(self.link.reconnect)
        self.speed_pane.speed_changed.connect(self._on_speed_changed)
        self.speed_pane.start_requested.connect(lambda: self._run_command(self.surface.start))
        self.speed_pane.stop_requested.connect(lambda: self._run_command(self.surface.stop))

        self._sweep_timer = QTimer(self)
        self._sweep_timer.timeout.connect(self._on_sweep)
        self._sweep_timer.start(int(self.config.series.sweep_interval_s * 1000))

        self._refresh()

    # ------------------------------------------------------------------
    def connect_to(self, address: str) -> None:
        try:
            self.link.connect(address)
        except ConfigurationError as exc:
            self.console.warning(str(exc))
            QMessageBox.warning(self, "Invalid Address", str(exc))

    def _on_speed_changed(self, value: int) -> None:
        self.surface.set_speed(value)
        self.speed_pane.update_state(self.surface)

    def _run_command(self, command) -> None:
        command()
        self.speed_pane.update_state(self.surface)

    def _on_connection_changed(self, connected: bool) -> None:
        self.surface.on_connection_changed(connected)
        self.connection_pane.set_connected(connected)
        self._refresh()

    def _on_snapshot(self, snapshot) -> None:
        self.surface.on_snapshot(snapshot)
        for card in self.cards.values():
            card.chart.request_redraw()
        self._refresh()

    def _on_sweep(self) -> None:
        if self.surface.sweep():
            for card in self.cards.values():
                card.chart.request_redraw()
            self._refresh_readouts()

    def _refresh(self) -> None:
        self.speed_pane.update_state(self.surface)
        self._refresh_readouts()

    def _refresh_readouts(self) -> None:
        for metric, card in self.cards.items():
            card.update_readout(self.surface.readout(metric))

    def closeEvent(self, event) -> None:  # noqa: N802 - Qt override
        self.link.close()
        super().closeEvent(event)


def run_gui(config: Optional[DashboardConfig] = None, address: Optional[str] = None, auto_connect: bool = True) -> int:
    """Launch the dashboard and block in the Qt event loop."""
    app = QApplication.instance() or QApplication([])
    window = MainWindow(config=config, address=address)
    window.show()

    link_cfg = window.config.link
    if address:
        window.connect_to(address)
    elif auto_connect and link_cfg.auto_connect:
        window.link.auto_connect(link_cfg.auto_connect_delay_s)
    return app.exec()
