"""Main window: rolling temperature chart with start/stop and resolution controls."""

from __future__ import annotations

import logging
from collections import deque
from datetime import datetime

import numpy as np
import pyqtgraph as pg
from PySide6.QtCore import QTimer, Qt, Slot
from PySide6.QtWidgets import (
    QComboBox,
    QHBoxLayout,
    QLabel,
    QMainWindow,
    QPushButton,
    QVBoxLayout,
    QWidget,
)

from ..config import ThermoTraceConfig
from ..core.models import Reading
from ..dataio.csv_writer import format_value
from ..sensors.temperature_probe import is_safe
from .live_surface import QtLiveSurface

logger = logging.getLogger(__name__)

TITLE = "Probe Temperature Monitor"
START = "Start"
STOP = "Stop"
_INTERVALS = {"Second": "second", "Minute": "minute"}


class MonitorWindow(QMainWindow):
    """
    Chart of the probe temperature sampled once per second (or minute).

    The chart is paused at launch. While paused the live surface rejects
    readings, so they only reach the session log.
    """

    def __init__(self, surface: QtLiveSurface, config: ThermoTraceConfig, parent: QWidget | None = None) -> None:
        super().__init__(parent)
        self._surface = surface
        self._config = config.sanitized()
        self._times: deque[float] = deque(maxlen=self._config.plot_points)
        self._values: deque[float] = deque(maxlen=self._config.plot_points)

        self.setWindowTitle(TITLE)
        self.setMinimumSize(960, 600)

        central = QWidget(self)
        layout = QVBoxLayout(central)

        self.plot_widget = pg.PlotWidget(axisItems={"bottom": pg.DateAxisItem()})
        self.plot_widget.setTitle(TITLE)
        self.plot_widget.setLabel("left", "Temperature °C")
        self.plot_widget.setLabel("bottom", "hh:mm:ss")
        self.plot_widget.setYRange(self._config.plot_min, self._config.plot_max)
        self.plot_widget.showGrid(x=True, y=True)
        self._curve = self.plot_widget.plot([], [], pen=pg.mkPen(width=2), name="probe data")
        if self._config.threshold is not None:
            self.plot_widget.addItem(
                pg.InfiniteLine(pos=self._config.threshold, angle=0, pen=pg.mkPen("r", style=Qt.PenStyle.DashLine))
            )
        layout.addWidget(self.plot_widget)

        controls = QHBoxLayout()
        self.run_button = QPushButton(START)
        self.run_button.clicked.connect(self._on_run_clicked)
        controls.addWidget(self.run_button)

        self.interval_combo = QComboBox()
        self.interval_combo.addItems(list(_INTERVALS))
        if self._config.sample_interval == "minute":
            self.interval_combo.setCurrentText("Minute")
        self.interval_combo.currentTextChanged.connect(self._on_interval_changed)
        controls.addWidget(self.interval_combo)

        self.status_label = QLabel("Waiting for probe…")
        controls.addWidget(self.status_label, 1)
        layout.addLayout(controls)
        self.setCentralWidget(central)

        self._timer = QTimer(self)
        self._timer.setInterval(self._config.sample_interval_ms())
        self._timer.timeout.connect(self._sample_latest)

        surface.reading_ready.connect(self._on_reading)
        surface.ingest_failed.connect(self._on_ingest_failed)

    # --------------------------------------------------------------- controls
    @Slot()
    def _on_run_clicked(self) -> None:
        if self._timer.isActive():
            self._surface.set_accepting(False)
            self._timer.stop()
            self.run_button.setText(START)
        else:
            self._surface.set_accepting(True)
            self._timer.start()
            self.run_button.setText(STOP)

    @Slot(str)
    def _on_interval_changed(self, text: str) -> None:
        interval = _INTERVALS.get(text, "second")
        self._timer.setInterval(60_000 if interval == "minute" else 1000)

    # --------------------------------------------------------------- updates
    @Slot(object)
    def _on_reading(self, reading: Reading) -> None:
        mark = ""
        if self._config.threshold is not None:
            mark = "✓ " if is_safe(reading, self._config.threshold) else "⚠ "
        self.status_label.setText(
            f"{mark}{format_value(reading.value)} °C at {reading.timestamp:%H:%M:%S}"
        )

    @Slot()
    def _sample_latest(self) -> None:
        reading = self._surface.latest()
        if reading is None:
            return
        self._times.append(datetime.now().timestamp())
        self._values.append(reading.value)
        self._curve.setData(np.fromiter(self._times, dtype=np.float64), np.fromiter(self._values, dtype=np.float32))

    @Slot(str)
    def _on_ingest_failed(self, message: str) -> None:
        logger.error("Probe ingestion failed: %s", message)
        self.status_label.setText(f"Ingestion stopped: {message}")
        self._surface.set_accepting(False)
        self._timer.stop()
        self.run_button.setText(START)
        self.run_button.setEnabled(False)
