"""PySide6 viewer: rotating helix canvas with add/remove bridge controls."""

from __future__ import annotations

import logging
from typing import Optional, Sequence

import numpy as np
from matplotlib.backends.backend_qtagg import FigureCanvasQTAgg
from matplotlib.figure import Figure
from mpl_toolkits.mplot3d import proj3d
from PySide6.QtCore import QObject, QTimer, Signal
from PySide6.QtWidgets import QCheckBox, QHBoxLayout, QLabel, QPushButton, QVBoxLayout, QWidget

from .controller import InteractiveMutationController
from .highlight import ProximityHighlighter
from .layout import Bridge, HelixGeometry
from .render import BACKGROUND, render_helix, rotate_y
from .store import StorageError

LOGGER = logging.getLogger(__name__)

ROTATION_PER_TICK = 0.002
TICK_MS = 16
HOVER_PIXELS = 12.0
IDLE_INFO = "Hover over a bridge to see log info"


def describe_bridge(bridge: Bridge | None) -> str:
    if bridge is None or bridge.entry is None:
        return IDLE_INFO
    entry = bridge.entry
    return f"Time: {entry.time} | Type: {entry.type} | Message: {entry.message}"


class HelixSession(QObject):
    geometryChanged = Signal(object)
    statusChanged = Signal(str)
    errorOccurred = Signal(str)

    def __init__(self, controller: InteractiveMutationController, parent: Optional[QObject] = None) -> None:
        super().__init__(parent)
        self._controller = controller

    @property
    def controller(self) -> InteractiveMutationController:
        return self._controller

    def geometry(self) -> HelixGeometry:
        return self._controller.geometry()

    def reload(self) -> None:
        try:
            self._controller.rebuild()
        except StorageError as exc:
            self.error(f"Could not read log: {exc}")
            return
        self.geometryChanged.emit(self.geometry())

    def add_bridge(self) -> Optional[Bridge]:
        try:
            bridge = self._controller.add_bridge()
        except StorageError as exc:
            self.error(f"Could not add bridge: {exc}")
            return None
        if bridge is None:
            self.statusChanged.emit("No backbone to attach a bridge to")
            return None
        self.statusChanged.emit(f"Added custom bridge at sample {bridge.sample_index}")
        self.geometryChanged.emit(self.geometry())
        return bridge

    def remove_bridge(self) -> Optional[Bridge]:
        try:
            bridge = self._controller.remove_bridge()
        except StorageError as exc:
            self.error(f"Could not remove bridge: {exc}")
            return None
        if bridge is None:
            self.statusChanged.emit("Nothing to remove")
            return None
        self.statusChanged.emit("Removed last bridge and log entry")
        self.geometryChanged.emit(self.geometry())
        return bridge

    def error(self, message: str) -> None:
        LOGGER.warning("%s", message)
        self.errorOccurred.emit(str(message))


class HelixViewer(QWidget):
    def __init__(
        self,
        session: HelixSession,
        parent: QWidget | None = None,
        *,
        highlighter: ProximityHighlighter | None = None,
    ) -> None:
        super().__init__(parent)
        self._session = session
        self._highlighter = highlighter or ProximityHighlighter()
        self._geometry = session.geometry()
        self._rotation = 0.0
        self._query_point: Optional[np.ndarray] = None
        self._hovered: Optional[Bridge] = None

        layout = QVBoxLayout(self)
        layout.setContentsMargins(6, 6, 6, 6)
        layout.setSpacing(4)

        self._figure = Figure(figsize=(5, 7), facecolor=BACKGROUND)
        self._canvas = FigureCanvasQTAgg(self._figure)
        self._ax = self._figure.add_subplot(1, 1, 1, projection="3d")
        self._canvas.mpl_connect("motion_notify_event", self._on_motion)
        layout.addWidget(self._canvas, stretch=1)

        self._info = QLabel(IDLE_INFO, self)
        self._info.setStyleSheet("color: #9aa4c2; font-size: 12px;")
        layout.addWidget(self._info)

        btn_row = QHBoxLayout()
        self._add_btn = QPushButton("Add bridge", self)
        self._add_btn.clicked.connect(self._session.add_bridge)
        btn_row.addWidget(self._add_btn)

        self._remove_btn = QPushButton("Remove bridge", self)
        self._remove_btn.clicked.connect(self._session.remove_bridge)
        btn_row.addWidget(self._remove_btn)

        self._animate_toggle = QCheckBox("Animate", self)
        self._animate_toggle.setChecked(True)
        btn_row.addWidget(self._animate_toggle)
        btn_row.addStretch(1)
        layout.addLayout(btn_row)

        self._status = QLabel("", self)
        self._status.setStyleSheet("color: #7a8099; font-size: 11px;")
        layout.addWidget(self._status)

        self._session.geometryChanged.connect(self._set_geometry)
        self._session.statusChanged.connect(self._status.setText)
        self._session.errorOccurred.connect(self._show_error)

        self._timer = QTimer(self)
        self._timer.setInterval(TICK_MS)
        self._timer.timeout.connect(self.tick)
        self._timer.start()
        self._redraw()

    @property
    def geometry_view(self) -> HelixGeometry:
        return self._geometry

    def set_query_point(self, point: Sequence[float] | None) -> None:
        self._query_point = None if point is None else np.asarray(point, dtype=float)

    def opacities(self) -> np.ndarray:
        segments = rotate_y(self._geometry.as_arrays()["bridge_segments"], self._rotation)
        return self._highlighter.update(self._query_point, segments)

    def tick(self) -> None:
        if self._animate_toggle.isChecked():
            self._rotation += ROTATION_PER_TICK
        self._redraw()

    def _set_geometry(self, geometry: HelixGeometry) -> None:
        self._geometry = geometry
        if self._hovered is not None and self._hovered not in geometry.bridges:
            self._hovered = None
        self._redraw()

    def _show_error(self, message: str) -> None:
        self._status.setText(message)
        self._status.setStyleSheet("color: #f7768e; font-size: 11px;")

    def _redraw(self) -> None:
        self._ax.cla()
        render_helix(self._geometry, ax=self._ax, opacities=self.opacities(), rotation=self._rotation)
        self._info.setText(describe_bridge(self.info_bridge()))
        self._canvas.draw_idle()

    def info_bridge(self) -> Optional[Bridge]:
        """Bridge shown in the info label: the hovered one, else the most recent."""

        if self._hovered is not None:
            return self._hovered
        return self._geometry.bridges[-1] if self._geometry.bridges else None

    def info_text(self) -> str:
        return self._info.text()

    def _on_motion(self, event) -> None:
        if event.inaxes is not self._ax or event.x is None or event.y is None:
            self._hovered = None
            self._query_point = None
            return
        self._hovered, self._query_point = self._pick(event.x, event.y)

    def _pick(self, px: float, py: float) -> tuple[Optional[Bridge], Optional[np.ndarray]]:
        # Nearest bridge midpoint in screen space stands in for a ray hit.
        bridges = self._geometry.bridges
        if not bridges:
            return None, None
        segments = rotate_y(self._geometry.as_arrays()["bridge_segments"], self._rotation)
        mids = segments.mean(axis=1)
        x2, y2, _ = proj3d.proj_transform(mids[:, 0], mids[:, 2], mids[:, 1], self._ax.get_proj())
        screen = self._ax.transData.transform(np.column_stack([x2, y2]))
        distances = np.hypot(screen[:, 0] - px, screen[:, 1] - py)
        best = int(np.argmin(distances))
        if distances[best] > HOVER_PIXELS:
            return None, None
        return bridges[best], mids[best]


def launch_viewer(controller: InteractiveMutationController) -> int:
    from PySide6.QtWidgets import QApplication

    app = QApplication.instance() or QApplication([])
    session = HelixSession(controller)
    session.reload()
    viewer = HelixViewer(session)
    viewer.setWindowTitle("Log helix")
    viewer.resize(640, 880)
    viewer.show()
    return app.exec()


__all__ = ["HelixSession", "HelixViewer", "describe_bridge", "launch_viewer"]
