# window.py
"""
PySide6 rendering of the control surface: one card per audio source.
"""
from __future__ import annotations

import logging
from typing import Callable, Dict, Optional

from PySide6.QtCore import Qt, QEvent, QTimer
from PySide6.QtGui import QKeySequence
from PySide6.QtWidgets import (
    QApplication,
    QFrame,
    QHBoxLayout,
    QLabel,
    QMainWindow,
    QPushButton,
    QScrollArea,
    QSlider,
    QVBoxLayout,
    QWidget,
)

from .control_surface import ControlSurface

logger = logging.getLogger(__name__)

STYLE = """
QMainWindow { background: #1e1e24; }
QLabel { color: #e6e6e6; }
QLabel#Title { font-size: 18px; font-weight: 700; }
QFrame#SourceCard { background: #2a2a30; border: 1px solid #3a3a42; border-radius: 10px; }
QFrame#SourceCard[pulse="true"] { border: 1px solid #7fd6a6; background: #26342c; }
QLabel#Volume { font-size: 16px; font-weight: 600; }
QLabel#Hint { color: #9a9aa6; }
QPushButton { background: #3a3a42; color: #e6e6e6; border-radius: 6px; padding: 6px 12px; }
QPushButton[muted="true"] { background: #7a3131; }
QLabel#Status { border-radius: 8px; padding: 6px 10px; }
QLabel#Status[kind="success"] { background: #233a2c; color: #cfeedd; }
QLabel#Status[kind="error"] { background: #3a2424; color: #f3c8c8; }
QLabel#Status[kind="info"] { background: #2a2a30; color: #d6d6d6; }
"""


class QtTimerHandle:
    """Single-shot QTimer owned by the application until it fires or is cancelled"""

    def __init__(self, delay: float, callback: Callable[[], None]) -> None:
        self._callback = callback
        self._active = True
        self._timer = QTimer(QApplication.instance())
        self._timer.setSingleShot(True)
        self._timer.timeout.connect(self._fire)
        self._timer.start(int(delay * 1000))

    def _fire(self) -> None:
        self._active = False
        self._timer.deleteLater()
        self._callback()

    def cancel(self) -> None:
        if self._active:
            self._active = False
            self._timer.stop()
            self._timer.deleteLater()


def qt_scheduler(delay: float, callback: Callable[[], None]) -> QtTimerHandle:
    """Scheduler running callbacks on the GUI thread"""
    return QtTimerHandle(delay, callback)


def _repolish(widget: QWidget) -> None:
    widget.style().unpolish(widget)
    widget.style().polish(widget)


class SourceCard(QFrame):
    def __init__(self, source_id: str, source: dict, surface: ControlSurface) -> None:
        super().__init__()
        self.setObjectName("SourceCard")
        self.source_id = source_id
        self.surface = surface

        self.name = QLabel(source.get("name", source_id))
        self.volume = QLabel()
        self.volume.setObjectName("Volume")

        self.slider = QSlider(Qt.Horizontal)
        self.slider.setRange(0, 100)
        self.slider.setSingleStep(1)
        self.slider.setPageStep(5)

        self.mute_btn = QPushButton("Mute")
        self.mute_btn.setCursor(Qt.PointingHandCursor)
        self.mute_btn.setProperty("muted", False)

        inc, dec = source.get("keyIncrease"), source.get("keyDecrease")
        hint = QLabel(f"{dec} / {inc}" if inc and dec else "Not assigned")
        hint.setObjectName("Hint")

        top = QHBoxLayout()
        top.addWidget(self.name, 1)
        top.addWidget(self.volume, 0, Qt.AlignRight)

        bottom = QHBoxLayout()
        bottom.addWidget(hint, 1)
        bottom.addWidget(self.mute_btn, 0, Qt.AlignRight)

        col = QVBoxLayout()
        col.setContentsMargins(12, 10, 12, 10)
        col.setSpacing(8)
        col.addLayout(top)
        col.addWidget(self.slider)
        col.addLayout(bottom)
        self.setLayout(col)

        self.set_volume(source.get("volume", 0))

        self.slider.valueChanged.connect(self._on_value_changed)
        self.slider.sliderReleased.connect(
            lambda: self.surface.slider_released(self.source_id, self.slider.value()))
        self.mute_btn.clicked.connect(lambda: self.surface.mute_clicked(self.source_id))

    def _on_value_changed(self, value: int) -> None:
        if self.slider.isSliderDown():
            self.surface.slider_moved(self.source_id, value)
        else:
            # Keyboard, wheel and page clicks commit immediately
            self.surface.slider_released(self.source_id, value)

    def set_volume(self, volume: int) -> None:
        self.volume.setText(f"{volume}%")
        if self.slider.value() != volume and not self.slider.isSliderDown():
            self.slider.blockSignals(True)
            self.slider.setValue(volume)
            self.slider.blockSignals(False)

    def set_muted(self, muted: bool) -> None:
        self.mute_btn.setText("Unmute" if muted else "Mute")
        self.mute_btn.setProperty("muted", muted)
        _repolish(self.mute_btn)

    def set_highlight(self, on: bool) -> None:
        self.setProperty("pulse", on)
        _repolish(self)


class MainWindow(QMainWindow):
    def __init__(self, ui_settings: dict, shortcut_settings: dict, send_intent: Callable[[dict], None]) -> None:
        super().__init__()
        self.setWindowTitle("PC Audio Controller")
        self.resize(ui_settings.get("window_width", 900), ui_settings.get("window_height", 700))
        self.setMinimumSize(600, 500)
        self.setStyleSheet(STYLE)

        self.cards: Dict[str, SourceCard] = {}

        self.surface = ControlSurface(
            self,
            send_intent,
            scheduler=qt_scheduler,
            status_timeout=ui_settings.get("status_timeout", 3.0),
            pulse_duration=ui_settings.get("pulse_duration", 0.3),
            live_update=ui_settings.get("live_update", False),
            debounce_interval=ui_settings.get("debounce_interval", 0.1),
            mute_all_key=shortcut_settings.get("mute_all"),
            reset_all_key=shortcut_settings.get("reset_all"),
        )
        self._build_ui()

    def _build_ui(self) -> None:
        root = QWidget()
        outer = QVBoxLayout()
        outer.setContentsMargins(12, 12, 12, 12)
        outer.setSpacing(10)
        root.setLayout(outer)
        self.setCentralWidget(root)

        header = QHBoxLayout()
        title = QLabel("PC Audio Controller")
        title.setObjectName("Title")
        self.mute_all_btn = QPushButton("Mute All")
        self.mute_all_btn.setProperty("muted", False)
        self.mute_all_btn.clicked.connect(self.surface.mute_all_clicked)
        self.reset_all_btn = QPushButton("Reset All")
        self.reset_all_btn.clicked.connect(self.surface.reset_all_clicked)
        header.addWidget(title, 1)
        header.addWidget(self.mute_all_btn)
        header.addWidget(self.reset_all_btn)
        outer.addLayout(header)

        self.cards_host = QWidget()
        self.cards_layout = QVBoxLayout()
        self.cards_layout.setSpacing(10)
        self.cards_layout.addStretch(1)
        self.cards_host.setLayout(self.cards_layout)

        scroll = QScrollArea()
        scroll.setWidgetResizable(True)
        scroll.setFrameShape(QFrame.NoFrame)
        scroll.setWidget(self.cards_host)
        outer.addWidget(scroll, 1)

        self.status = QLabel()
        self.status.setObjectName("Status")
        self.status.setVisible(False)
        outer.addWidget(self.status)

    # View interface used by ControlSurface

    def render_sources(self, sources: dict) -> None:
        for card in self.cards.values():
            self.cards_layout.removeWidget(card)
            card.deleteLater()
        self.cards.clear()

        for source_id, source in sources.items():
            card = SourceCard(source_id, source, self.surface)
            self.cards[source_id] = card
            self.cards_layout.insertWidget(self.cards_layout.count() - 1, card)

    def update_volume(self, source_id: str, volume: int) -> None:
        card = self.cards.get(source_id)
        if card:
            card.set_volume(volume)

    def set_source_muted(self, source_id: str, muted: bool) -> None:
        card = self.cards.get(source_id)
        if card:
            card.set_muted(muted)

    def set_highlight(self, source_id: str, on: bool) -> None:
        card = self.cards.get(source_id)
        if card:
            card.set_highlight(on)

    def set_global_muted(self, muted: bool) -> None:
        self.mute_all_btn.setText("Unmute All" if muted else "Mute All")
        self.mute_all_btn.setProperty("muted", muted)
        _repolish(self.mute_all_btn)

    def show_status(self, message: str, kind: str) -> None:
        self.status.setText(message)
        self.status.setProperty("kind", kind)
        _repolish(self.status)
        self.status.setVisible(True)

    def hide_status(self) -> None:
        self.status.setVisible(False)

    # Qt events

    def changeEvent(self, event) -> None:
        if event.type() == QEvent.ActivationChange and self.isActiveWindow():
            self.surface.focus_gained()
        super().changeEvent(event)

    def keyPressEvent(self, event) -> None:
        self.surface.key_pressed(QKeySequence(event.keyCombination()).toString())
        super().keyPressEvent(event)


def run_display(ui_settings: dict, shortcut_settings: dict, inbound, outbound,
                argv: Optional[list] = None) -> int:
    """
    Run the display process event loop

    Args:
        ui_settings: "ui" configuration section
        shortcut_settings: "shortcuts" configuration section
        inbound: Notification channel (drained on the GUI thread)
        outbound: Intent channel
    """
    app = QApplication.instance() or QApplication(argv or [])
    window = MainWindow(ui_settings, shortcut_settings, outbound.send)

    def poll() -> None:
        for message in inbound.drain():
            window.surface.handle_notification(message)

    poller = QTimer(window)
    poller.timeout.connect(poll)
    poller.start(int(ui_settings.get("poll_interval", 0.05) * 1000))

    window.show()
    window.surface.start()
    logger.info("Control surface started")
    result = app.exec()
    logger.info("Control surface closed")
    return result
