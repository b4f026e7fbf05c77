"""Tests for the PySide6 window, run on the offscreen Qt platform"""

import pytest

pytest.importorskip("PySide6.QtWidgets")

from PySide6.QtCore import QEvent, Qt
from PySide6.QtGui import QKeyEvent
from PySide6.QtWidgets import QApplication

from audiocontrol import messages
from audiocontrol.window import MainWindow


TABLE = {
    "music": {"name": "Music Player", "volume": 50, "keyIncrease": "F13", "keyDecrease": "F14"},
    "browser": {"name": "Browser", "volume": 30, "keyIncrease": "F15", "keyDecrease": "F16"}
}


@pytest.fixture(scope="module")
def qapp():
    return QApplication.instance() or QApplication([])


@pytest.fixture
def sent():
    return []


@pytest.fixture
def window(qapp, sent):
    window = MainWindow({}, {"mute_all": "F21", "reset_all": "F22"}, sent.append)
    window.surface.handle_notification(messages.make_message(messages.AUDIO_SOURCES, {"table": TABLE}))
    yield window
    window.close()
    window.deleteLater()


def of_type(sent, message_type):
    return [m for m in sent if m["type"] == message_type]


class TestSourceCards:

    def test_cards_rendered(self, window):
        assert list(window.cards) == ["music", "browser"]
        card = window.cards["browser"]
        assert card.slider.value() == 30
        assert card.volume.text() == "30%"

    def test_drag_sends_once_on_release(self, window, sent):
        card = window.cards["music"]
        card.slider.setSliderDown(True)
        for value in (55, 61, 68, 73):
            card.slider.setValue(value)
        assert of_type(sent, messages.SET_VOLUME) == []
        assert card.volume.text() == "73%"

        card.slider.setSliderDown(False)

        assert of_type(sent, messages.SET_VOLUME) == [
            messages.make_message(messages.SET_VOLUME, {"source": "music", "volume": 73})
        ]

    def test_keyboard_step_commits_immediately(self, window, sent):
        window.cards["browser"].slider.setValue(35)
        assert of_type(sent, messages.SET_VOLUME)[-1]["payload"] == {"source": "browser", "volume": 35}

    def test_notification_moves_slider_without_sending(self, window, sent):
        window.surface.handle_notification(messages.make_message(
            messages.VOLUME_UPDATE, {"source": "music", "volume": 45, "fromShortcut": True}))
        assert window.cards["music"].slider.value() == 45
        assert of_type(sent, messages.SET_VOLUME) == []
        assert window.status.text() == "Music Player volume: 45%"

    def test_mute_button(self, window, sent):
        card = window.cards["browser"]
        card.mute_btn.click()
        assert of_type(sent, messages.TOGGLE_MUTE)[-1]["payload"] == {"source": "browser"}
        assert card.mute_btn.text() == "Unmute"


class TestWindowControls:

    def test_mute_all_button(self, window, sent):
        window.mute_all_btn.click()
        assert of_type(sent, messages.TOGGLE_MUTE_ALL)
        assert window.status.text() == "Muting all audio..."
        assert not window.status.isHidden()

    def test_mute_update_relabels_button(self, window):
        window.surface.handle_notification(messages.make_message(messages.MUTE_UPDATE, {"muted": True}))
        assert window.mute_all_btn.text() == "Unmute All"

    def test_reset_all_button(self, window, sent):
        window.reset_all_btn.click()
        assert of_type(sent, messages.RESET_ALL)
        assert window.status.text() == "Resetting all volumes..."

    def test_reserved_key_press_names_shortcut(self, window):
        window.keyPressEvent(QKeyEvent(QEvent.Type.KeyPress, Qt.Key.Key_F21, Qt.KeyboardModifier.NoModifier))
        assert window.status.text() == "Shortcut: Toggle Mute All"

    def test_source_key_press_names_shortcut(self, window):
        window.keyPressEvent(QKeyEvent(QEvent.Type.KeyPress, Qt.Key.Key_F16, Qt.KeyboardModifier.NoModifier))
        assert window.status.text() == "Shortcut: Decrease Browser Volume"

    def test_error_notification_shown(self, window):
        window.surface.handle_notification(messages.make_message(messages.ERROR, {"message": "Failed to set volume"}))
        assert window.status.text() == "Failed to set volume"
        assert window.status.property("kind") == "error"
