"""Tests for the tray actions (the icon itself is not created)"""

import pytest
from unittest.mock import patch, MagicMock

from audiocontrol import messages
from audiocontrol import tray_ui
from audiocontrol.exceptions import ExternalApiError


@pytest.fixture
def config_manager():
    config = MagicMock()
    config.get_settings.return_value = {"enable_tray": True}
    return config


@pytest.fixture
def tray(authority, config_manager):
    with patch.object(tray_ui, "TRAY_AVAILABLE", False):
        return tray_ui.SystemTrayApp(authority, config_manager)


class TestUnavailableTray:

    def test_not_available(self, tray, authority):
        assert not tray.is_available()
        assert tray.start() is False
        assert tray.on_notification not in authority.listeners

    def test_disabled_in_config(self, authority, config_manager):
        config_manager.get_settings.return_value = {"enable_tray": False}
        with patch.object(tray_ui, "TRAY_AVAILABLE", True):
            app = tray_ui.SystemTrayApp(authority, config_manager)
        assert app.icon is None
        assert app.on_notification not in authority.listeners


class TestTrayActions:

    def test_toggle_mute(self, tray, authority, received):
        tray.toggle_mute()
        assert authority.is_muted() is True
        assert received[-1] == messages.make_message(messages.MUTE_UPDATE, {"muted": True})

    def test_reset_volumes(self, tray, authority):
        authority.set_volume("game", 90)
        tray.reset_volumes()
        assert authority.get_all_sources()["game"]["volume"] == 50

    def test_failure_becomes_error_notification(self, tray, authority, received, volume_controller):
        volume_controller.set_volume = MagicMock(side_effect=ExternalApiError("device gone"))
        tray.reset_volumes()
        assert received[-1]["type"] == messages.ERROR
        assert received[-1]["payload"]["message"] == "Error resetting volumes: device gone"

    def test_quit_calls_exit_handler(self, authority, config_manager):
        on_exit = MagicMock()
        with patch.object(tray_ui, "TRAY_AVAILABLE", False):
            app = tray_ui.SystemTrayApp(authority, config_manager, on_exit=on_exit)
        app.quit_application()
        on_exit.assert_called_once()
        assert not app.is_running()

    def test_notification_refreshes_icon(self, tray):
        tray.icon = MagicMock()
        with patch.object(tray, "_create_volume_icon") as create_icon:
            tray.on_notification(messages.make_message(messages.VOLUME_UPDATE, {"source": "music", "volume": 55}))
            tray.on_notification(messages.make_message(messages.AUDIO_SOURCES, {"table": {}}))
        create_icon.assert_called_once()
        tray.icon.update_menu.assert_called_once()


class TestVolumeIcon:

    @pytest.fixture
    def drawing(self, monkeypatch):
        image = pytest.importorskip("PIL.Image")
        draw = pytest.importorskip("PIL.ImageDraw")
        monkeypatch.setattr(tray_ui, "Image", image, raising=False)
        monkeypatch.setattr(tray_ui, "ImageDraw", draw, raising=False)

    def test_icon_image(self, drawing, tray):
        icon = tray._create_volume_icon()
        assert icon.size == (64, 64)

    def test_icon_when_volume_unreadable(self, drawing, tray, volume_controller):
        volume_controller.get_volume = MagicMock(side_effect=ExternalApiError("gone"))
        assert tray._create_volume_icon().size == (64, 64)
