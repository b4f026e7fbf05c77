"""Tests for configuration loading and validation"""

import json

import pytest

from audiocontrol.config import ConfigManager
from audiocontrol.constants import DEFAULT_CONFIG, DEFAULT_SOURCES


def write_config(tmp_path, data):
    path = tmp_path / "audio_control_config.json"
    path.write_text(json.dumps(data))
    return str(path)


class TestLoading:

    def test_creates_default_file(self, tmp_path):
        path = tmp_path / "new_config.json"
        config = ConfigManager(str(path))
        assert path.exists()
        assert json.loads(path.read_text()) == DEFAULT_CONFIG
        assert config.validation_errors == []

    def test_merges_with_defaults(self, tmp_path):
        config = ConfigManager(write_config(tmp_path, {"ui": {"status_timeout": 5}}))
        assert config.get("ui.status_timeout") == 5
        assert config.get("ui.pulse_duration") == 0.3
        assert config.get_shortcut_settings()["mute_all"] == "F21"

    def test_invalid_json_uses_defaults(self, tmp_path):
        path = tmp_path / "broken.json"
        path.write_text("{not json")
        config = ConfigManager(str(path))
        assert config.get_sources() == DEFAULT_SOURCES

    def test_defaults_not_shared(self, tmp_path):
        config = ConfigManager(str(tmp_path / "a.json"))
        config.get_sources()[0]["name"] = "Changed"
        assert DEFAULT_SOURCES[0]["name"] == "Music Player"


class TestValidation:

    @pytest.mark.parametrize("section, field, value", [
        ("shortcuts", "step", 0),
        ("shortcuts", "step", "5"),
        ("shortcuts", "step", True),
        ("audio", "default_volume", 150),
        ("audio", "backend", "alsa"),
        ("transport", "type", "websocket"),
        ("ui", "status_timeout", 0.1),
        ("mqtt", "port", 70000),
        ("settings", "log_level", "VERBOSE")
    ])
    def test_invalid_value_reset(self, tmp_path, section, field, value):
        config = ConfigManager(write_config(tmp_path, {section: {field: value}}))
        assert config.get(f"{section}.{field}") == DEFAULT_CONFIG[section][field]
        assert any(f"{section}.{field}" in error for error in config.validation_errors)

    def test_float_timing_accepted(self, tmp_path):
        config = ConfigManager(write_config(tmp_path, {"ui": {"status_timeout": 1.5}}))
        assert config.get("ui.status_timeout") == 1.5
        assert config.validation_errors == []

    def test_missing_required_field(self, tmp_path):
        config = ConfigManager(write_config(tmp_path, {"mqtt": {"broker": None}}))
        assert config.get("mqtt.broker") == "localhost"

    def test_invalid_section_replaced(self, tmp_path):
        config = ConfigManager(write_config(tmp_path, {"ui": "big"}))
        assert config.get_ui_settings() == DEFAULT_CONFIG["ui"]

    def test_empty_sources_fall_back(self, tmp_path):
        config = ConfigManager(write_config(tmp_path, {"sources": []}))
        assert config.get_sources() == DEFAULT_SOURCES

    def test_bad_source_entries_skipped(self, tmp_path):
        sources = [
            {"id": "music", "name": "Music"},
            {"name": "No id"},
            {"id": "music", "name": "Again"},
            {"id": "voice", "name": "Voice Chat", "key_increase": "F23"}
        ]
        config = ConfigManager(write_config(tmp_path, {"sources": sources}))
        assert [s["id"] for s in config.get_sources()] == ["music", "voice"]
        assert len(config.validation_errors) == 2

    def test_duplicate_key_reported(self, tmp_path):
        sources = [
            {"id": "music", "name": "Music", "key_increase": "F21", "key_decrease": "F14"}
        ]
        config = ConfigManager(write_config(tmp_path, {"sources": sources}))
        assert any("F21" in error for error in config.validation_errors)


class TestAccess:

    def test_get_dot_path(self, tmp_path):
        config = ConfigManager(str(tmp_path / "c.json"))
        assert config.get("mqtt.topics.intent") == "audiocontrol/intent"
        assert config.get("mqtt.nothing.here", "fallback") == "fallback"

    def test_set_not_persisted_by_default(self, tmp_path):
        path = tmp_path / "c.json"
        config = ConfigManager(str(path))
        config.set("transport.type", "mqtt")
        assert config.get_transport() == "mqtt"
        assert json.loads(path.read_text())["transport"]["type"] == "local"

    def test_set_persist(self, tmp_path):
        path = tmp_path / "c.json"
        config = ConfigManager(str(path))
        config.set("audio.backend", "mock", persist=True)
        assert json.loads(path.read_text())["audio"]["backend"] == "mock"

    def test_section_getters(self, tmp_path):
        config = ConfigManager(str(tmp_path / "c.json"))
        assert config.get_audio_settings()["default_volume"] == 50
        assert config.get_mqtt_config()["port"] == 1883
        assert config.get_settings()["enable_tray"] is True
        assert config.get_transport() == "local"
