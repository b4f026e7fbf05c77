"""Tests for the global shortcut registry"""

import pytest

from audiocontrol.authority import AudioSource, StateAuthority
from audiocontrol.constants import DEFAULT_SOURCES, HOTKEYS_AVAILABLE
from audiocontrol.exceptions import ShortcutRegistrationError
from audiocontrol.shortcuts import PynputKeyListener, ShortcutManager, extended_key_codes, normalize_key
from audiocontrol.volume_controller import MockVolumeController

if HOTKEYS_AVAILABLE:
    from pynput import keyboard


class TestNormalizeKey:

    @pytest.mark.parametrize("key, expected", [("F13", "f13"), ("<F21>", "f21"), (" m ", "m"), ("f22", "f22")])
    def test_normalize(self, key, expected):
        assert normalize_key(key) == expected

    @pytest.mark.parametrize("key", ["", "   ", None])
    def test_empty_rejected(self, key):
        with pytest.raises(ShortcutRegistrationError):
            normalize_key(key)


class TestShortcutManager:

    def test_dispatch(self, shortcut_manager, listeners):
        calls = []
        shortcut_manager.register("F13", lambda: calls.append("up"))
        listeners[0].press("f13")
        listeners[0].press("f99")
        assert calls == ["up"]

    def test_dispatch_result(self, shortcut_manager):
        shortcut_manager.register("F13", lambda: None)
        assert shortcut_manager.dispatch("f13") is True
        assert shortcut_manager.dispatch("f14") is False

    def test_one_listener_for_all_keys(self, shortcut_manager, listeners):
        shortcut_manager.register("F13", lambda: None)
        shortcut_manager.register("F14", lambda: None)
        assert len(listeners) == 1

    def test_duplicate_key_rejected(self, shortcut_manager):
        shortcut_manager.register("F13", lambda: None)
        with pytest.raises(ShortcutRegistrationError) as exc_info:
            shortcut_manager.register("f13", lambda: None)
        assert exc_info.value.key == "f13"

    def test_callback_error_contained(self, shortcut_manager, listeners):
        def broken():
            raise RuntimeError("boom")
        shortcut_manager.register("F13", broken)
        assert shortcut_manager.dispatch("f13") is True

    def test_unsupported_key(self):
        class LimitedListener:
            def __init__(self, on_key):
                pass

            def supports(self, name):
                return name.startswith("f") and name[1:].isdigit() and int(name[1:]) <= 20

            def start(self):
                pass

            def stop(self):
                pass

        manager = ShortcutManager(listener_factory=LimitedListener)
        manager.register("F20", lambda: None)
        with pytest.raises(ShortcutRegistrationError):
            manager.register("F21", lambda: None)
        assert manager.is_registered("F20")
        assert not manager.is_registered("F21")

    def test_listener_start_failure(self):
        class BrokenListener:
            def __init__(self, on_key):
                pass

            def start(self):
                raise OSError("no X display")

        manager = ShortcutManager(listener_factory=BrokenListener)
        with pytest.raises(ShortcutRegistrationError):
            manager.register("F13", lambda: None)
        assert manager.listener is None

    def test_unregister_all(self, shortcut_manager, listeners):
        shortcut_manager.register("F13", lambda: None)
        shortcut_manager.unregister_all()
        assert not shortcut_manager.is_registered("F13")
        assert listeners[0].stopped
        # Registering again starts a fresh listener
        shortcut_manager.register("F13", lambda: None)
        assert len(listeners) == 2


class TestExtendedKeyCodes:

    def test_x_keysyms(self):
        codes = extended_key_codes("xorg")
        assert codes["f21"] == 0xFFD2
        assert codes["f24"] == 0xFFD5

    def test_evdev_codes(self):
        assert extended_key_codes("uinput") == {"f21": 191, "f22": 192, "f23": 193, "f24": 194}

    @pytest.mark.parametrize("backend", ["win32", "darwin"])
    def test_no_codes_needed(self, backend):
        assert extended_key_codes(backend) == {}


class QuietPynputListener(PynputKeyListener):
    """The real key naming without an OS hook"""

    def start(self):
        pass

    def stop(self):
        pass


@pytest.mark.skipif(not HOTKEYS_AVAILABLE, reason="pynput is not available")
class TestPynputKeyListener:

    def test_reserved_keys_supported(self):
        listener = PynputKeyListener(lambda name: None)
        assert listener.supports("f13")
        assert listener.supports("f21")
        assert listener.supports("f22")
        assert listener.supports("m")
        assert not listener.supports("f99")

    def test_extended_key_press_by_code(self):
        pressed = []
        listener = PynputKeyListener(pressed.append)
        if not listener.extended_keys:
            pytest.skip("F21 and up are regular Key members on this backend")
        listener._on_press(keyboard.KeyCode.from_vk(listener.extended_keys["f21"]))
        listener._on_press(keyboard.KeyCode.from_vk(listener.extended_keys["f22"]))
        assert pressed == ["f21", "f22"]

    def test_character_press(self):
        pressed = []
        listener = PynputKeyListener(pressed.append)
        listener._on_press(keyboard.KeyCode.from_char("M"))
        listener._on_press(keyboard.KeyCode.from_vk(1))
        assert pressed == ["m"]

    def test_default_bindings_all_register(self):
        manager = ShortcutManager(listener_factory=QuietPynputListener)
        sources = [AudioSource.from_config(entry) for entry in DEFAULT_SOURCES]
        authority = StateAuthority(MockVolumeController(), sources, shortcut_manager=manager)
        assert authority.register_shortcuts() == []
        assert manager.is_registered("F21")
        assert manager.is_registered("F22")

    def test_reserved_key_press_toggles_mute(self):
        manager = ShortcutManager(listener_factory=QuietPynputListener)
        authority = StateAuthority(MockVolumeController(), [AudioSource("music", "Music")],
                                   shortcut_manager=manager)
        authority.register_shortcuts()
        if not manager.listener.extended_keys:
            pytest.skip("F21 and up are regular Key members on this backend")
        manager.listener._on_press(keyboard.KeyCode.from_vk(manager.listener.extended_keys["f21"]))
        assert authority.is_muted() is True
