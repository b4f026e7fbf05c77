"""Shared fixtures: in-memory volume backend, fake key listener, manual timers and a recording view"""

import logging
import os

# Headless runs: no X server for pynput, no display for Qt
os.environ.setdefault("PYNPUT_BACKEND", "dummy")
os.environ.setdefault("QT_QPA_PLATFORM", "offscreen")

import pytest
from unittest.mock import MagicMock

from audiocontrol.authority import AudioSource, StateAuthority
from audiocontrol.constants import DEFAULT_SOURCES
from audiocontrol.shortcuts import ShortcutManager
from audiocontrol.volume_controller import MockVolumeController


class FakeKeyListener:
    """Key listener that knows a fixed set of key names"""

    def __init__(self, on_key, supported=None):
        self.on_key = on_key
        self.supported = supported
        self.started = False
        self.stopped = False

    def supports(self, name):
        return self.supported is None or name in self.supported

    def start(self):
        self.started = True

    def stop(self):
        self.stopped = True

    def press(self, name):
        self.on_key(name)


class ManualTimer:
    def __init__(self, scheduler, due, callback):
        self.scheduler = scheduler
        self.due = due
        self.callback = callback
        self.cancelled = False

    def cancel(self):
        self.cancelled = True


class ManualScheduler:
    """Scheduler whose clock only moves when the test advances it"""

    def __init__(self):
        self.now = 0.0
        self.timers = []

    def __call__(self, delay, callback):
        timer = ManualTimer(self, self.now + delay, callback)
        self.timers.append(timer)
        return timer

    def advance(self, seconds):
        target = self.now + seconds
        while True:
            due = [t for t in self.timers if not t.cancelled and t.due <= target]
            if not due:
                break
            timer = min(due, key=lambda t: t.due)
            self.timers.remove(timer)
            self.now = timer.due
            timer.callback()
        self.now = target

    @property
    def pending(self):
        return [t for t in self.timers if not t.cancelled]


class RecordingView:
    """View that records every rendering call in order"""

    def __init__(self):
        self.calls = []
        self.status = None
        self.closed = False

    def render_sources(self, sources):
        self.calls.append(("render_sources", dict(sources)))

    def update_volume(self, source_id, volume):
        self.calls.append(("update_volume", source_id, volume))

    def set_source_muted(self, source_id, muted):
        self.calls.append(("set_source_muted", source_id, muted))

    def set_highlight(self, source_id, on):
        self.calls.append(("set_highlight", source_id, on))

    def set_global_muted(self, muted):
        self.calls.append(("set_global_muted", muted))

    def show_status(self, message, kind):
        self.status = (message, kind)
        self.calls.append(("show_status", message, kind))

    def hide_status(self):
        self.status = None
        self.calls.append(("hide_status",))

    def close(self):
        self.closed = True

    def named(self, name):
        return [call for call in self.calls if call[0] == name]


@pytest.fixture
def volume_controller():
    return MockVolumeController()


@pytest.fixture
def listeners():
    """Every FakeKeyListener created by the shortcut_manager fixture"""
    return []


@pytest.fixture
def shortcut_manager(listeners):
    def factory(on_key):
        listener = FakeKeyListener(on_key)
        listeners.append(listener)
        return listener
    return ShortcutManager(listener_factory=factory)


@pytest.fixture
def authority(volume_controller, shortcut_manager):
    sources = [AudioSource.from_config(entry) for entry in DEFAULT_SOURCES]
    return StateAuthority(volume_controller, sources, shortcut_manager=shortcut_manager)


@pytest.fixture
def received(authority):
    """Notifications broadcast by the authority fixture"""
    messages = []
    authority.subscribe(messages.append)
    return messages


@pytest.fixture
def scheduler():
    return ManualScheduler()


@pytest.fixture
def view():
    return RecordingView()


@pytest.fixture
def failing_controller():
    controller = MagicMock()
    controller.name = "failing"
    controller.get_muted.return_value = False
    return controller


@pytest.fixture
def restore_root_logger():
    """DiagnosticLogger replaces the root handlers; put them back afterwards"""
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield
    for handler in root.handlers:
        if handler not in handlers:
            handler.close()
    root.handlers[:] = handlers
    root.setLevel(level)
