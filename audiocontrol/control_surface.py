"""
Control surface logic for the display process.

Holds a read-only mirror of the authority's source table, turns user gestures
into intents and applies notifications to a view. The view is any object with
the rendering methods used below; the PySide6 window is the real one.

Timers go through a scheduler: ``schedule(delay_seconds, callback)`` returning
a handle with ``cancel()``.
"""

import logging
import threading
from .constants import (
    DEFAULT_STATUS_TIMEOUT, DEFAULT_PULSE_DURATION, DEFAULT_DEBOUNCE_INTERVAL,
    DEFAULT_MUTE_ALL_KEY, DEFAULT_RESET_ALL_KEY, DEFAULT_VOLUME
)
from .exceptions import MessageFormatError
from . import messages

logger = logging.getLogger(__name__)


def threading_scheduler(delay, callback):
    """Default scheduler running callbacks on a timer thread"""
    timer = threading.Timer(delay, callback)
    timer.daemon = True
    timer.start()
    return timer


class StatusBanner:
    """
    Transient status message

    hidden -> showing on any message -> hidden after the timeout. A new
    message replaces the current one and restarts the timer.
    """

    HIDDEN = "hidden"
    SHOWING = "showing"

    def __init__(self, scheduler=threading_scheduler, timeout=DEFAULT_STATUS_TIMEOUT, on_change=None):
        self.scheduler = scheduler
        self.timeout = timeout
        self.on_change = on_change
        self.state = self.HIDDEN
        self.message = ""
        self.kind = "info"
        self._timer = None
        self._generation = 0

    def show(self, message, kind="info"):
        self._cancel_timer()
        self._generation += 1
        generation = self._generation
        self.state = self.SHOWING
        self.message = message
        self.kind = kind
        self._notify()
        self._timer = self.scheduler(self.timeout, lambda: self._expire(generation))

    def _expire(self, generation):
        # A superseded timer that fired anyway must not hide the newer message
        if generation == self._generation:
            self._timer = None
            self.hide()

    def hide(self):
        self._cancel_timer()
        if self.state == self.HIDDEN:
            return
        self.state = self.HIDDEN
        self._notify()

    def _cancel_timer(self):
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    def _notify(self):
        if self.on_change:
            self.on_change(self)

    @property
    def visible(self):
        return self.state == self.SHOWING


class Debouncer:
    """Delay a call until no new call arrived for `wait` seconds"""

    def __init__(self, func, wait=DEFAULT_DEBOUNCE_INTERVAL, scheduler=threading_scheduler):
        self.func = func
        self.wait = wait
        self.scheduler = scheduler
        self._pending = None

    def __call__(self, *args):
        self.cancel()
        self._pending = self.scheduler(self.wait, lambda: self._fire(args))

    def _fire(self, args):
        self._pending = None
        self.func(*args)

    def cancel(self):
        if self._pending is not None:
            self._pending.cancel()
            self._pending = None

    @property
    def pending(self):
        return self._pending is not None


class ControlSurface:
    """Mirror of the authority state plus the gesture -> intent translation"""

    def __init__(self, view, send_intent, scheduler=threading_scheduler,
                 status_timeout=DEFAULT_STATUS_TIMEOUT, pulse_duration=DEFAULT_PULSE_DURATION,
                 live_update=False, debounce_interval=DEFAULT_DEBOUNCE_INTERVAL,
                 mute_all_key=DEFAULT_MUTE_ALL_KEY, reset_all_key=DEFAULT_RESET_ALL_KEY):
        """
        Initialize the control surface

        Args:
            view: Rendering target (render_sources, update_volume, set_source_muted,
                set_highlight, set_global_muted, show_status, hide_status, close)
            send_intent (callable): Puts an intent message on the intent channel
            scheduler (callable): Timer factory, see module docstring
            status_timeout (float): Seconds a status message stays visible
            pulse_duration (float): Seconds a card stays highlighted after a shortcut
            live_update (bool): Send debounced set-volume intents while dragging
            debounce_interval (float): Debounce window for live updates
            mute_all_key (str): Reserved key shown in shortcut help
            reset_all_key (str): Reserved key shown in shortcut help
        """
        self.view = view
        self.send_intent = send_intent
        self.scheduler = scheduler
        self.pulse_duration = pulse_duration
        self.live_update = live_update
        self.mute_all_key = mute_all_key
        self.reset_all_key = reset_all_key

        self.sources = {}
        self.muted = False
        self.locally_muted = set()
        self.banner = StatusBanner(scheduler, status_timeout, on_change=self._render_banner)
        self._debouncers = {}
        self._debounce_interval = debounce_interval

        self._handlers = {
            messages.AUDIO_SOURCES: self._on_audio_sources,
            messages.VOLUME_UPDATE: self._on_volume_update,
            messages.VOLUME_UPDATED: self._on_volume_updated,
            messages.MUTE_UPDATE: self._on_mute_update,
            messages.MUTE_TOGGLED: self._on_mute_toggled,
            messages.RESET_VOLUMES: self._on_reset_volumes,
            messages.ERROR: self._on_error,
            messages.SHUTDOWN: self._on_shutdown
        }

    def _send(self, intent, payload=None):
        self.send_intent(messages.make_message(intent, payload))

    def source_name(self, source_id):
        source = self.sources.get(source_id)
        return source.get("name", source_id) if source else str(source_id)

    def show_status(self, message, kind="info"):
        self.banner.show(message, kind)

    def _render_banner(self, banner):
        if banner.visible:
            self.view.show_status(banner.message, banner.kind)
        else:
            self.view.hide_status()

    # Requests

    def start(self):
        """Ask the authority for the full table"""
        self.request_current_volumes()

    def request_current_volumes(self):
        self._send(messages.GET_CURRENT_VOLUMES)

    def focus_gained(self):
        """The window came back to the foreground; shortcuts may have fired meanwhile"""
        self.request_current_volumes()

    # User gestures

    def _set_local_volume(self, source_id, volume):
        if source_id in self.sources:
            self.sources[source_id]["volume"] = volume
        self.view.update_volume(source_id, volume)

    def _debouncer(self, source_id):
        if source_id not in self._debouncers:
            self._debouncers[source_id] = Debouncer(
                lambda volume: self._send(messages.SET_VOLUME, {"source": source_id, "volume": volume}),
                self._debounce_interval,
                self.scheduler
            )
        return self._debouncers[source_id]

    def slider_moved(self, source_id, volume):
        """Intermediate drag position: local feedback only (debounced send if live updates are on)"""
        self._set_local_volume(source_id, volume)
        if self.live_update:
            self._debouncer(source_id)(volume)

    def slider_released(self, source_id, volume):
        """Drag finished: exactly one set-volume intent with the final value"""
        debouncer = self._debouncers.get(source_id)
        if debouncer is not None:
            debouncer.cancel()
        self._set_local_volume(source_id, volume)
        self._send(messages.SET_VOLUME, {"source": source_id, "volume": volume})

    def mute_clicked(self, source_id):
        """
        Per-source mute button.

        The authority toggles the global mute; the card's styling flips
        locally and is not reconciled with the global flag afterwards.
        """
        self._send(messages.TOGGLE_MUTE, {"source": source_id})
        if source_id in self.locally_muted:
            self.locally_muted.discard(source_id)
            local = False
        else:
            self.locally_muted.add(source_id)
            local = True
        self.view.set_source_muted(source_id, local)

    def mute_all_clicked(self):
        self._send(messages.TOGGLE_MUTE_ALL)
        self.show_status("Unmuting all audio..." if self.muted else "Muting all audio...")

    def reset_all_clicked(self):
        self._send(messages.RESET_ALL)
        self.show_status("Resetting all volumes...")

    def shortcut_descriptions(self):
        descriptions = {}
        for source in self.sources.values():
            name = source.get("name", "")
            if source.get("keyIncrease"):
                descriptions[source["keyIncrease"].lower()] = f"Increase {name} Volume"
            if source.get("keyDecrease"):
                descriptions[source["keyDecrease"].lower()] = f"Decrease {name} Volume"
        if self.mute_all_key:
            descriptions[self.mute_all_key.lower()] = "Toggle Mute All"
        if self.reset_all_key:
            descriptions[self.reset_all_key.lower()] = "Reset All Volumes"
        return descriptions

    def key_pressed(self, key):
        """Local key press inside the window: name the shortcut it triggers"""
        description = self.shortcut_descriptions().get(str(key).lower())
        if description:
            self.show_status(f"Shortcut: {description}")
        return description

    # Notifications

    def handle_notification(self, message):
        try:
            message = messages.validate(message)
        except MessageFormatError as e:
            logger.warning(f"Ignoring notification: {e}")
            return
        handler = self._handlers.get(message["type"])
        if handler is None:
            logger.debug(f"Ignoring notification type {message['type']}")
            return
        handler(message["payload"])

    def _replace_table(self, table):
        self.sources = {source_id: dict(source) for source_id, source in (table or {}).items()}

    def _on_audio_sources(self, payload):
        self._replace_table(payload.get("table"))
        self.view.render_sources(self.sources)
        self.view.set_global_muted(self.muted)
        for source_id in self.locally_muted:
            if source_id in self.sources:
                self.view.set_source_muted(source_id, True)

    def _on_volume_update(self, payload):
        source_id = payload.get("source")
        volume = payload.get("volume")
        self._set_local_volume(source_id, volume)
        if payload.get("fromShortcut"):
            self.show_status(f"{self.source_name(source_id)} volume: {volume}%", "success")
            self.pulse(source_id)

    def pulse(self, source_id):
        """Briefly highlight a card changed from outside the window"""
        self.view.set_highlight(source_id, True)
        self.scheduler(self.pulse_duration, lambda: self.view.set_highlight(source_id, False))

    def _on_volume_updated(self, payload):
        source_id = payload.get("source")
        volume = payload.get("volume")
        self._set_local_volume(source_id, volume)
        self.show_status(f"{self.source_name(source_id)} volume updated to {volume}%", "success")

    def _on_mute_update(self, payload):
        self.muted = bool(payload.get("muted"))
        self.view.set_global_muted(self.muted)
        self.show_status(f"Audio {'muted' if self.muted else 'unmuted'}", "success")

    def _on_mute_toggled(self, payload):
        self.muted = bool(payload.get("muted"))
        self.view.set_global_muted(self.muted)
        self.show_status(
            f"{self.source_name(payload.get('source'))} {'muted' if self.muted else 'unmuted'}", "success")

    def _on_reset_volumes(self, payload):
        self._replace_table(payload.get("table"))
        for source_id, source in self.sources.items():
            self.view.update_volume(source_id, source.get("volume", DEFAULT_VOLUME))
        volumes = sorted({source.get("volume", DEFAULT_VOLUME) for source in self.sources.values()})
        if len(volumes) == 1:
            self.show_status(f"All volumes reset to {volumes[0]}%", "success")
        else:
            self.show_status("All volumes reset", "success")

    def _on_error(self, payload):
        self.show_status(payload.get("message") or "An unexpected error occurred", "error")

    def _on_shutdown(self, payload):
        logger.info("Shutdown requested by the state authority")
        self.view.close()
