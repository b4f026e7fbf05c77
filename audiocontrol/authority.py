"""
State authority: the single owner of the audio source table and mute flag.

Only this object mutates volumes, talks to the system volume API and owns the
global shortcut registrations. Everything else learns about changes through
the notifications it broadcasts to its subscribers.
"""

import logging
import threading
from .constants import (
    DEFAULT_VOLUME, DEFAULT_VOLUME_STEP, DEFAULT_MUTE_ALL_KEY, DEFAULT_RESET_ALL_KEY,
    MIN_VOLUME, MAX_VOLUME
)
from .exceptions import (
    AudioControlError, UnknownSourceError, InvalidVolumeError, MessageFormatError, ExternalApiError
)
from . import messages

logger = logging.getLogger(__name__)


class AudioSource:
    """One logical audio source (all of them drive the same master volume)"""

    def __init__(self, source_id, name, volume=DEFAULT_VOLUME, key_increase=None, key_decrease=None):
        self.id = source_id
        self.name = name
        self.volume = volume
        self.key_increase = key_increase
        self.key_decrease = key_decrease

    @classmethod
    def from_config(cls, entry, default_volume=DEFAULT_VOLUME):
        return cls(
            entry["id"],
            entry.get("name") or entry["id"],
            volume=default_volume,
            key_increase=entry.get("key_increase") or None,
            key_decrease=entry.get("key_decrease") or None
        )

    def to_dict(self):
        return {
            "name": self.name,
            "volume": self.volume,
            "keyIncrease": self.key_increase,
            "keyDecrease": self.key_decrease
        }

    def __repr__(self):
        return f"AudioSource({self.id!r}, volume={self.volume})"


def clamp_volume(value):
    return max(MIN_VOLUME, min(MAX_VOLUME, value))


def check_volume(volume):
    """Raise InvalidVolumeError unless volume is an int in 0..100"""
    if isinstance(volume, bool) or not isinstance(volume, int):
        raise InvalidVolumeError(volume)
    if volume < MIN_VOLUME or volume > MAX_VOLUME:
        raise InvalidVolumeError(volume)
    return volume


class StateAuthority:
    """Owns the source table, forwards changes to the volume API and broadcasts them"""

    def __init__(self, volume_controller, sources, shortcut_manager=None,
                 step=DEFAULT_VOLUME_STEP, mute_all_key=DEFAULT_MUTE_ALL_KEY,
                 reset_all_key=DEFAULT_RESET_ALL_KEY, default_volume=DEFAULT_VOLUME):
        """
        Initialize the state authority

        Args:
            volume_controller: System volume backend (get/set volume, get/set muted)
            sources (list): AudioSource instances, ids must be unique
            shortcut_manager: ShortcutManager used for global key bindings
            step (int): Volume change applied by one increase/decrease shortcut
            mute_all_key (str): Reserved key toggling the global mute
            reset_all_key (str): Reserved key resetting every source
            default_volume (int): Startup and reset volume
        """
        self.volume_controller = volume_controller
        self.shortcut_manager = shortcut_manager
        self.step = step
        self.mute_all_key = mute_all_key
        self.reset_all_key = reset_all_key
        self.default_volume = default_volume

        self.sources = {}
        for source in sources:
            if source.id in self.sources:
                raise ValueError(f"Duplicate audio source id: {source.id}")
            self.sources[source.id] = source
        self.muted = self._read_api_mute()

        self.listeners = []
        self.lock = threading.RLock()

        logger.info(f"State authority initialized with {len(self.sources)} sources")

    def _read_api_mute(self):
        """Initial mute flag, taken from the system; unmuted if the API cannot say"""
        try:
            return bool(self.volume_controller.get_muted())
        except ExternalApiError as e:
            logger.warning(f"Cannot read system mute state, assuming unmuted: {e}")
            return False

    @classmethod
    def from_config(cls, config_manager, volume_controller, shortcut_manager=None):
        """Build the authority from the configuration sections"""
        shortcuts = config_manager.get_shortcut_settings()
        default_volume = config_manager.get_audio_settings().get("default_volume", DEFAULT_VOLUME)
        sources = [AudioSource.from_config(entry, default_volume) for entry in config_manager.get_sources()]
        return cls(
            volume_controller,
            sources,
            shortcut_manager=shortcut_manager,
            step=shortcuts.get("step", DEFAULT_VOLUME_STEP),
            mute_all_key=shortcuts.get("mute_all", DEFAULT_MUTE_ALL_KEY),
            reset_all_key=shortcuts.get("reset_all", DEFAULT_RESET_ALL_KEY),
            default_volume=default_volume
        )

    # Subscriptions

    def subscribe(self, listener):
        """Register a callable receiving every notification message"""
        with self.lock:
            if listener not in self.listeners:
                self.listeners.append(listener)

    def unsubscribe(self, listener):
        with self.lock:
            if listener in self.listeners:
                self.listeners.remove(listener)

    def broadcast(self, message_type, payload=None):
        """Send a notification to every subscriber"""
        message = messages.make_message(message_type, payload)
        with self.lock:
            listeners = list(self.listeners)
        for listener in listeners:
            try:
                listener(message)
            except Exception as e:
                logger.error(f"Notification listener failed on {message_type}: {e}")
        return message

    def report_error(self, text, error=None):
        """Log an error and broadcast it as a human-readable notification"""
        if error is not None:
            logger.error(f"{text}: {error}")
        else:
            logger.error(text)
        self.broadcast(messages.ERROR, {"message": text})

    # Table access

    def _get_source(self, source_id):
        try:
            return self.sources[source_id]
        except (KeyError, TypeError):
            raise UnknownSourceError(source_id) from None

    def source_name(self, source_id):
        source = self.sources.get(source_id) if isinstance(source_id, str) else None
        return source.name if source else str(source_id)

    def get_all_sources(self):
        """Snapshot of the full table keyed by source id"""
        with self.lock:
            return {source_id: source.to_dict() for source_id, source in self.sources.items()}

    def is_muted(self):
        return self.muted

    # Operations

    def _apply_volume(self, source, volume):
        # The table only changes once the API has accepted the value
        self.volume_controller.set_volume(volume)
        source.volume = volume

    def set_volume(self, source_id, volume):
        """
        Set a source's volume from a direct user action

        Args:
            source_id (str): Source id in the table
            volume (int): New volume 0-100

        Returns:
            dict: {"source": source_id, "volume": volume}

        Raises:
            UnknownSourceError, InvalidVolumeError, ExternalApiError
        """
        with self.lock:
            source = self._get_source(source_id)
            check_volume(volume)
            self._apply_volume(source, volume)

        logger.info(f"{source.name} volume set to {volume}%")
        result = {"source": source_id, "volume": volume}
        self.broadcast(messages.VOLUME_UPDATED, result)
        return result

    def adjust_volume(self, source_id, delta):
        """
        Change a source's volume by delta from a global shortcut

        The result is clamped to 0-100.
        """
        with self.lock:
            source = self._get_source(source_id)
            new_volume = clamp_volume(source.volume + delta)
            self._apply_volume(source, new_volume)

        logger.info(f"{source.name} volume adjusted to {new_volume}% via shortcut")
        result = {"source": source_id, "volume": new_volume, "fromShortcut": True}
        self.broadcast(messages.VOLUME_UPDATE, result)
        return result

    def _toggle_api_mute(self):
        muted = not self.volume_controller.get_muted()
        self.volume_controller.set_muted(muted)
        self.muted = muted
        return muted

    def toggle_mute(self, source_id):
        """
        Per-source mute request.

        There is no per-source mute on the system API, so this toggles the
        global flag; the reply carries the source id it was requested for.
        """
        with self.lock:
            self._get_source(source_id)
            muted = self._toggle_api_mute()

        logger.info(f"Mute toggled from {self.source_name(source_id)}: {'muted' if muted else 'unmuted'}")
        result = {"source": source_id, "muted": muted}
        self.broadcast(messages.MUTE_TOGGLED, result)
        return result

    def toggle_mute_all(self):
        """Invert the global mute flag"""
        with self.lock:
            muted = self._toggle_api_mute()

        logger.info(f"Audio {'muted' if muted else 'unmuted'}")
        result = {"muted": muted}
        self.broadcast(messages.MUTE_UPDATE, result)
        return result

    def reset_all_volumes(self):
        """Set every source back to the default volume with one API call"""
        with self.lock:
            self.volume_controller.set_volume(self.default_volume)
            for source in self.sources.values():
                source.volume = self.default_volume
            table = self.get_all_sources()

        logger.info(f"All volumes reset to {self.default_volume}%")
        self.broadcast(messages.RESET_VOLUMES, {"table": table})
        return table

    # Entry points that never raise

    def run_guarded(self, description, action, *args):
        """
        Run an operation, turning any audio error into an error notification

        Returns:
            The operation result, or None if it failed
        """
        try:
            return action(*args)
        except AudioControlError as e:
            self.report_error(f"{description}: {e}")
        except Exception as e:
            self.report_error(f"{description}: unexpected error", e)
        return None

    def handle_intent(self, message):
        """
        Dispatch one intent message from the control surface

        Args:
            message (dict): {"type": ..., "payload": {...}}
        """
        try:
            message = messages.validate(message)
        except MessageFormatError as e:
            self.report_error("Received a malformed request", e)
            return

        intent = message["type"]
        payload = message["payload"]
        logger.debug(f"Intent received: {intent} {payload}")

        if intent == messages.SET_VOLUME:
            self.run_guarded("Failed to set volume", self.set_volume,
                             payload.get("source"), payload.get("volume"))
        elif intent == messages.GET_CURRENT_VOLUMES:
            self.broadcast(messages.AUDIO_SOURCES, {"table": self.get_all_sources()})
        elif intent == messages.TOGGLE_MUTE:
            self.run_guarded("Failed to toggle mute", self.toggle_mute, payload.get("source"))
        elif intent == messages.TOGGLE_MUTE_ALL:
            self.run_guarded("Error toggling mute", self.toggle_mute_all)
        elif intent == messages.RESET_ALL:
            self.run_guarded("Error resetting volumes", self.reset_all_volumes)
        else:
            self.report_error(f"Unknown request: {intent}")

    # Global shortcuts

    def _shortcut_adjust(self, source_id, delta):
        def callback():
            self.run_guarded(f"Error adjusting {self.source_name(source_id)} volume",
                             self.adjust_volume, source_id, delta)
        return callback

    def default_bindings(self):
        """Key bindings derived from the source table and reserved keys"""
        bindings = []
        for source_id, source in self.sources.items():
            if source.key_increase:
                bindings.append((source.key_increase, self._shortcut_adjust(source_id, self.step)))
            if source.key_decrease:
                bindings.append((source.key_decrease, self._shortcut_adjust(source_id, -self.step)))
        if self.mute_all_key:
            bindings.append((self.mute_all_key,
                             lambda: self.run_guarded("Error toggling mute", self.toggle_mute_all)))
        if self.reset_all_key:
            bindings.append((self.reset_all_key,
                             lambda: self.run_guarded("Error resetting volumes", self.reset_all_volumes)))
        return bindings

    def register_shortcuts(self, bindings=None):
        """
        Register global key bindings, best effort

        Each failure is logged and reported on its own; bindings that did
        register stay registered.

        Args:
            bindings (list): (key, callback) pairs, defaults to default_bindings()

        Returns:
            list: Keys that could not be registered
        """
        if self.shortcut_manager is None:
            logger.warning("No shortcut manager configured - global shortcuts disabled")
            return []

        failed = []
        for key, callback in (bindings if bindings is not None else self.default_bindings()):
            try:
                self.shortcut_manager.register(key, callback)
            except AudioControlError as e:
                failed.append(key)
                self.report_error(str(e))

        registered = len(self.shortcut_manager.bindings)
        if failed:
            logger.warning(f"Global shortcuts registered: {registered}, failed: {', '.join(map(str, failed))}")
        else:
            logger.info(f"Global shortcuts registered successfully ({registered})")
        return failed

    def unregister_all_shortcuts(self):
        if self.shortcut_manager is not None:
            self.shortcut_manager.unregister_all()

    def describe_shortcuts(self):
        """Map of key -> human readable action, for display"""
        descriptions = {}
        for source in self.sources.values():
            if source.key_increase:
                descriptions[source.key_increase] = f"Increase {source.name} Volume"
            if source.key_decrease:
                descriptions[source.key_decrease] = f"Decrease {source.name} Volume"
        if self.mute_all_key:
            descriptions[self.mute_all_key] = "Toggle Mute All"
        if self.reset_all_key:
            descriptions[self.reset_all_key] = "Reset All Volumes"
        return descriptions
