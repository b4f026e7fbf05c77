"""
Global keyboard shortcuts captured regardless of window focus.
"""

import logging
import threading
from .constants import HOTKEYS_AVAILABLE
from .exceptions import ShortcutRegistrationError

if HOTKEYS_AVAILABLE:
    from pynput import keyboard

logger = logging.getLogger(__name__)


def normalize_key(key):
    """
    Turn a configured key identifier into the name used for matching

    "F13" -> "f13", "<F21>" -> "f21", "m" -> "m"
    """
    if not isinstance(key, str) or not key.strip():
        raise ShortcutRegistrationError(key, "empty key identifier")
    name = key.strip()
    if name.startswith("<") and name.endswith(">"):
        name = name[1:-1]
    return name.lower()


# pynput's Key enum stops at f20 except on win32. Past that, presses arrive as
# bare KeyCodes and are matched on their virtual key code: evdev codes for
# uinput, X keysyms for xorg and the dummy backend.
X_KEYSYM_F1 = 0xFFBE
EXTENDED_FUNCTION_KEYS = {
    "uinput": {"f21": 191, "f22": 192, "f23": 193, "f24": 194},
    "win32": {},
    "darwin": {}
}


def extended_key_codes(backend):
    """Name -> virtual key code of F21-F24 for a pynput backend name"""
    if backend in EXTENDED_FUNCTION_KEYS:
        return dict(EXTENDED_FUNCTION_KEYS[backend])
    return {f"f{number}": X_KEYSYM_F1 + number - 1 for number in range(21, 25)}


class PynputKeyListener:
    """System-wide key listener built on pynput"""

    def __init__(self, on_key):
        """
        Args:
            on_key (callable): Called with the normalized key name of every press
        """
        if not HOTKEYS_AVAILABLE:
            raise ShortcutRegistrationError("*", "global key capture is not available on this system")
        self.on_key = on_key
        self.listener = None
        # e.g. "pynput.keyboard._xorg" -> "xorg"
        self.backend = keyboard.Listener.__module__.rsplit(".", 1)[-1].lstrip("_")
        self.extended_keys = extended_key_codes(self.backend)
        self.extended_names = {vk: name for name, vk in self.extended_keys.items()}

    def supports(self, name):
        """Check that the platform knows the key"""
        if len(name) == 1:
            return True
        return hasattr(keyboard.Key, name) or name in self.extended_keys

    def key_name(self, key):
        """Normalized name of a pressed key, or "" if it cannot be named"""
        if isinstance(key, keyboard.Key):
            return key.name
        vk = getattr(key, "vk", None)
        if vk in self.extended_names:
            return self.extended_names[vk]
        return (getattr(key, "char", None) or "").lower()

    def _on_press(self, key):
        try:
            name = self.key_name(key)
            if name:
                self.on_key(name)
        except Exception as e:
            logger.error(f"Error handling key press {key}: {e}")

    def start(self):
        self.listener = keyboard.Listener(on_press=self._on_press)
        self.listener.daemon = True
        self.listener.start()
        logger.info("Global key listener started")

    def stop(self):
        if self.listener:
            self.listener.stop()
            self.listener = None
            logger.info("Global key listener stopped")


class ShortcutManager:
    """Registry of global key bindings dispatched from a single key listener"""

    def __init__(self, listener_factory=PynputKeyListener):
        """
        Args:
            listener_factory (callable): Builds the key listener from a key callback
        """
        self.listener_factory = listener_factory
        self.listener = None
        self.bindings = {}
        self.lock = threading.Lock()

    def register(self, key, callback):
        """
        Bind a key to a callback

        Raises:
            ShortcutRegistrationError: If the key is unknown, already bound,
                or global capture is unavailable
        """
        name = normalize_key(key)
        with self.lock:
            if name in self.bindings:
                raise ShortcutRegistrationError(key, "key is already bound")

            if self.listener is None:
                try:
                    listener = self.listener_factory(self.dispatch)
                    listener.start()
                except ShortcutRegistrationError:
                    raise
                except Exception as e:
                    raise ShortcutRegistrationError(key, f"cannot start key listener: {e}") from e
                self.listener = listener

            if not self.listener.supports(name):
                raise ShortcutRegistrationError(key, "key is not available on this keyboard backend")

            self.bindings[name] = callback
        logger.debug(f"Shortcut registered: {key}")

    def dispatch(self, name):
        """Run the callback bound to a key name, if any"""
        with self.lock:
            callback = self.bindings.get(name)
        if callback is None:
            return False
        try:
            callback()
        except Exception as e:
            logger.error(f"Error in shortcut {name}: {e}")
        return True

    def is_registered(self, key):
        return normalize_key(key) in self.bindings

    def unregister_all(self):
        """Release every binding and stop the listener"""
        with self.lock:
            count = len(self.bindings)
            self.bindings.clear()
            listener, self.listener = self.listener, None
        if listener is not None:
            listener.stop()
        logger.info(f"Global shortcuts unregistered ({count})")
