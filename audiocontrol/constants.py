"""
Constants and configuration defaults for the audio controller.
"""

# Volume limits
MIN_VOLUME = 0
MAX_VOLUME = 100
DEFAULT_VOLUME = 50  # Every source starts here and "reset all" returns here
DEFAULT_VOLUME_STEP = 5  # Change applied by one increase/decrease shortcut

DEFAULT_CONFIG_FILE = "audio_control_config.json"

# Audio sources (fixed set, built once at startup)
DEFAULT_SOURCES = [
    {"id": "music", "name": "Music Player", "key_increase": "F13", "key_decrease": "F14"},
    {"id": "browser", "name": "Browser", "key_increase": "F15", "key_decrease": "F16"},
    {"id": "system", "name": "System Sounds", "key_increase": "F17", "key_decrease": "F18"},
    {"id": "game", "name": "Games", "key_increase": "F19", "key_decrease": "F20"}
]

# Reserved global actions
DEFAULT_MUTE_ALL_KEY = "F21"
DEFAULT_RESET_ALL_KEY = "F22"

# Display timings (seconds)
DEFAULT_STATUS_TIMEOUT = 3.0
DEFAULT_PULSE_DURATION = 0.3
DEFAULT_DEBOUNCE_INTERVAL = 0.1
DEFAULT_POLL_INTERVAL = 0.05

# MQTT transport defaults
DEFAULT_MQTT_BROKER = "localhost"
DEFAULT_MQTT_PORT = 1883
DEFAULT_MQTT_CLIENT_ID = "PCAudioController"
MQTT_TOPICS = {
    "intent": "audiocontrol/intent",
    "notify": "audiocontrol/notify"
}

# Default configuration structure
DEFAULT_CONFIG = {
    "sources": DEFAULT_SOURCES,
    "shortcuts": {
        "enabled": True,
        "step": DEFAULT_VOLUME_STEP,
        "mute_all": DEFAULT_MUTE_ALL_KEY,
        "reset_all": DEFAULT_RESET_ALL_KEY
    },
    "audio": {
        "backend": "auto",
        "default_volume": DEFAULT_VOLUME
    },
    "transport": {
        "type": "local"
    },
    "mqtt": {
        "broker": DEFAULT_MQTT_BROKER,
        "port": DEFAULT_MQTT_PORT,
        "username": "",
        "password": "",
        "client_id": DEFAULT_MQTT_CLIENT_ID,
        "keepalive": 60,
        "qos": 1,
        "topics": MQTT_TOPICS
    },
    "ui": {
        "window_width": 900,
        "window_height": 700,
        "status_timeout": DEFAULT_STATUS_TIMEOUT,
        "pulse_duration": DEFAULT_PULSE_DURATION,
        "live_update": False,
        "debounce_interval": DEFAULT_DEBOUNCE_INTERVAL,
        "poll_interval": DEFAULT_POLL_INTERVAL
    },
    "settings": {
        "debug": False,
        "enable_tray": True,
        "log_level": "INFO",
        "log_file": "audio_control.log",
        "max_log_size_mb": 10,
        "backup_log_count": 3
    }
}

# Configuration validation schema
CONFIG_SCHEMA = {
    "shortcuts": {
        "enabled": {"type": bool},
        "step": {"type": int, "min": 1, "max": 50},
        "mute_all": {"type": str},
        "reset_all": {"type": str}
    },
    "audio": {
        "backend": {"type": str, "choices": ["auto", "windows", "pulse", "mock"]},
        "default_volume": {"type": int, "min": MIN_VOLUME, "max": MAX_VOLUME}
    },
    "transport": {
        "type": {"type": str, "choices": ["local", "mqtt"]}
    },
    "mqtt": {
        "broker": {"type": str, "required": True},
        "port": {"type": int, "min": 1, "max": 65535},
        "username": {"type": str},
        "password": {"type": str},
        "client_id": {"type": str, "required": True},
        "keepalive": {"type": int, "min": 10, "max": 3600},
        "qos": {"type": int, "min": 0, "max": 2},
        "topics": {"type": dict}
    },
    "ui": {
        "window_width": {"type": int, "min": 300, "max": 4000},
        "window_height": {"type": int, "min": 200, "max": 4000},
        "status_timeout": {"type": (int, float), "min": 0.5, "max": 60.0},
        "pulse_duration": {"type": (int, float), "min": 0.05, "max": 5.0},
        "live_update": {"type": bool},
        "debounce_interval": {"type": (int, float), "min": 0.01, "max": 2.0},
        "poll_interval": {"type": (int, float), "min": 0.01, "max": 1.0}
    },
    "settings": {
        "debug": {"type": bool},
        "enable_tray": {"type": bool},
        "log_level": {"type": str, "choices": ["DEBUG", "INFO", "WARNING", "ERROR"]},
        "log_file": {"type": str},
        "max_log_size_mb": {"type": int, "min": 1, "max": 100},
        "backup_log_count": {"type": int, "min": 1, "max": 10}
    }
}

# Optional dependency availability flags
TRAY_AVAILABLE = False
HOTKEYS_AVAILABLE = False

try:
    import pystray
    from PIL import Image, ImageDraw
    TRAY_AVAILABLE = True
except Exception:  # Xlib backends can fail with non-import errors when headless
    pass

try:
    # pynput refuses to import without a usable keyboard backend (e.g. no display)
    from pynput import keyboard
    HOTKEYS_AVAILABLE = True
except Exception:
    pass
