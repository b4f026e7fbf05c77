"""
Message contract between the state authority and the control surface.

Every message is a plain dict ``{"type": str, "payload": dict}`` so it can be
put on a multiprocessing queue as-is or sent as JSON over MQTT.
"""

import json
from .exceptions import MessageFormatError

# Intents (control surface -> state authority)
SET_VOLUME = "set-volume"
GET_CURRENT_VOLUMES = "get-current-volumes"
TOGGLE_MUTE = "toggle-mute"
TOGGLE_MUTE_ALL = "toggle-mute-all"
RESET_ALL = "reset-all"

INTENT_TYPES = (SET_VOLUME, GET_CURRENT_VOLUMES, TOGGLE_MUTE, TOGGLE_MUTE_ALL, RESET_ALL)

# Notifications (state authority -> control surface)
AUDIO_SOURCES = "audio-sources"
VOLUME_UPDATE = "volume-update"
VOLUME_UPDATED = "volume-updated"
MUTE_UPDATE = "mute-update"
MUTE_TOGGLED = "mute-toggled"
RESET_VOLUMES = "reset-volumes"
ERROR = "error"
SHUTDOWN = "shutdown"

NOTIFICATION_TYPES = (AUDIO_SOURCES, VOLUME_UPDATE, VOLUME_UPDATED, MUTE_UPDATE,
                      MUTE_TOGGLED, RESET_VOLUMES, ERROR, SHUTDOWN)


def make_message(message_type, payload=None):
    """Build a message dict"""
    return {"type": message_type, "payload": dict(payload or {})}


def encode(message):
    """Serialize a message to a JSON string"""
    return json.dumps(message)


def decode(raw):
    """
    Parse a JSON message and check its shape

    Args:
        raw (str | bytes): Encoded message

    Returns:
        dict: Message with "type" and "payload" keys

    Raises:
        MessageFormatError: If the data is not a valid message
    """
    try:
        if isinstance(raw, bytes):
            raw = raw.decode("utf-8")
        message = json.loads(raw)
    except (TypeError, ValueError) as e:
        raise MessageFormatError(f"Invalid message: {e}") from e
    return validate(message)


def validate(message):
    """Check that a message has a string type and a dict payload"""
    if not isinstance(message, dict) or not isinstance(message.get("type"), str):
        raise MessageFormatError(f"Malformed message: {message!r}")
    payload = message.get("payload", {})
    if payload is None:
        payload = {}
    if not isinstance(payload, dict):
        raise MessageFormatError(f"Malformed payload for {message['type']}: {payload!r}")
    return {"type": message["type"], "payload": payload}
