"""
Error types raised by the audio controller.

None of these are fatal: they are caught where an intent, shortcut or tray
action enters the state authority, logged, and sent to the display as an
``error`` notification.
"""


class AudioControlError(Exception):
    """Base class for all non-fatal audio controller errors"""


class UnknownSourceError(AudioControlError):
    """An intent referenced a source id that is not in the table"""

    def __init__(self, source_id):
        self.source_id = source_id
        super().__init__(f"Unknown audio source: {source_id}")


class InvalidVolumeError(AudioControlError):
    """A volume value was not an integer in 0..100"""

    def __init__(self, volume):
        self.volume = volume
        super().__init__(f"Invalid volume value: {volume}")


class ExternalApiError(AudioControlError):
    """The system volume API rejected or failed a call"""


class ShortcutRegistrationError(AudioControlError):
    """A global key binding could not be acquired"""

    def __init__(self, key, reason):
        self.key = key
        self.reason = reason
        super().__init__(f"Could not register shortcut {key}: {reason}")


class MessageFormatError(AudioControlError):
    """A channel message could not be decoded or is missing fields"""
