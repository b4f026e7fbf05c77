"""
System volume backends.

Every backend exposes the same four calls used by the state authority:
get_volume, set_volume, get_muted and set_muted. All sources share the one
master volume these control.
"""

import sys
import logging
import threading
from .constants import DEFAULT_VOLUME, MIN_VOLUME, MAX_VOLUME
from .exceptions import ExternalApiError

logger = logging.getLogger(__name__)


class VolumeController:
    """Interface of the system volume API"""

    name = "base"

    def get_volume(self):
        """Return the master volume (0-100)"""
        raise NotImplementedError

    def set_volume(self, level):
        """Set the master volume and return the accepted value"""
        raise NotImplementedError

    def get_muted(self):
        raise NotImplementedError

    def set_muted(self, muted):
        """Set the master mute flag and return the accepted value"""
        raise NotImplementedError

    def get_audio_device_info(self):
        """Get information about the current audio device"""
        try:
            return {
                "backend": self.name,
                "current_volume": self.get_volume(),
                "is_muted": self.get_muted()
            }
        except ExternalApiError as e:
            logger.error(f"Error getting audio device info: {e}")
            return {"backend": self.name}

    def cleanup(self):
        """Release backend resources"""


class WindowsVolumeController(VolumeController):
    """Master volume through the Windows Core Audio API (pycaw)"""

    name = "windows"

    def __init__(self):
        self.devices = None
        self.volume = None
        self._initialize_audio()
        logger.info("Windows volume controller initialized successfully")

    def _initialize_audio(self):
        """Initialize audio interface"""
        try:
            from ctypes import cast, POINTER
            from comtypes import CLSCTX_ALL
            from pycaw.pycaw import AudioUtilities, IAudioEndpointVolume

            # Get default audio device
            self.devices = AudioUtilities.GetSpeakers()
            endpoint = getattr(self.devices, "EndpointVolume", None)
            if endpoint is None:
                interface = self.devices.Activate(IAudioEndpointVolume._iid_, CLSCTX_ALL, None)
                endpoint = cast(interface, POINTER(IAudioEndpointVolume))
            self.volume = endpoint

            logger.info(f"Current system volume: {self.get_volume()}%")

        except Exception as e:
            logger.error(f"Failed to initialize audio interface: {e}")
            raise ExternalApiError(f"Windows audio interface unavailable: {e}") from e

    def get_volume(self):
        try:
            return int(round(self.volume.GetMasterVolumeLevelScalar() * 100))
        except Exception as e:
            logger.error(f"Error getting volume: {e}")
            raise ExternalApiError(f"Could not read system volume: {e}") from e

    def set_volume(self, level):
        try:
            # Convert percentage to scalar (0.0 - 1.0)
            self.volume.SetMasterVolumeLevelScalar(level / 100.0, None)
            logger.debug(f"Volume set to {level}%")
            return level
        except Exception as e:
            logger.error(f"Error setting volume: {e}")
            raise ExternalApiError(f"Could not set system volume: {e}") from e

    def get_muted(self):
        try:
            return bool(self.volume.GetMute())
        except Exception as e:
            logger.error(f"Error checking mute status: {e}")
            raise ExternalApiError(f"Could not read mute state: {e}") from e

    def set_muted(self, muted):
        try:
            self.volume.SetMute(1 if muted else 0, None)
            logger.info(f"Audio {'muted' if muted else 'unmuted'}")
            return bool(muted)
        except Exception as e:
            logger.error(f"Error setting mute state: {e}")
            raise ExternalApiError(f"Could not set mute state: {e}") from e

    def get_audio_device_info(self):
        info = super().get_audio_device_info()
        info["device_name"] = str(self.devices)
        return info


class PulseVolumeController(VolumeController):
    """Master volume of the default PulseAudio/PipeWire sink (pulsectl)"""

    name = "pulse"

    def __init__(self, client_name="audiocontrol"):
        self._client_name = client_name
        self._pulse = None
        self._lock = threading.Lock()
        try:
            self._pulse_connect()
        except Exception as e:
            logger.error(f"Failed to connect to PulseAudio: {e}")
            raise ExternalApiError(f"PulseAudio unavailable: {e}") from e
        logger.info(f"Pulse volume controller initialized ({self._default_sink().name})")

    def _pulse_connect(self):
        import pulsectl

        if self._pulse is None:
            self._pulse = pulsectl.Pulse(self._client_name)
        return self._pulse

    def _default_sink(self):
        pulse = self._pulse_connect()
        return pulse.get_sink_by_name(pulse.server_info().default_sink_name)

    def get_volume(self):
        try:
            with self._lock:
                sink = self._default_sink()
                return int(round(self._pulse.volume_get_all_chans(sink) * 100))
        except Exception as e:
            logger.error(f"Error getting volume: {e}")
            raise ExternalApiError(f"Could not read system volume: {e}") from e

    def set_volume(self, level):
        try:
            with self._lock:
                sink = self._default_sink()
                self._pulse.volume_set_all_chans(sink, level / 100.0)
            logger.debug(f"Volume set to {level}%")
            return level
        except Exception as e:
            logger.error(f"Error setting volume: {e}")
            raise ExternalApiError(f"Could not set system volume: {e}") from e

    def get_muted(self):
        try:
            with self._lock:
                return bool(self._default_sink().mute)
        except Exception as e:
            logger.error(f"Error checking mute status: {e}")
            raise ExternalApiError(f"Could not read mute state: {e}") from e

    def set_muted(self, muted):
        try:
            with self._lock:
                self._pulse.mute(self._default_sink(), bool(muted))
            logger.info(f"Audio {'muted' if muted else 'unmuted'}")
            return bool(muted)
        except Exception as e:
            logger.error(f"Error setting mute state: {e}")
            raise ExternalApiError(f"Could not set mute state: {e}") from e

    def cleanup(self):
        with self._lock:
            if self._pulse is not None:
                self._pulse.close()
                self._pulse = None
        logger.info("Pulse volume controller cleaned up")


class MockVolumeController(VolumeController):
    """In-memory stand-in used when no system volume API is reachable"""

    name = "mock"

    def __init__(self, volume=DEFAULT_VOLUME, muted=False):
        self.volume = volume
        self.muted = muted
        logger.warning("Using mock volume controller - system volume will not change")

    def get_volume(self):
        return self.volume

    def set_volume(self, level):
        self.volume = max(MIN_VOLUME, min(MAX_VOLUME, int(level)))
        logger.debug(f"Mock volume set to {self.volume}%")
        return self.volume

    def get_muted(self):
        return self.muted

    def set_muted(self, muted):
        self.muted = bool(muted)
        return self.muted


BACKENDS = {
    "windows": WindowsVolumeController,
    "pulse": PulseVolumeController,
    "mock": MockVolumeController
}


def create_volume_controller(backend="auto"):
    """
    Create the volume backend named in the configuration

    Args:
        backend (str): "auto", "windows", "pulse" or "mock". "auto" picks the
            platform backend and falls back to the mock when it cannot start.

    Returns:
        VolumeController: Ready backend

    Raises:
        ExternalApiError: If an explicitly requested backend cannot start
    """
    if backend != "auto":
        try:
            factory = BACKENDS[backend]
        except KeyError:
            raise ExternalApiError(f"Unknown volume backend: {backend}") from None
        return factory()

    platform_backend = "windows" if sys.platform.startswith("win") else "pulse"
    try:
        return BACKENDS[platform_backend]()
    except ExternalApiError as e:
        logger.warning(f"{platform_backend} volume backend unavailable ({e}), falling back to mock")
        return MockVolumeController()
