"""
Main application coordinator for the audio controller.

The authority process owns the volume backend, global shortcuts, tray icon
and the source table; it spawns the display process running the control
surface window. The two only talk through the intent and notification
channels.
"""

import sys
import logging
import threading
import multiprocessing
from .config import ConfigManager
from .constants import DEFAULT_CONFIG_FILE, TRAY_AVAILABLE
from .diagnostics import DiagnosticLogger
from .volume_controller import create_volume_controller
from .shortcuts import ShortcutManager
from .authority import StateAuthority
from .channels import QueueChannel, ChannelListener
from .tray_ui import SystemTrayApp
from . import messages

logger = logging.getLogger(__name__)

ROLES = ("all", "authority", "display")


def apply_overrides(config_manager, overrides):
    """Apply command line overrides (dot path -> value) without saving them"""
    for key_path, value in (overrides or {}).items():
        config_manager.set(key_path, value)
        logger.info(f"Override: {key_path} = {value}")


def display_main(config_file, overrides=None, intent_queue=None, notify_queue=None):
    """
    Entry point of the display process

    Args:
        config_file (str): Configuration file path
        overrides (dict): Command line overrides
        intent_queue: Queue the control surface sends intents on (local transport)
        notify_queue: Queue notifications arrive on (local transport)

    Returns:
        int: Qt event loop exit code
    """
    config_manager = ConfigManager(config_file)
    apply_overrides(config_manager, overrides)
    diagnostic_logger = DiagnosticLogger(config_manager, process_role="display")

    if config_manager.get_transport() == "mqtt":
        from .mqtt_client import create_mqtt_channels
        inbound, outbound = create_mqtt_channels(config_manager.get_mqtt_config(), "display")
    else:
        if intent_queue is None or notify_queue is None:
            logger.error("The display role on its own needs the mqtt transport")
            diagnostic_logger.cleanup()
            return 1
        inbound = QueueChannel(notify_queue, "notifications")
        outbound = QueueChannel(intent_queue, "intents")

    # PySide6 is only needed in this process
    from .window import run_display

    try:
        return run_display(config_manager.get_ui_settings(), config_manager.get_shortcut_settings(),
                           inbound, outbound, argv=sys.argv[:1])
    finally:
        inbound.close()
        if outbound is not inbound:
            outbound.close()
        diagnostic_logger.cleanup()


class AudioControlApp:
    """Main application class that coordinates all components"""

    def __init__(self, config_file=DEFAULT_CONFIG_FILE, role="all", overrides=None):
        """
        Initialize the application

        Args:
            config_file (str): Path to configuration file
            role (str): "all" (authority + spawned display), "authority" or "display"
            overrides (dict): Configuration overrides from the command line
        """
        if role not in ROLES:
            raise ValueError(f"Unknown role: {role}")
        self.config_file = config_file
        self.role = role
        self.overrides = overrides or {}
        self.running = False
        self.stop_event = threading.Event()

        # Component instances
        self.config_manager = None
        self.diagnostic_logger = None
        self.volume_controller = None
        self.shortcut_manager = None
        self.authority = None
        self.inbound = None
        self.outbound = None
        self.intent_listener = None
        self.system_tray = None

        # Display process (local transport / role "all")
        self.mp_context = multiprocessing.get_context("spawn")
        self.intent_queue = None
        self.notify_queue = None
        self.display_process = None
        self.display_watcher = None

        logger.info("Audio Control Application initializing...")

    def initialize_components(self):
        """Initialize all authority-side components"""
        try:
            self.config_manager = ConfigManager(self.config_file)
            apply_overrides(self.config_manager, self.overrides)
            logger.info("Configuration manager initialized")

            self.diagnostic_logger = DiagnosticLogger(self.config_manager, process_role="authority")

            backend = self.config_manager.get_audio_settings().get("backend", "auto")
            self.volume_controller = create_volume_controller(backend)
            logger.info(f"Volume controller initialized ({self.volume_controller.name})")

            if self.config_manager.get("shortcuts.enabled", True):
                self.shortcut_manager = ShortcutManager()

            self.authority = StateAuthority.from_config(
                self.config_manager, self.volume_controller, self.shortcut_manager)
            self.authority.subscribe(self.diagnostic_logger.on_notification)

            self._initialize_channels()

            settings = self.config_manager.get_settings()
            if settings.get("enable_tray", True) and TRAY_AVAILABLE:
                self.system_tray = SystemTrayApp(self.authority, self.config_manager, on_exit=self.request_stop)
                logger.info("System tray initialized")
            elif settings.get("enable_tray", True):
                logger.warning("System tray requested but not available")

            logger.info("All components initialized successfully")
            return True

        except Exception as e:
            logger.error(f"Error initializing components: {e}")
            if self.diagnostic_logger:
                self.diagnostic_logger.log_error_event("initialization_error", str(e))
            return False

    def _initialize_channels(self):
        if self.config_manager.get_transport() == "mqtt":
            from .mqtt_client import create_mqtt_channels
            self.inbound, self.outbound = create_mqtt_channels(self.config_manager.get_mqtt_config(), "authority")
        else:
            self.intent_queue = self.mp_context.Queue()
            self.notify_queue = self.mp_context.Queue()
            self.inbound = QueueChannel(self.intent_queue, "intents")
            self.outbound = QueueChannel(self.notify_queue, "notifications")

        self.authority.subscribe(self.outbound.send)
        self.intent_listener = ChannelListener(self.inbound, self.authority.handle_intent, name="intent-listener")

    def start(self, enable_tray=True):
        """
        Start the application; blocks until it is asked to stop

        Args:
            enable_tray (bool): Whether to enable system tray interface
        """
        if self.role == "display":
            return display_main(self.config_file, self.overrides) == 0

        try:
            if self.config_manager is None and not self.initialize_components():
                logger.error("Failed to initialize application components")
                return False

            self.running = True
            logger.info("Starting Audio Control Application...")

            # Spawn the display before any listener threads exist
            if self.role == "all":
                self._start_display_process()

            self.intent_listener.start()
            self.authority.register_shortcuts()
            startup = self.get_status()
            startup.update({
                "transport": self.config_manager.get_transport(),
                "device": self.volume_controller.get_audio_device_info(),
                "shortcuts": len(self.shortcut_manager.bindings) if self.shortcut_manager else 0
            })
            self.diagnostic_logger.log_diagnostic("startup", startup)
            logger.info(f"Components: {startup['components']}")

            if enable_tray and self.system_tray and self.system_tray.is_available():
                logger.info("Starting system tray interface...")
                # Run tray in main thread (blocks until quit)
                self.system_tray.start()
            else:
                logger.info("Running without system tray. Press Ctrl+C to quit.")
                self._wait_for_stop()

            return True

        except KeyboardInterrupt:
            logger.info("Application interrupted by user")
            return True
        except Exception as e:
            logger.error(f"Error starting application: {e}")
            if self.diagnostic_logger:
                self.diagnostic_logger.log_error_event("startup_error", str(e))
            return False
        finally:
            self.stop()

    def _start_display_process(self):
        self.display_process = self.mp_context.Process(
            target=display_main,
            args=(self.config_file, self.overrides, self.intent_queue, self.notify_queue),
            name="audiocontrol-display",
            daemon=True
        )
        self.display_process.start()
        logger.info(f"Display process started (pid {self.display_process.pid})")

        self.display_watcher = threading.Thread(target=self._watch_display, daemon=True)
        self.display_watcher.start()

    def _watch_display(self):
        """Closing the window ends the application"""
        self.display_process.join()
        if self.running:
            logger.info(f"Display process exited (code {self.display_process.exitcode}), shutting down")
            self.request_stop()

    def _wait_for_stop(self):
        while not self.stop_event.wait(1):
            pass

    def request_stop(self):
        """Ask the blocking start() call to return"""
        self.stop_event.set()
        if self.system_tray and self.system_tray.is_running():
            self.system_tray.stop()

    def stop(self):
        """Stop the application gracefully"""
        if not self.running and self.authority is None:
            return
        logger.info("Stopping Audio Control Application...")
        self.running = False
        self.stop_event.set()

        if self.authority:
            self.authority.unregister_all_shortcuts()
            self.authority.broadcast(messages.SHUTDOWN)

        if self.system_tray:
            self.system_tray.stop()

        if self.intent_listener:
            self.intent_listener.stop()

        if self.display_process and self.display_process.is_alive():
            self.display_process.join(timeout=5)
            if self.display_process.is_alive():
                logger.warning("Display process did not exit, terminating")
                self.display_process.terminate()

        for channel in {id(c): c for c in (self.inbound, self.outbound) if c is not None}.values():
            channel.close()

        if self.volume_controller:
            self.volume_controller.cleanup()

        if self.diagnostic_logger:
            summary = self.diagnostic_logger.get_diagnostic_summary()
            logger.info(f"Application shutdown - Uptime: {summary['uptime_formatted']}")
            self.diagnostic_logger.cleanup()

        self.authority = None
        logger.info("Application stopped successfully")

    def get_status(self):
        """Get current application status"""
        status = {
            "running": self.running,
            "role": self.role,
            "components": {
                "volume_controller": self.volume_controller.name if self.volume_controller else None,
                "authority": self.authority is not None,
                "display_process": bool(self.display_process and self.display_process.is_alive()),
                "system_tray": bool(self.system_tray and self.system_tray.is_running())
            }
        }
        if self.authority:
            status["sources"] = self.authority.get_all_sources()
            status["muted"] = self.authority.is_muted()
        if hasattr(self.inbound, "get_connection_status"):
            status["mqtt"] = self.inbound.get_connection_status()
        return status
