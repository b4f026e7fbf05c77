"""
System tray interface for the state authority process.
"""

import logging
from .constants import TRAY_AVAILABLE
from .exceptions import ExternalApiError
from . import messages

# Optional imports for system tray
if TRAY_AVAILABLE:
    import pystray
    from PIL import Image, ImageDraw

logger = logging.getLogger(__name__)


class SystemTrayApp:
    """Tray icon offering the global actions and a volume summary"""

    def __init__(self, authority, config_manager, on_exit=None):
        """
        Initialize system tray application

        Args:
            authority: StateAuthority instance
            config_manager: Configuration manager instance
            on_exit (callable): Called when Exit is chosen from the menu
        """
        self.authority = authority
        self.config_manager = config_manager
        self.on_exit = on_exit
        self.icon = None
        self.running = False

        settings = config_manager.get_settings()
        self.enable_tray = settings.get("enable_tray", True)

        if not TRAY_AVAILABLE:
            logger.warning("System tray not available - pystray/PIL not installed")
            return

        if not self.enable_tray:
            logger.info("System tray disabled in configuration")
            return

        self.create_icon()
        self.authority.subscribe(self.on_notification)
        logger.info("System tray application initialized")

    def build_menu_items(self):
        """Menu entries: global actions, per-source volume summary, exit"""
        volume_items = [
            pystray.MenuItem(self._volume_label(source_id), None, enabled=False)
            for source_id in self.authority.sources
        ]
        return (
            pystray.MenuItem("Mute/Unmute All", self.toggle_mute),
            pystray.MenuItem("Reset All Volumes", self.reset_volumes),
            pystray.Menu.SEPARATOR,
            pystray.MenuItem("Volumes", pystray.Menu(*volume_items)),
            pystray.MenuItem("Shortcuts", self.show_shortcuts),
            pystray.Menu.SEPARATOR,
            pystray.MenuItem("Exit", self.quit_application)
        )

    def _volume_label(self, source_id):
        def label(item):
            source = self.authority.sources[source_id]
            return f"{source.name}: {source.volume}%"
        return label

    def create_icon(self):
        """Create system tray icon with dynamic volume indicator"""
        try:
            menu = pystray.Menu(*self.build_menu_items())
            self.icon = pystray.Icon("PCAudioController", self._create_volume_icon(),
                                     "PC Audio Controller", menu)
            logger.info("System tray icon created")
        except Exception as e:
            logger.error(f"Error creating tray icon: {e}")
            self.icon = None

    def _current_volume(self):
        try:
            return self.authority.volume_controller.get_volume()
        except ExternalApiError:
            return 0

    def _create_volume_icon(self):
        """Create icon image with volume level indicator"""
        image = Image.new('RGB', (64, 64), color='blue')
        draw = ImageDraw.Draw(image)

        # Draw speaker base
        draw.rectangle([10, 20, 25, 45], fill='white')  # Speaker body
        draw.polygon([(25, 25), (35, 15), (35, 50), (25, 40)], fill='white')  # Speaker cone

        if self.authority.is_muted():
            # Draw mute indicator (X)
            draw.line([(40, 20), (55, 35)], fill='red', width=3)
            draw.line([(40, 35), (55, 20)], fill='red', width=3)
        else:
            # Draw volume level bars
            bars = int(self._current_volume() / 25)  # 0-4 bars
            for i in range(4):
                x = 40 + i * 4
                height = 5 + i * 3
                y1 = 32 - height // 2
                y2 = 32 + height // 2
                draw.rectangle([x, y1, x + 2, y2], fill='white' if i < bars else 'gray')

        return image

    def update_icon(self):
        """Update tray icon to reflect current volume and mute status"""
        if not self.icon:
            return

        try:
            self.icon.icon = self._create_volume_icon()
            self.icon.update_menu()
            logger.debug("Tray icon updated")
        except Exception as e:
            logger.error(f"Error updating tray icon: {e}")

    def on_notification(self, message):
        """Refresh the icon after any state change"""
        if message["type"] in (messages.VOLUME_UPDATE, messages.VOLUME_UPDATED, messages.MUTE_UPDATE,
                               messages.MUTE_TOGGLED, messages.RESET_VOLUMES):
            self.update_icon()

    def toggle_mute(self, icon=None, item=None):
        """Toggle the global mute"""
        result = self.authority.run_guarded("Error toggling mute", self.authority.toggle_mute_all)
        if result is not None:
            logger.info(f"Audio {'muted' if result['muted'] else 'unmuted'} via tray")

    def reset_volumes(self, icon=None, item=None):
        """Reset every source to the default volume"""
        if self.authority.run_guarded("Error resetting volumes", self.authority.reset_all_volumes) is not None:
            logger.info("Volumes reset via tray")

    def show_shortcuts(self, icon=None, item=None):
        """Log the global shortcut table"""
        for key, description in self.authority.describe_shortcuts().items():
            logger.info(f"  {key}: {description}")

    def quit_application(self, icon=None, item=None):
        """Quit the application"""
        logger.info("Application quit requested via tray")
        self.stop()
        if self.on_exit:
            self.on_exit()

    def start(self):
        """Start system tray interface (blocks until stopped)"""
        if not self.is_available():
            logger.warning("Cannot start system tray - not available")
            return False

        try:
            self.running = True
            logger.info("Starting system tray interface...")
            self.icon.run()
            return True
        except Exception as e:
            logger.error(f"Error starting system tray: {e}")
            return False
        finally:
            self.running = False

    def stop(self):
        """Stop system tray interface"""
        self.running = False
        self.authority.unsubscribe(self.on_notification)
        if self.icon:
            try:
                self.icon.stop()
            except Exception as e:
                logger.error(f"Error stopping system tray: {e}")
        logger.info("System tray interface stopped")

    def is_available(self):
        """Check if system tray is available"""
        return TRAY_AVAILABLE and self.enable_tray and self.icon is not None

    def is_running(self):
        return self.running
