#!/usr/bin/env python3
"""
Main entry point for the PC Audio Controller application.
"""

import sys
import argparse
import logging
from audiocontrol.app import AudioControlApp, ROLES
from audiocontrol.constants import DEFAULT_CONFIG_FILE
from audiocontrol import __version__

# Set up basic logging before application starts
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(levelname)s - %(message)s",
    datefmt="%H:%M:%S",
)

logger = logging.getLogger(__name__)


def print_banner():
    """Print application banner"""
    banner = f"""
PC Audio Controller v{__version__}

Shortcuts (defaults):
  F13/F14  Music Player +/-      F15/F16  Browser +/-
  F17/F18  System Sounds +/-     F19/F20  Games +/-
  F21      Mute/unmute all       F22      Reset all volumes
"""
    print(banner)


def build_parser():
    parser = argparse.ArgumentParser(
        description="PC Audio Controller - per-source volume sliders and global shortcuts",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s                               # Authority and window on this machine
  %(prog)s --backend mock                # Run without touching the system volume
  %(prog)s --transport mqtt --role authority
  %(prog)s --transport mqtt --role display

Configuration:
  The application uses a JSON configuration file for settings.
  If no config file exists, a default one will be created.
        """,
    )

    parser.add_argument(
        "--config",
        "-c",
        default=DEFAULT_CONFIG_FILE,
        help=f"Configuration file path (default: {DEFAULT_CONFIG_FILE})",
    )
    parser.add_argument(
        "--role",
        choices=ROLES,
        default="all",
        help="Process role: both sides, the state authority only, or the window only",
    )
    parser.add_argument("--transport", choices=("local", "mqtt"), help="Override the configured transport")
    parser.add_argument(
        "--backend", choices=("auto", "windows", "pulse", "mock"), help="Override the volume backend"
    )
    parser.add_argument("--no-tray", action="store_true", help="Disable system tray interface")
    parser.add_argument("--debug", action="store_true", help="Enable debug logging")
    parser.add_argument(
        "--quiet", "-q", action="store_true", help="Suppress banner and reduce console output"
    )
    parser.add_argument("--version", action="version", version=f"PC Audio Controller v{__version__}")
    return parser


def collect_overrides(args):
    """Translate command line flags into configuration overrides"""
    overrides = {}
    if args.transport:
        overrides["transport.type"] = args.transport
    if args.backend:
        overrides["audio.backend"] = args.backend
    if args.debug:
        overrides["settings.debug"] = True
    if args.no_tray:
        overrides["settings.enable_tray"] = False
    if args.quiet and not args.debug:
        overrides["settings.log_level"] = "WARNING"
    return overrides


def main(argv=None):
    """Main entry point"""
    parser = build_parser()
    args = parser.parse_args(argv)

    if not args.quiet:
        print_banner()

    try:
        app = AudioControlApp(config_file=args.config, role=args.role, overrides=collect_overrides(args))
        logger.info(f"Configuration file: {args.config}")
        logger.info(f"Role: {args.role}")

        if app.start(enable_tray=not args.no_tray):
            return 0
        logger.error("Application failed to start")
        return 1

    except KeyboardInterrupt:
        logger.info("Application interrupted by user")
        return 0

    except PermissionError as e:
        logger.error(f"Permission denied: {e}")
        return 1

    except ImportError as e:
        logger.error(f"Missing required dependency: {e}")
        logger.info("Please install required packages: pip install -e .")
        return 1

    except Exception as e:
        logger.error(f"Fatal error: {e}")
        if args.debug:
            import traceback

            logger.error(f"Traceback: {traceback.format_exc()}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
