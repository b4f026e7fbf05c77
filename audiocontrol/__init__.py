"""
PC Audio Controller
===================

Per-source volume sliders and global keyboard shortcuts driving the system
master volume.

Features:
- Logical audio sources (music, browser, system sounds, games)
- Global shortcuts that work without window focus
- Single state authority process, display process mirrors its state
- Local (multiprocessing) or MQTT transport between the two
- System tray integration (optional)
"""

__version__ = "1.0.0"
