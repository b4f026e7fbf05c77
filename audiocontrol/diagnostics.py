"""
Logging setup and runtime diagnostics for the audio controller.
"""

import json
import os
import time
import platform
import threading
import logging
import logging.handlers
from datetime import datetime
import psutil
from . import messages

logger = logging.getLogger(__name__)


def role_log_file(log_file, process_role):
    """
    Log file for one process

    RotatingFileHandler cannot share a file between processes, so every role
    but the authority writes next to it: audio_control.log -> audio_control-display.log
    """
    if process_role == "authority":
        return log_file
    root, ext = os.path.splitext(log_file)
    return f"{root}-{process_role}{ext}"


class DiagnosticLogger:
    """Logging with file rotation, error event counters and an uptime summary"""

    def __init__(self, config_manager, process_role="authority"):
        """
        Initialize diagnostic logger

        Args:
            config_manager: Configuration manager instance
            process_role (str): Name of this process, added to the log format
        """
        self.config = config_manager
        self.process_role = process_role
        self.error_counts = {}
        self.diagnostics = {}
        self.start_time = time.time()
        self.lock = threading.Lock()

        self.setup_logging()
        logger.info("Diagnostic logger initialized")

    def setup_logging(self):
        """Setup logging with file rotation"""
        settings = self.config.get_settings()

        log_level = settings.get("log_level", "INFO")
        log_file = role_log_file(settings.get("log_file", "audio_control.log"), self.process_role)
        max_size = settings.get("max_log_size_mb", 10) * 1024 * 1024
        backup_count = settings.get("backup_log_count", 3)
        debug_mode = settings.get("debug", False)

        formatter = logging.Formatter(
            f'%(asctime)s - {self.process_role} - %(name)s - %(levelname)s - %(funcName)s:%(lineno)d - %(message)s',
            datefmt='%Y-%m-%d %H:%M:%S'
        )
        console_formatter = logging.Formatter(
            '%(asctime)s - %(levelname)s - %(message)s',
            datefmt='%H:%M:%S'
        )

        if debug_mode:
            log_level_obj = logging.DEBUG
        else:
            log_level_obj = getattr(logging, log_level.upper(), logging.INFO)

        root_logger = logging.getLogger()
        root_logger.setLevel(log_level_obj)
        root_logger.handlers.clear()

        console_handler = logging.StreamHandler()
        console_handler.setFormatter(console_formatter)
        console_handler.setLevel(log_level_obj)
        root_logger.addHandler(console_handler)

        try:
            file_handler = logging.handlers.RotatingFileHandler(
                log_file,
                maxBytes=max_size,
                backupCount=backup_count,
                encoding='utf-8'
            )
            file_handler.setFormatter(formatter)
            file_handler.setLevel(log_level_obj)
            root_logger.addHandler(file_handler)
        except OSError as e:
            logger.error(f"Cannot open log file {log_file}, logging to console only: {e}")

        self.log_system_info()
        logger.info(f"Logging initialized - Level: {logging.getLevelName(log_level_obj)}, File: {log_file}")

    def log_system_info(self):
        """Log system information at startup"""
        try:
            system_info = {
                "platform": platform.platform(),
                "python_version": platform.python_version(),
                "cpu_count": psutil.cpu_count(),
                "memory_total_gb": round(psutil.virtual_memory().total / (1024**3), 2),
                "boot_time": datetime.fromtimestamp(psutil.boot_time()).isoformat()
            }
            logger.info(f"System Information: {json.dumps(system_info)}")
        except Exception as e:
            logger.error(f"Error logging system info: {e}")

    def log_error_event(self, error_type, error_message, context=None):
        """Count an error event and log it with context"""
        with self.lock:
            self.error_counts[error_type] = self.error_counts.get(error_type, 0) + 1
            error_data = {
                "timestamp": time.time(),
                "error_type": error_type,
                "message": str(error_message),
                "count": self.error_counts[error_type],
                "context": context or {}
            }
        logger.debug(f"Error event: {json.dumps(error_data)}")

    def on_notification(self, message):
        """Authority subscriber: count every error sent to the display"""
        if message.get("type") == messages.ERROR:
            self.log_error_event("notification", message.get("payload", {}).get("message", ""))

    def log_diagnostic(self, category, data):
        """Keep the last 100 diagnostic entries per category"""
        with self.lock:
            entries = self.diagnostics.setdefault(category, [])
            entries.append({"timestamp": time.time(), "data": data})
            if len(entries) > 100:
                del entries[:-100]
        logger.debug(f"Diagnostic logged - {category}: {data}")

    def get_diagnostic_summary(self):
        """Get uptime, error counters and process information"""
        with self.lock:
            uptime = time.time() - self.start_time
            summary = {
                "timestamp": time.time(),
                "uptime_seconds": uptime,
                "uptime_formatted": self._format_uptime(uptime),
                "error_counts": self.error_counts.copy(),
                "diagnostic_categories": list(self.diagnostics.keys())
            }

        try:
            process = psutil.Process()
            summary["process_info"] = {
                "memory_usage_mb": round(process.memory_info().rss / 1024 / 1024, 2),
                "thread_count": threading.active_count()
            }
        except psutil.Error as e:
            logger.error(f"Error reading process info: {e}")
        return summary

    def _format_uptime(self, seconds):
        """Format uptime in human readable format"""
        days = int(seconds // 86400)
        hours = int((seconds % 86400) // 3600)
        minutes = int((seconds % 3600) // 60)
        secs = int(seconds % 60)
        return f"{days}d {hours}h {minutes}m {secs}s"

    def cleanup(self):
        """Log the final diagnostic summary"""
        summary = self.get_diagnostic_summary()
        logger.info(f"Final diagnostic summary: {json.dumps(summary)}")
