"""
Configuration management for the audio controller.
"""

import copy
import json
import os
import logging
from .constants import DEFAULT_CONFIG, CONFIG_SCHEMA, DEFAULT_CONFIG_FILE

logger = logging.getLogger(__name__)

NUMERIC_TYPES = (int, float, (int, float))


def merge_config(defaults, overrides):
    """Deep merge of two config dicts; dicts merge key by key, anything else replaces"""
    merged = copy.deepcopy(defaults)
    for key, value in overrides.items():
        current = merged.get(key)
        if isinstance(current, dict) and isinstance(value, dict):
            merged[key] = merge_config(current, value)
        else:
            merged[key] = value
    return merged


def check_field(field_path, value, field_schema):
    """
    Check one configuration value against its schema entry

    Returns:
        str: Problem description, or None if the value is acceptable
    """
    if value is None:
        return f"Required field missing: {field_path}" if field_schema.get("required") else None

    expected = field_schema.get("type")
    numeric = expected in NUMERIC_TYPES
    # bool is an int subclass, never accept it for numbers
    if expected and (not isinstance(value, expected) or (numeric and isinstance(value, bool))):
        return f"Invalid type for {field_path}: got {type(value).__name__}"

    if numeric:
        low, high = field_schema.get("min"), field_schema.get("max")
        if low is not None and value < low:
            return f"{field_path} below minimum: {value} < {low}"
        if high is not None and value > high:
            return f"{field_path} above maximum: {value} > {high}"

    choices = field_schema.get("choices")
    if choices and value not in choices:
        return f"{field_path} must be one of {choices}, got {value!r}"
    return None


class ConfigManager:
    """Configuration loading, validation and dot-path access"""

    def __init__(self, config_file=DEFAULT_CONFIG_FILE):
        self.config_file = config_file
        self.validation_errors = []
        self.config = self.load_config()
        self.validate_config()
        logger.info(f"Configuration loaded from {config_file}")

    def load_config(self):
        """Read the JSON file over the defaults; write the defaults out if there is no file"""
        if not os.path.exists(self.config_file):
            config = copy.deepcopy(DEFAULT_CONFIG)
            if self.save_config(config):
                logger.info(f"Default configuration written to {self.config_file}")
            return config

        try:
            with open(self.config_file, 'r') as f:
                return merge_config(DEFAULT_CONFIG, json.load(f))
        except (OSError, ValueError, AttributeError) as e:
            logger.error(f"Cannot read configuration {self.config_file}: {e}")
            logger.warning("Falling back to the default configuration")
            return copy.deepcopy(DEFAULT_CONFIG)

    def validate_config(self):
        """
        Check every schema field, the source list and the key bindings

        Bad values are replaced by their defaults. The problems found are
        logged, stored in validation_errors and returned.
        """
        problems = []

        for section_name, section_schema in CONFIG_SCHEMA.items():
            section = self.config.get(section_name)
            if not isinstance(section, dict):
                problems.append(f"Section {section_name} is not a mapping, using defaults")
                self.config[section_name] = copy.deepcopy(DEFAULT_CONFIG[section_name])
                continue

            for field_name, field_schema in section_schema.items():
                problem = check_field(f"{section_name}.{field_name}", section.get(field_name), field_schema)
                if problem:
                    problems.append(problem)
                    self._restore_default(section_name, field_name)

        problems.extend(self._validate_sources())
        problems.extend(self._validate_key_bindings())

        for problem in problems:
            logger.warning(f"Configuration: {problem}")
        if not problems:
            logger.debug("Configuration is valid")

        self.validation_errors = problems
        return problems

    def _validate_sources(self):
        """Check the audio source list; an unusable list falls back to the defaults"""
        errors = []
        sources = self.config.get("sources")

        if not isinstance(sources, list) or not sources:
            errors.append("sources must be a non-empty list")
            self.config["sources"] = copy.deepcopy(DEFAULT_CONFIG["sources"])
            return errors

        seen = set()
        valid = []
        for index, source in enumerate(sources):
            if not isinstance(source, dict) or not isinstance(source.get("id"), str) or not source.get("id"):
                errors.append(f"sources[{index}] has no id, skipped")
                continue
            if source["id"] in seen:
                errors.append(f"Duplicate source id '{source['id']}', skipped")
                continue
            seen.add(source["id"])
            valid.append(source)

        self.config["sources"] = valid or copy.deepcopy(DEFAULT_CONFIG["sources"])
        return errors

    def _validate_key_bindings(self):
        """Report keys bound to more than one action (registration will refuse the second)"""
        errors = []
        owners = {}

        bindings = []
        for source in self.config.get("sources", []):
            for field in ("key_increase", "key_decrease"):
                if source.get(field):
                    bindings.append((source[field], f"sources.{source['id']}.{field}"))
        for field in ("mute_all", "reset_all"):
            key = self.config.get("shortcuts", {}).get(field)
            if key:
                bindings.append((key, f"shortcuts.{field}"))

        for key, owner in bindings:
            normalized = str(key).strip().lower()
            if normalized in owners:
                errors.append(f"Key {key} bound by both {owners[normalized]} and {owner}")
            else:
                owners[normalized] = owner
        return errors

    def _restore_default(self, section_name, field_name):
        default_value = copy.deepcopy(DEFAULT_CONFIG[section_name][field_name])
        self.config[section_name][field_name] = default_value
        logger.info(f"{section_name}.{field_name} reset to {default_value!r}")

    def save_config(self, config=None):
        """Write the configuration as indented JSON; returns False on failure"""
        try:
            with open(self.config_file, 'w') as f:
                json.dump(config if config is not None else self.config, f, indent=2)
        except (OSError, TypeError) as e:
            logger.error(f"Cannot write configuration {self.config_file}: {e}")
            return False
        logger.debug(f"Configuration written to {self.config_file}")
        return True

    def get(self, key_path, default=None):
        """Get configuration value using dot notation (e.g., 'ui.status_timeout')"""
        value = self.config
        for key in key_path.split('.'):
            if not isinstance(value, dict) or key not in value:
                return default
            value = value[key]
        return value

    def set(self, key_path, value, persist=False):
        """
        Set configuration value using dot notation

        Args:
            key_path (str): e.g. "transport.type"
            value: New value
            persist (bool): Also write the file (command line overrides do not)
        """
        *parents, leaf = key_path.split('.')
        section = self.config
        for key in parents:
            section = section.setdefault(key, {})
        section[leaf] = value
        if persist:
            self.save_config()
        logger.debug(f"Configuration value {key_path} = {value!r}")

    def get_sources(self):
        """Get the audio source definitions"""
        return self.config.get("sources", [])

    def get_shortcut_settings(self):
        return self.config.get("shortcuts", {})

    def get_audio_settings(self):
        return self.config.get("audio", {})

    def get_transport(self):
        """Get the configured transport type ('local' or 'mqtt')"""
        return self.config.get("transport", {}).get("type", "local")

    def get_mqtt_config(self):
        return self.config.get("mqtt", {})

    def get_ui_settings(self):
        return self.config.get("ui", {})

    def get_settings(self):
        """Logging and tray settings"""
        return self.config.get("settings", {})
