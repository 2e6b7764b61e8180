"""Centralized settings management for perflog.

Settings Schema:
    {
        "max_stored_sessions": int,       # Completed sessions kept in the store
        "max_storage_bytes": int,         # Estimated byte budget for the store
        "max_operation_duration": float,  # Sanity ceiling for one operation (s)
        "persist_sessions": bool,         # Write completed sessions to disk
    }
"""

import json
import logging
from dataclasses import dataclass, fields
from typing import Any, Dict

from perflog.core.config_paths import ConfigPaths

LOGGER = logging.getLogger(__name__)

DEFAULT_MAX_STORED_SESSIONS = 50
DEFAULT_MAX_STORAGE_BYTES = 1024 * 1024  # 1MB
DEFAULT_MAX_OPERATION_DURATION = 3600.0  # 1 hour per operation


@dataclass(frozen=True)
class LoggerSettings:
    """Resolved settings for a PerformanceLogger instance."""

    max_stored_sessions: int = DEFAULT_MAX_STORED_SESSIONS
    max_storage_bytes: int = DEFAULT_MAX_STORAGE_BYTES
    max_operation_duration: float = DEFAULT_MAX_OPERATION_DURATION
    persist_sessions: bool = True

    @classmethod
    def from_config(cls, data: Dict[str, Any]) -> "LoggerSettings":
        """Build settings from raw config data, ignoring invalid values."""
        defaults = cls()
        values = {}
        for f in fields(cls):
            if f.name not in data:
                continue
            raw = data[f.name]
            if _is_valid(f.name, raw):
                values[f.name] = raw
            else:
                LOGGER.warning(
                    f"Invalid value {raw!r} for setting '{f.name}', "
                    f"using default {getattr(defaults, f.name)!r}"
                )
        return cls(**values)


def _is_valid(key: str, value: Any) -> bool:
    # bool is an int subclass; it is never a valid count or size
    if key == "persist_sessions":
        return isinstance(value, bool)
    if isinstance(value, bool):
        return False
    if key == "max_operation_duration":
        return isinstance(value, (int, float)) and value > 0
    return isinstance(value, int) and value > 0


def validate_setting(key: str, value: Any) -> None:
    """Check that a value is acceptable for a logger setting.

    Raises:
        ValueError: If the key is unknown or the value is invalid
    """
    known = [f.name for f in fields(LoggerSettings)]
    if key not in known:
        raise ValueError(f"Unknown setting '{key}'. Known settings: {', '.join(known)}")
    if not _is_valid(key, value):
        raise ValueError(f"Invalid value {value!r} for setting '{key}'")


def load_config_data() -> Dict[str, Any]:
    """Loads configuration data from config.json."""
    config_file = ConfigPaths.get_config_file()
    if not config_file.exists():
        return {}
    try:
        content = config_file.read_text(encoding="utf-8")
        if not content.strip():
            return {}
        data = json.loads(content)
    except (json.JSONDecodeError, IOError) as e:
        LOGGER.warning(
            f"Failed to load config file: {e}. Using empty configuration.",
            exc_info=True,
        )
        return {}
    if not isinstance(data, dict):
        LOGGER.warning("Config file does not contain an object. Using empty configuration.")
        return {}
    return data


def _save_config_data(data: Dict[str, Any]) -> None:
    """Saves the configuration data to config.json."""
    config_file = ConfigPaths.get_config_file()
    try:
        config_file.parent.mkdir(parents=True, exist_ok=True)
        config_file.write_text(json.dumps(data, indent=4), encoding="utf-8")
    except IOError as e:
        LOGGER.error(f"Failed to save config file: {e}", exc_info=True)


def get_setting(key: str, default: Any = None) -> Any:
    """Retrieve a setting from the config file."""
    data = load_config_data()
    return data.get(key, default)


def set_settings(updates: Dict[str, Any]) -> None:
    """Load existing settings, apply updates, and save back."""
    data = load_config_data()
    data.update(updates)
    _save_config_data(data)


def get_logger_settings() -> LoggerSettings:
    """Resolve the logger settings from config.json.

    Returns:
        LoggerSettings with invalid or missing keys replaced by defaults.
    """
    return LoggerSettings.from_config(load_config_data())
