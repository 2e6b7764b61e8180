"""Configuration utilities for perflog."""

from .settings_manager import (
    LoggerSettings,
    get_logger_settings,
    get_setting,
    load_config_data,
    set_settings,
    validate_setting,
    DEFAULT_MAX_OPERATION_DURATION,
    DEFAULT_MAX_STORAGE_BYTES,
    DEFAULT_MAX_STORED_SESSIONS,
)

__all__ = [
    "LoggerSettings",
    "get_logger_settings",
    "get_setting",
    "load_config_data",
    "set_settings",
    "validate_setting",
    "DEFAULT_MAX_OPERATION_DURATION",
    "DEFAULT_MAX_STORAGE_BYTES",
    "DEFAULT_MAX_STORED_SESSIONS",
]
