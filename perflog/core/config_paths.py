"""Centralized configuration path management for perflog.

This module provides a single source of truth for the configuration and
session store file locations, following the XDG Base Directory layout.
"""

import logging
import os
from pathlib import Path

logger = logging.getLogger(__name__)

# Environment variable that relocates the whole perflog directory
HOME_ENV_VAR = "PERFLOG_HOME"


class ConfigPaths:
    """Centralized configuration path management.

    All perflog files live in ~/.config/perflog/ unless PERFLOG_HOME points
    somewhere else.
    """

    # XDG-compliant base directory
    BASE_DIR = Path.home() / ".config" / "perflog"

    @classmethod
    def resolve_base_dir(cls) -> Path:
        """Return the base directory without creating it."""
        override = os.environ.get(HOME_ENV_VAR)
        if override:
            return Path(override).expanduser()
        return cls.BASE_DIR

    @classmethod
    def get_base_dir(cls) -> Path:
        """Get base configuration directory, creating if needed.

        Returns:
            Path to ~/.config/perflog/ (or $PERFLOG_HOME)
        """
        base_dir = cls.resolve_base_dir()
        base_dir.mkdir(parents=True, exist_ok=True)
        return base_dir

    @classmethod
    def get_config_file(cls) -> Path:
        """Get path to main configuration file.

        Returns:
            Path to config.json
        """
        return cls.get_base_dir() / "config.json"

    @classmethod
    def get_sessions_file(cls) -> Path:
        """Get path to the persisted session store.

        Returns:
            Path to sessions.json
        """
        sessions_file = cls.get_base_dir() / "sessions.json"
        logger.debug(f"Session store location: {sessions_file}")
        return sessions_file
