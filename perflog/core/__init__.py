"""Core infrastructure shared across perflog."""

from .config_paths import ConfigPaths

__all__ = ["ConfigPaths"]
