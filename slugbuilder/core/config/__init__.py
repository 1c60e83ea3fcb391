"""Configuration management for Slugbuilder."""

from slugbuilder.core.config.loader import ConfigLoader
from slugbuilder.core.config.settings import (
    BuildSettings,
    GitSettings,
    LoggingSettings,
    Settings,
    get_settings,
)

__all__ = [
    "BuildSettings",
    "ConfigLoader",
    "GitSettings",
    "LoggingSettings",
    "Settings",
    "get_settings",
]
