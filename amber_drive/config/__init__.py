"""Configuration module for Amber Drive admin."""

from amber_drive.config.settings import Settings, get_settings, settings

__all__ = ["Settings", "get_settings", "settings"]
