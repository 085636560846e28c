"""Configuration package: settings and database wiring."""

from detention.config.settings import Settings, get_settings, settings

__all__ = ["Settings", "get_settings", "settings"]
