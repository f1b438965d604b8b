"""Application configuration."""

from headline_anchor.config.settings import Settings, get_settings

__all__ = ["Settings", "get_settings"]
