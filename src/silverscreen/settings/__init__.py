"""Layered configuration (TOML files + environment variables)."""

from silverscreen.settings.config import Settings, get_settings

__all__ = ["Settings", "get_settings"]
