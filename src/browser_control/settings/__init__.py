"""Settings package: layered TOML + environment configuration."""

from browser_control.settings.config import Settings, get_settings

__all__ = ["Settings", "get_settings"]
