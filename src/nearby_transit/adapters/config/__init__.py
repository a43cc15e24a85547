"""Configuration adapters."""

from nearby_transit.adapters.config.app_config import AppConfig
from nearby_transit.adapters.config.settings_loader import SettingsLoader

__all__ = ["AppConfig", "SettingsLoader"]
