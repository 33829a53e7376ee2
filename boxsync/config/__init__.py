"""Configuration package for runtime settings and startup validation."""

from .logging_setup import config_configure_logging
from .settings import AppSettings, SettingsLoadError, config_load_database_url, config_load_settings
from .units import config_load_units

__all__ = [
	"AppSettings",
	"SettingsLoadError",
	"config_configure_logging",
	"config_load_database_url",
	"config_load_settings",
	"config_load_units",
]
