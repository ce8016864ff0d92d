"""Config settings – 12-factor env-based configuration."""
from fleet_abac.config.settings.base import Settings
from fleet_abac.config.settings.fleet import FleetAccessSettings
from fleet_abac.config.settings.loaders import EnvSettingsLoader, SettingsLoader

__all__ = ["EnvSettingsLoader", "FleetAccessSettings", "Settings", "SettingsLoader"]
