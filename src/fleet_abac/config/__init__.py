"""Config – environment-driven settings."""

from fleet_abac.config.settings import (
    EnvSettingsLoader,
    FleetAccessSettings,
    Settings,
    SettingsLoader,
)

__all__ = ["EnvSettingsLoader", "FleetAccessSettings", "Settings", "SettingsLoader"]
