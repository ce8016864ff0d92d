"""Config settings – FleetAccessSettings."""
from __future__ import annotations

import dataclasses
import logging
from typing import ClassVar

from fleet_abac.config.settings.base import Settings


@dataclasses.dataclass
class FleetAccessSettings(Settings):
    """Tunables of the access-control service, read from ``FLEET_ABAC_*``."""

    _prefix: ClassVar[str] = "FLEET_ABAC"
    _title: ClassVar[str] = "fleet access settings"

    cache_ttl_seconds: float = 300.0
    cache_shards: int = 16
    cache_sweep_interval_seconds: float = 60.0
    audit_queue_size: int = 10_000
    audit_max_attempts: int = 3
    audit_backoff_max_seconds: float = 2.0
    investigation_window_days: int = 7
    log_level: str = "INFO"
    json_logs: bool = True

    def problems(self) -> list[str]:
        problems: list[str] = []
        if self.cache_ttl_seconds <= 0:
            problems.append("cache_ttl_seconds must be positive")
        if self.cache_shards < 1:
            problems.append("cache_shards must be >= 1")
        if self.cache_sweep_interval_seconds <= 0:
            problems.append("cache_sweep_interval_seconds must be positive")
        if self.audit_queue_size < 1:
            problems.append("audit_queue_size must be >= 1")
        if self.audit_max_attempts < 1:
            problems.append("audit_max_attempts must be >= 1")
        if self.audit_backoff_max_seconds < 0:
            problems.append("audit_backoff_max_seconds must not be negative")
        if self.investigation_window_days < 1:
            problems.append("investigation_window_days must be >= 1")
        if not isinstance(logging.getLevelName(self.log_level.upper()), int):
            problems.append(f"log_level {self.log_level!r} is not a logging level")
        return problems


__all__ = ["FleetAccessSettings"]
