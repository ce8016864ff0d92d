"""Kernel – framework-agnostic building blocks."""

from fleet_abac.kernel.errors import (
    AuditDeliveryError,
    BaseError,
    CacheAnomalyError,
    ConfigurationError,
    DomainError,
    InfrastructureError,
    InvariantViolationError,
)

__all__ = [
    "AuditDeliveryError",
    "BaseError",
    "CacheAnomalyError",
    "ConfigurationError",
    "DomainError",
    "InfrastructureError",
    "InvariantViolationError",
]
