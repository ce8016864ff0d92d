"""Kernel error hierarchy – public re-export surface.

Hierarchy::

    BaseError
    ├── DomainError              (domain.py)
    │   ├── InvariantViolationError
    │   └── ConfigurationError
    └── InfrastructureError      (infrastructure.py)
        ├── AuditDeliveryError
        └── CacheAnomalyError

Policy denials are not errors: they are returned as values.
"""

from fleet_abac.kernel.errors.base import BaseError
from fleet_abac.kernel.errors.domain import (
    ConfigurationError,
    DomainError,
    InvariantViolationError,
)
from fleet_abac.kernel.errors.infrastructure import (
    AuditDeliveryError,
    CacheAnomalyError,
    InfrastructureError,
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
