"""Infrastructure errors – audit delivery and cache integrity."""

from __future__ import annotations

from typing import Any

from fleet_abac.kernel.errors.base import BaseError


class InfrastructureError(BaseError):
    """Infrastructure / I/O failure that is not a policy outcome."""

    default_code = "infrastructure_error"


class AuditDeliveryError(InfrastructureError):
    """An audit event could not be handed to the sink after all retries.

    Never surfaces to callers of the decision path; the recorder logs it
    and moves on.
    """

    default_code = "audit_delivery_failed"

    def __init__(
        self,
        event_id: str,
        message: str | None = None,
        *,
        attempts: int = 0,
        **kwargs: Any,
    ) -> None:
        super().__init__(message or f"Audit event '{event_id}' could not be delivered", **kwargs)
        self.event_id = event_id
        self.attempts = attempts


class CacheAnomalyError(InfrastructureError):
    """A cache entry had an unexpected shape or failed validation."""

    default_code = "cache_anomaly"

    def __init__(self, key: str, message: str | None = None, **kwargs: Any) -> None:
        super().__init__(message or f"Corrupt cache entry for key '{key}'", **kwargs)
        self.key = key


__all__ = ["AuditDeliveryError", "CacheAnomalyError", "InfrastructureError"]
