"""Kernel security – AuditEvent."""

from __future__ import annotations

import dataclasses
import uuid
from datetime import UTC, datetime
from typing import Any, Literal

from fleet_abac.kernel.security.decision import Decision, FailingStep, WriteDecision


@dataclasses.dataclass(frozen=True)
class AuditEvent:
    """An immutable record of one access-control evaluation.

    Parameters
    ----------
    principal_id:
        Subject that requested the operation.
    resource_id:
        Identifier of the resource instance (``"*"`` for bulk writes
        without an id).
    action:
        Requested action or write operation label.
    decision:
        Snapshot of the decision returned to the caller.
    latency_ms:
        Wall time spent producing the decision, cache lookups included.
    correlation_id:
        Request correlation id taken from the ambient request context.
    cache_hit:
        Whether the decision was served from the decision cache.
    """

    principal_id: str
    resource_id: str
    action: str
    decision: Decision | WriteDecision
    latency_ms: float
    correlation_id: str
    cache_hit: bool = False
    event_id: str = dataclasses.field(default_factory=lambda: uuid.uuid4().hex)
    occurred_at: datetime = dataclasses.field(
        default_factory=lambda: datetime.now(UTC)
    )

    @property
    def failing_step(self) -> FailingStep | None:
        return self.decision.step

    @property
    def outcome(self) -> Literal["allow", "deny"]:
        return "allow" if self.decision.allowed else "deny"

    def is_denied(self) -> bool:
        return not self.decision.allowed

    def to_dict(self) -> dict[str, Any]:
        return {
            "event_id": self.event_id,
            "principal_id": self.principal_id,
            "resource_id": self.resource_id,
            "action": self.action,
            "outcome": self.outcome,
            "failing_step": self.failing_step.value if self.failing_step else None,
            "latency_ms": round(self.latency_ms, 3),
            "correlation_id": self.correlation_id,
            "cache_hit": self.cache_hit,
            "occurred_at": self.occurred_at.isoformat(),
            "decision": self.decision.to_dict(),
        }


__all__ = ["AuditEvent"]
