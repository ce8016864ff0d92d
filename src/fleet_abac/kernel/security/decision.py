"""Kernel security – Decision, WriteDecision and the enums they carry."""
from __future__ import annotations

import dataclasses
from datetime import datetime
from enum import Enum
from types import MappingProxyType
from typing import Any, Mapping

from fleet_abac.kernel.errors import InvariantViolationError


class Tier(str, Enum):
    """Depth of operational detail an action exposes, lowest first."""

    BASIC = "basic"
    DETAILED = "detailed"
    FINANCIAL = "financial"
    RESTRICTED = "restricted"

    def __str__(self) -> str:
        return self.value

    @property
    def rank(self) -> int:
        return _TIER_ORDER.index(self)


_TIER_ORDER: tuple[Tier, ...] = (Tier.BASIC, Tier.DETAILED, Tier.FINANCIAL, Tier.RESTRICTED)


class AccessLevel(str, Enum):
    NONE = "none"
    BASIC = "basic"
    DETAILED = "detailed"
    FINANCIAL = "financial"
    FULL = "full"

    def __str__(self) -> str:
        return self.value

    @classmethod
    def for_tier(cls, tier: Tier) -> "AccessLevel":
        return _LEVEL_BY_TIER[tier]


_LEVEL_BY_TIER: dict[Tier, AccessLevel] = {
    Tier.BASIC: AccessLevel.BASIC,
    Tier.DETAILED: AccessLevel.DETAILED,
    Tier.FINANCIAL: AccessLevel.FINANCIAL,
    Tier.RESTRICTED: AccessLevel.FULL,
}


class FailingStep(str, Enum):
    """Gate that rejected a request; exposed to clients on denial."""

    RBAC = "rbac"
    REGIONAL = "regional"
    EXPANSION_SCOPE = "expansion_scope"
    OWNERSHIP = "ownership"
    SENSITIVITY = "sensitivity"

    def __str__(self) -> str:
        return self.value


class ConditionType(str, Enum):
    OWNERSHIP_VERIFICATION = "ownership_verification"
    REGIONAL_APPROVAL = "regional_approval"
    MFA_REQUIRED = "mfa_required"
    TIME_LIMITED = "time_limited"
    SUPERVISOR_APPROVAL = "supervisor_approval"

    def __str__(self) -> str:
        return self.value


def _freeze(value: Any) -> Any:
    if isinstance(value, (list, tuple, set, frozenset)):
        return tuple(_freeze(item) for item in value)
    if isinstance(value, Mapping):
        return MappingProxyType({key: _freeze(item) for key, item in value.items()})
    return value


def _thaw(value: Any) -> Any:
    if isinstance(value, tuple):
        return [_thaw(item) for item in value]
    if isinstance(value, Mapping):
        return {key: _thaw(item) for key, item in value.items()}
    return value


@dataclasses.dataclass(frozen=True)
class Condition:
    """Obligation attached to an allowed decision."""

    type: ConditionType
    description: str
    expires_at: datetime | None = None
    metadata: Mapping[str, Any] = dataclasses.field(default_factory=dict)

    def __post_init__(self) -> None:
        # Read-only; cached decisions and queued audit events share it.
        frozen = {key: _freeze(value) for key, value in self.metadata.items()}
        object.__setattr__(self, "metadata", MappingProxyType(frozen))

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {"type": self.type.value, "description": self.description}
        if self.expires_at is not None:
            payload["expires_at"] = self.expires_at.isoformat()
        if self.metadata:
            payload["metadata"] = {key: _thaw(value) for key, value in self.metadata.items()}
        return payload


def _denial_payload(reason: str, step: FailingStep | None) -> dict[str, str]:
    return {
        "error": "access_denied",
        "message": reason,
        "step": step.value if step is not None else "",
    }


@dataclasses.dataclass(frozen=True)
class Decision:
    """Outcome of one authorization evaluation.

    A denied decision never carries masked fields or an access level, and
    always names the gate that rejected it in ``step``.
    """

    allowed: bool
    reason: str
    masked_fields: tuple[str, ...] = ()
    requires_mfa: bool = False
    audit_required: bool = True
    access_level: AccessLevel = AccessLevel.NONE
    conditions: tuple[Condition, ...] = ()
    step: FailingStep | None = None

    def __post_init__(self) -> None:
        if not self.audit_required:
            raise InvariantViolationError("Decisions are always audited")
        if self.allowed:
            if self.step is not None:
                raise InvariantViolationError("An allowed decision has no failing step")
            return
        if self.masked_fields or self.access_level is not AccessLevel.NONE:
            raise InvariantViolationError(
                "A denied decision must not carry masked fields or an access level"
            )
        if self.step is None:
            raise InvariantViolationError("A denied decision must name its failing step")

    @classmethod
    def deny(cls, step: FailingStep, reason: str) -> "Decision":
        return cls(allowed=False, reason=reason, step=step)

    def to_error(self) -> dict[str, str]:
        """Return the ``{error, message, step}`` payload for a denial."""
        if self.allowed:
            raise InvariantViolationError("Allowed decisions have no error payload")
        return _denial_payload(self.reason, self.step)

    def to_dict(self) -> dict[str, Any]:
        return {
            "allowed": self.allowed,
            "reason": self.reason,
            "masked_fields": list(self.masked_fields),
            "requires_mfa": self.requires_mfa,
            "audit_required": self.audit_required,
            "access_level": self.access_level.value,
            "conditions": [c.to_dict() for c in self.conditions],
            "step": self.step.value if self.step is not None else None,
        }


@dataclasses.dataclass(frozen=True)
class WriteDecision:
    """Outcome of validating a write payload against an access policy."""

    allowed: bool
    reason: str
    requires_mfa: bool = False
    audit_required: bool = True
    conditions: tuple[Condition, ...] = ()
    restrictions: tuple[str, ...] = ()
    step: FailingStep | None = None

    def __post_init__(self) -> None:
        if not self.allowed and self.step is None:
            raise InvariantViolationError("A denied write must name its failing step")

    @classmethod
    def deny(
        cls,
        step: FailingStep,
        reason: str,
        restrictions: tuple[str, ...] = (),
    ) -> "WriteDecision":
        return cls(allowed=False, reason=reason, restrictions=restrictions, step=step)

    def to_error(self) -> dict[str, str]:
        if self.allowed:
            raise InvariantViolationError("Allowed decisions have no error payload")
        return _denial_payload(self.reason, self.step)

    def to_dict(self) -> dict[str, Any]:
        return {
            "allowed": self.allowed,
            "reason": self.reason,
            "requires_mfa": self.requires_mfa,
            "audit_required": self.audit_required,
            "conditions": [c.to_dict() for c in self.conditions],
            "restrictions": list(self.restrictions),
            "step": self.step.value if self.step is not None else None,
        }


__all__ = [
    "AccessLevel",
    "Condition",
    "ConditionType",
    "Decision",
    "FailingStep",
    "Tier",
    "WriteDecision",
]
