"""Policy – PolicyEvaluator.

Runs the access gates in a fixed, short-circuiting order:

1. ``rbac``            – static role → action allow-list
2. ``regional``        – region membership, wildcard, case override
   (``expansion_scope`` for expansion managers outside launch regions)
3. ``ownership``       – tier of the action for the resource's ownership type
4. ``sensitivity``     – PII scope and data classification
5. MFA determination
6. projection assembly (masks, access level, conditions)

The first failing gate names the denial.  Denials are values, never
exceptions, and their reasons are generic: they never list roles or
matrix contents.

Every call emits exactly one :class:`AuditEvent`, whether or not the
decision came from the cache.
"""
from __future__ import annotations

import time
from datetime import timedelta
from typing import Any, Iterable, Mapping

from fleet_abac.kernel.security import (
    INVESTIGATION_ACTIONS,
    MAJOR_FINANCIAL_ACTIONS,
    AccessLevel,
    Action,
    AuditEvent,
    Condition,
    ConditionType,
    Decision,
    FailingStep,
    Principal,
    ResourceContext,
)
from fleet_abac.kernel.time import Clock, SystemClock
from fleet_abac.observability.audit import AuditRecorder, record_safely
from fleet_abac.observability.correlation import CorrelationContext
from fleet_abac.observability.logging import get_logger
from fleet_abac.policy.cache import DecisionCache, decision_cache_key
from fleet_abac.policy.matrix import OwnershipAccessMatrix, default_matrix
from fleet_abac.policy.projection import FieldProjector
from fleet_abac.policy.regional import RegionalScopeValidator
from fleet_abac.policy.roles import (
    ROLE_ACTIONS,
    TOP_TIER_ROLE,
    role_allows,
    validate_role_actions,
)
from fleet_abac.policy.sensitivity import ELEVATED_CLASSIFICATIONS, DataSensitivityGate

logger = get_logger(__name__)

DENIAL_REASONS: Mapping[FailingStep, str] = {
    FailingStep.RBAC: "The requested operation is not permitted for this principal",
    FailingStep.REGIONAL: "The resource is outside the principal's regional scope",
    FailingStep.EXPANSION_SCOPE: "The resource's region is not open for expansion work",
    FailingStep.OWNERSHIP: "Insufficient privilege for this resource's ownership type",
    FailingStep.SENSITIVITY: "Insufficient clearance for this resource's data sensitivity",
}


class PolicyEvaluator:
    """Single-resource access decisions.

    Parameters
    ----------
    recorder:
        Receives one audit event per evaluated action.
    matrix:
        Ownership access matrix; :func:`default_matrix` when omitted.
    role_actions:
        Static role → action allow-list.
    cache:
        Decision cache.  ``None`` disables caching.
    clock:
        Time source for condition expiry.
    investigation_window:
        Validity of the ``time_limited`` condition on investigation actions.
    """

    def __init__(
        self,
        recorder: AuditRecorder,
        *,
        matrix: OwnershipAccessMatrix | None = None,
        role_actions: Mapping[Any, frozenset[Action]] = ROLE_ACTIONS,
        regional: RegionalScopeValidator | None = None,
        sensitivity: DataSensitivityGate | None = None,
        projector: FieldProjector | None = None,
        cache: DecisionCache[Decision] | None = None,
        clock: Clock | None = None,
        investigation_window: timedelta = timedelta(days=7),
    ) -> None:
        validate_role_actions(role_actions)
        self._recorder = recorder
        self._matrix = matrix or default_matrix()
        self._role_actions = role_actions
        self._regional = regional or RegionalScopeValidator()
        self._sensitivity = sensitivity or DataSensitivityGate()
        self._projector = projector or FieldProjector()
        self._cache = cache
        self._clock = clock or SystemClock()
        self._investigation_window = investigation_window

    @property
    def matrix(self) -> OwnershipAccessMatrix:
        return self._matrix

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def evaluate(
        self,
        principal: Principal,
        resource: ResourceContext,
        action: Action | str,
    ) -> Decision:
        """Decide whether *principal* may perform *action* on *resource*."""
        started = time.monotonic()
        cache_hit = False
        decision: Decision | None = None
        key: str | None = None

        if self._cache is not None:
            key = decision_cache_key(principal, resource, action)
            decision = self._cache.get(key)
            cache_hit = decision is not None

        if decision is None:
            decision = self._decide(principal, resource, Action.parse(action))
            if self._cache is not None and key is not None:
                self._cache.put(key, decision)

        if not decision.allowed:
            logger.debug(
                "policy.denied",
                principal_id=principal.id,
                resource_id=resource.resource_id,
                action=str(action),
                step=str(decision.step),
                cache_hit=cache_hit,
            )

        record_safely(
            self._recorder,
            AuditEvent(
                principal_id=principal.id,
                resource_id=resource.resource_id,
                action=str(action),
                decision=decision,
                latency_ms=(time.monotonic() - started) * 1000,
                correlation_id=CorrelationContext.current_id(),
                cache_hit=cache_hit,
                occurred_at=self._clock.now(),
            )
        )
        return decision

    def evaluate_many(
        self,
        principal: Principal,
        resource: ResourceContext,
        actions: Iterable[Action | str],
    ) -> dict[str, Decision]:
        """Evaluate several actions on one resource, one audit event each."""
        return {str(action): self.evaluate(principal, resource, action) for action in actions}

    def effective_actions(self, principal: Principal) -> frozenset[Action]:
        """Actions the principal's role may attempt before contextual gates."""
        if principal.role is None:
            return frozenset()
        return frozenset(self._role_actions.get(principal.role, frozenset()))

    # ------------------------------------------------------------------
    # Gates
    # ------------------------------------------------------------------

    def _decide(
        self,
        principal: Principal,
        resource: ResourceContext,
        action: Action | None,
    ) -> Decision:
        if action is None or not role_allows(principal.role, action, self._role_actions):
            return self._deny(FailingStep.RBAC)

        regional = self._regional.check(principal, resource)
        if not regional.allowed:
            return self._deny(regional.step or FailingStep.REGIONAL)

        tier = self._matrix.tier_of(resource.ownership_type, action)
        if tier is None or not self._matrix.authorizes(resource.ownership_type, tier, principal.role):
            return self._deny(FailingStep.OWNERSHIP)

        if not self._sensitivity.check(principal, resource):
            return self._deny(FailingStep.SENSITIVITY)

        mfa_reasons = self._sensitivity.mfa_reasons(
            principal, resource, action, override_used=regional.override_used
        )
        sensitive = resource.contains_pii or resource.data_classification in ELEVATED_CLASSIFICATIONS
        return Decision(
            allowed=True,
            reason=f"Access granted at {tier} tier",
            masked_fields=self._projector.masked_fields(
                principal.role, principal.pii_scope, sensitive=sensitive
            ),
            requires_mfa=bool(mfa_reasons),
            access_level=AccessLevel.for_tier(tier),
            conditions=self._conditions(principal, resource, action, mfa_reasons),
        )

    def _conditions(
        self,
        principal: Principal,
        resource: ResourceContext,
        action: Action,
        mfa_reasons: list[str],
    ) -> tuple[Condition, ...]:
        conditions: list[Condition] = []
        if mfa_reasons:
            conditions.append(
                Condition(
                    type=ConditionType.MFA_REQUIRED,
                    description="Step-up authentication is required for this operation",
                    metadata={"reasons": tuple(mfa_reasons)},
                )
            )
        if action in INVESTIGATION_ACTIONS:
            metadata = {"case_id": resource.case_id} if resource.case_id else {}
            conditions.append(
                Condition(
                    type=ConditionType.TIME_LIMITED,
                    description="Investigation access is time-limited",
                    expires_at=self._clock.now() + self._investigation_window,
                    metadata=metadata,
                )
            )
        if action in MAJOR_FINANCIAL_ACTIONS and principal.role is not TOP_TIER_ROLE:
            conditions.append(
                Condition(
                    type=ConditionType.SUPERVISOR_APPROVAL,
                    description="Major financial operations need supervisor approval",
                )
            )
        return tuple(conditions)

    @staticmethod
    def _deny(step: FailingStep) -> Decision:
        return Decision.deny(step, DENIAL_REASONS[step])


__all__ = ["DENIAL_REASONS", "PolicyEvaluator"]
