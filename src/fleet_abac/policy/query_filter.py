"""Policy – QueryFilterBuilder: row-level security for bulk reads and writes.

An :class:`AccessPolicy` is role-driven and independent of any single
resource.  From it the builder derives:

* :meth:`QueryFilterBuilder.build_query_filter` – an engine-agnostic
  predicate tree plus named parameters;
* :meth:`QueryFilterBuilder.filter_results` – redacted copies of rows;
* :meth:`QueryFilterBuilder.validate_write` – a :class:`WriteDecision`
  for create/update/delete payloads.
"""
from __future__ import annotations

import dataclasses
import time
from types import MappingProxyType
from typing import Any, Iterable, Literal, Mapping

from fleet_abac.kernel.security import (
    WILDCARD_REGION,
    AuditEvent,
    Condition,
    ConditionType,
    DataClassification,
    FailingStep,
    OwnershipType,
    PartialContext,
    Principal,
    Role,
    WriteDecision,
)
from fleet_abac.kernel.security.resource import coerce_enum
from fleet_abac.kernel.time import Clock, SystemClock
from fleet_abac.observability.audit import AuditRecorder, record_safely
from fleet_abac.observability.correlation import CorrelationContext
from fleet_abac.observability.logging import get_logger
from fleet_abac.policy.cache import DecisionCache, policy_cache_key
from fleet_abac.policy.predicates import And, Eq, In, Never, Predicate
from fleet_abac.policy.projection import FieldProjector, FieldRestrictions
from fleet_abac.policy.regional import RegionalScopeValidator
from fleet_abac.policy.roles import ASSIGNMENT_SCOPED_ROLES

logger = get_logger(__name__)

Operation = Literal["read", "write", "delete"]
WriteOperation = Literal["create", "update", "delete"]

ACTIVE_STATUSES: tuple[str, ...] = ("active", "in_service")

_ALL_OWNERSHIP = frozenset(OwnershipType)
_ALL_CLASSES = frozenset(DataClassification)
_PLATFORM_FLEET = frozenset({OwnershipType.PLATFORM_OWNED, OwnershipType.FLEET_OWNED})
_UP_TO_OPERATOR = _PLATFORM_FLEET | {OwnershipType.OPERATOR_OWNED}
_OPEN = frozenset({DataClassification.PUBLIC, DataClassification.INTERNAL})
_UP_TO_CONFIDENTIAL = _OPEN | {DataClassification.CONFIDENTIAL}


@dataclasses.dataclass(frozen=True)
class RolePolicy:
    """Static bulk-access grant of one role."""

    can_read: bool = False
    can_write: bool = False
    can_delete: bool = False
    global_regions: bool = False
    ownership_types: frozenset[OwnershipType] = frozenset()
    data_classes: frozenset[DataClassification] = frozenset()
    requires_mfa: bool = False


NO_ACCESS = RolePolicy()

ROLE_POLICIES: Mapping[Role, RolePolicy] = MappingProxyType({
    Role.EXECUTIVE: RolePolicy(
        can_read=True, can_write=True, can_delete=True, global_regions=True,
        ownership_types=_ALL_OWNERSHIP, data_classes=_ALL_CLASSES, requires_mfa=True,
    ),
    Role.REGIONAL_MANAGER: RolePolicy(
        can_read=True, can_write=True,
        ownership_types=_UP_TO_OPERATOR, data_classes=_UP_TO_CONFIDENTIAL, requires_mfa=True,
    ),
    Role.OPS_MANAGER: RolePolicy(
        can_read=True, can_write=True,
        ownership_types=_PLATFORM_FLEET, data_classes=_UP_TO_CONFIDENTIAL,
    ),
    Role.SUPPORT: RolePolicy(can_read=True, ownership_types=_ALL_OWNERSHIP, data_classes=_OPEN),
    Role.RISK_INVESTIGATOR: RolePolicy(
        can_read=True, global_regions=True,
        ownership_types=_ALL_OWNERSHIP, data_classes=_ALL_CLASSES, requires_mfa=True,
    ),
    Role.GROUND_OPS: RolePolicy(can_read=True, ownership_types=_PLATFORM_FLEET, data_classes=_OPEN),
    Role.ANALYST: RolePolicy(can_read=True, ownership_types=_UP_TO_OPERATOR, data_classes=_OPEN),
    Role.FINANCE_OPS: RolePolicy(
        can_read=True,
        ownership_types=_UP_TO_OPERATOR, data_classes=_UP_TO_CONFIDENTIAL, requires_mfa=True,
    ),
    Role.DRIVER: RolePolicy(can_read=True, ownership_types=_ALL_OWNERSHIP, data_classes=_OPEN),
    Role.OPERATOR: RolePolicy(
        can_read=True,
        ownership_types=frozenset({OwnershipType.OPERATOR_OWNED, OwnershipType.DRIVER_OWNED}),
        data_classes=_OPEN,
    ),
    Role.EXPANSION_MANAGER: RolePolicy(
        can_read=True, ownership_types=_PLATFORM_FLEET, data_classes=_OPEN,
    ),
})


@dataclasses.dataclass(frozen=True)
class AccessPolicy:
    """Bulk access grant of one principal, optionally narrowed by context."""

    can_read: bool
    can_write: bool
    can_delete: bool
    allowed_regions: frozenset[str]
    allowed_ownership_types: frozenset[OwnershipType]
    allowed_data_classes: frozenset[DataClassification]
    field_restrictions: FieldRestrictions
    requires_mfa: bool = False
    audit_required: bool = True

    def allows(self, operation: str) -> bool:
        if operation == "read":
            return self.can_read
        if operation == "write":
            return self.can_write
        if operation == "delete":
            return self.can_delete
        return False

    def region_allowed(self, region_id: str) -> bool:
        return WILDCARD_REGION in self.allowed_regions or region_id in self.allowed_regions

    def to_dict(self) -> dict[str, Any]:
        return {
            "can_read": self.can_read,
            "can_write": self.can_write,
            "can_delete": self.can_delete,
            "allowed_regions": sorted(self.allowed_regions),
            "allowed_ownership_types": sorted(o.value for o in self.allowed_ownership_types),
            "allowed_data_classes": sorted(c.value for c in self.allowed_data_classes),
            "field_restrictions": self.field_restrictions.to_dict(),
            "requires_mfa": self.requires_mfa,
            "audit_required": self.audit_required,
        }


@dataclasses.dataclass(frozen=True)
class QueryFilter:
    """Row filter for a bulk query.

    ``predicate`` references values only by name; bind ``parameters`` in
    the data layer.  ``joins`` names related collections the predicate
    relies on.
    """

    allowed: bool
    predicate: Predicate
    parameters: Mapping[str, Any]
    field_manifest: FieldRestrictions
    joins: tuple[str, ...] = ()
    reason: str = ""

    def matches(self, row: Mapping[str, Any]) -> bool:
        """Evaluate the predicate against an in-memory row."""
        return self.predicate.is_satisfied_by(row, self.parameters)

    def to_dict(self) -> dict[str, Any]:
        return {
            "allowed": self.allowed,
            "predicate": self.predicate.to_dict(),
            "parameters": dict(self.parameters),
            "field_manifest": self.field_manifest.to_dict(),
            "joins": list(self.joins),
            "reason": self.reason,
        }


class QueryFilterBuilder:
    """Derives access policies, row filters and write decisions.

    Parameters
    ----------
    recorder:
        Receives one audit event per :meth:`validate_write` call.
    cache:
        Access-policy cache.  ``None`` disables caching.
    role_policies:
        Static per-role grants; roles missing here get no access.
    """

    def __init__(
        self,
        recorder: AuditRecorder,
        *,
        cache: DecisionCache[AccessPolicy] | None = None,
        role_policies: Mapping[Role, RolePolicy] = ROLE_POLICIES,
        regional: RegionalScopeValidator | None = None,
        projector: FieldProjector | None = None,
        clock: Clock | None = None,
    ) -> None:
        self._recorder = recorder
        self._cache = cache
        self._role_policies = role_policies
        self._regional = regional or RegionalScopeValidator()
        self._projector = projector or FieldProjector()
        self._clock = clock or SystemClock()

    # ------------------------------------------------------------------
    # Access policy
    # ------------------------------------------------------------------

    def get_access_policy(
        self, principal: Principal, context: PartialContext | None = None
    ) -> AccessPolicy:
        """Return the (cached) bulk access policy of *principal*."""
        if self._cache is None:
            return self._build_policy(principal, context)
        key = policy_cache_key(principal, context)
        policy = self._cache.get(key)
        if policy is None:
            policy = self._build_policy(principal, context)
            self._cache.put(key, policy)
        return policy

    def _build_policy(self, principal: Principal, context: PartialContext | None) -> AccessPolicy:
        grant = self._role_policies.get(principal.role, NO_ACCESS) if principal.role else NO_ACCESS
        regions = (
            frozenset({WILDCARD_REGION}) if grant.global_regions
            else self._regional.allowed_regions(principal)
        )
        ownership = grant.ownership_types
        classes = grant.data_classes

        if context is not None:
            if context.region_id is not None:
                in_scope = (
                    WILDCARD_REGION in regions
                    or context.region_id in regions
                    or self._regional.can_override(principal, context.case_id)
                )
                regions = frozenset({context.region_id}) if in_scope else frozenset()
            if context.ownership_type is not None:
                ownership = ownership & {context.ownership_type}
            if context.data_classification is not None:
                classes = classes & {context.data_classification}

        reachable = bool(regions and ownership and classes)
        return AccessPolicy(
            can_read=grant.can_read and reachable,
            can_write=grant.can_write and reachable,
            can_delete=grant.can_delete and reachable,
            allowed_regions=regions,
            allowed_ownership_types=ownership,
            allowed_data_classes=classes,
            field_restrictions=(
                self._projector.restrictions(principal.role, principal.pii_scope)
                if reachable and grant.can_read
                else FieldRestrictions.deny_all()
            ),
            requires_mfa=grant.requires_mfa,
        )

    # ------------------------------------------------------------------
    # Bulk reads
    # ------------------------------------------------------------------

    def build_query_filter(
        self,
        principal: Principal,
        operation: Operation | str,
        context: PartialContext | None = None,
    ) -> QueryFilter:
        """Return the row filter for *operation*; deny-all when not permitted."""
        policy = self.get_access_policy(principal, context)
        if not policy.allows(operation):
            return QueryFilter(
                allowed=False,
                predicate=Never(),
                parameters={},
                field_manifest=FieldRestrictions.deny_all(),
                reason=f"No {operation} access to vehicle records",
            )

        clauses: list[Predicate] = []
        parameters: dict[str, Any] = {}
        joins: list[str] = []

        if WILDCARD_REGION not in policy.allowed_regions:
            clauses.append(In("region_id", "region_ids"))
            parameters["region_ids"] = sorted(policy.allowed_regions)
            joins.append("regions")
        clauses.append(In("ownership_type", "ownership_types"))
        parameters["ownership_types"] = sorted(o.value for o in policy.allowed_ownership_types)
        clauses.append(In("data_classification", "data_classes"))
        parameters["data_classes"] = sorted(c.value for c in policy.allowed_data_classes)

        if principal.role is Role.GROUND_OPS:
            clauses.append(In("status", "allowed_statuses"))
            parameters["allowed_statuses"] = list(ACTIVE_STATUSES)
        if principal.role in ASSIGNMENT_SCOPED_ROLES:
            clauses.append(Eq("assigned_user_id", "user_id"))
            parameters["user_id"] = principal.id
            joins.insert(0, "vehicle_assignments")

        clauses.append(Eq("is_active", "is_active"))
        parameters["is_active"] = True

        return QueryFilter(
            allowed=True,
            predicate=And(tuple(clauses)),
            parameters=parameters,
            field_manifest=policy.field_restrictions,
            joins=tuple(joins),
        )

    def filter_results(
        self, rows: Iterable[Mapping[str, Any]], policy: AccessPolicy
    ) -> list[dict[str, Any]]:
        """Redact *rows* per the policy's field manifest; ``[]`` without read access."""
        if not policy.can_read:
            return []
        return [self._projector.apply_restrictions(row, policy.field_restrictions) for row in rows]

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def validate_write(
        self,
        principal: Principal,
        payload: Mapping[str, Any],
        operation: WriteOperation | str,
    ) -> WriteDecision:
        """Check a write payload against the principal's access policy.

        Checks run in order: capability, region, ownership type, then
        classification and field manifest.  A create must name all three
        scope attributes; an update or delete is checked on the ones it
        carries, and a blank ``region_id`` is never in scope.  One audit
        event is emitted per call.
        """
        started = time.monotonic()
        decision = self._check_write(principal, payload, operation)
        if not decision.allowed:
            logger.debug(
                "policy.denied",
                principal_id=principal.id,
                action=f"vehicle.{operation}",
                step=str(decision.step),
                restrictions=list(decision.restrictions),
            )
        record_safely(
            self._recorder,
            AuditEvent(
                principal_id=principal.id,
                resource_id=str(payload.get("id") or WILDCARD_REGION),
                action=f"vehicle.{operation}",
                decision=decision,
                latency_ms=(time.monotonic() - started) * 1000,
                correlation_id=CorrelationContext.current_id(),
                occurred_at=self._clock.now(),
            )
        )
        return decision

    def _check_write(
        self,
        principal: Principal,
        payload: Mapping[str, Any],
        operation: str,
    ) -> WriteDecision:
        policy = self.get_access_policy(principal)

        if operation in ("create", "update"):
            capable = policy.can_write
        elif operation == "delete":
            capable = policy.can_delete
        else:
            capable = False
        if not capable:
            return WriteDecision.deny(
                FailingStep.RBAC, f"No {operation} access to vehicle records"
            )

        creating = operation == "create"

        if creating or "region_id" in payload:
            region_id = str(payload.get("region_id") or "").strip()
            if not region_id or not policy.region_allowed(region_id):
                return WriteDecision.deny(
                    FailingStep.REGIONAL,
                    "The payload region is missing or outside the principal's regional scope",
                    ("region_access",),
                )

        raw_ownership = payload.get("ownership_type")
        if creating or raw_ownership is not None:
            ownership = coerce_enum(OwnershipType, raw_ownership)
            if ownership is None or ownership not in policy.allowed_ownership_types:
                return WriteDecision.deny(
                    FailingStep.OWNERSHIP,
                    "The payload ownership type is missing or not writable by this principal",
                    ("ownership_access",),
                )

        raw_class = payload.get("data_classification")
        if creating or raw_class is not None:
            classification = coerce_enum(DataClassification, raw_class)
            if classification is None or classification not in policy.allowed_data_classes:
                return WriteDecision.deny(
                    FailingStep.SENSITIVITY,
                    "The payload classification is missing or above the principal's clearance",
                    ("classification_access",),
                )

        forbidden = set(policy.field_restrictions.forbidden)
        if any(field in forbidden for field in payload):
            return WriteDecision.deny(
                FailingStep.SENSITIVITY,
                "The payload touches fields outside the principal's field manifest",
                ("field_access",),
            )

        reasons: list[str] = []
        if policy.requires_mfa:
            reasons.append("role_policy")
        if operation == "delete":
            reasons.append("decommission_action")
        conditions: tuple[Condition, ...] = ()
        if reasons:
            conditions = (
                Condition(
                    type=ConditionType.MFA_REQUIRED,
                    description="Step-up authentication is required for this operation",
                    metadata={"reasons": tuple(reasons)},
                ),
            )
        return WriteDecision(
            allowed=True,
            reason=f"{operation} permitted",
            requires_mfa=bool(reasons),
            audit_required=policy.audit_required,
            conditions=conditions,
        )


__all__ = [
    "ACTIVE_STATUSES",
    "AccessPolicy",
    "QueryFilter",
    "QueryFilterBuilder",
    "ROLE_POLICIES",
    "RolePolicy",
]
