"""Kernel security – principals, resources, actions, decisions and audit events."""
from fleet_abac.kernel.security.actions import (
    DECOMMISSION_ACTIONS,
    FINANCIAL_CRITICAL_ACTIONS,
    INVESTIGATION_ACTIONS,
    MAJOR_FINANCIAL_ACTIONS,
    Action,
)
from fleet_abac.kernel.security.audit import AuditEvent
from fleet_abac.kernel.security.decision import (
    AccessLevel,
    Condition,
    ConditionType,
    Decision,
    FailingStep,
    Tier,
    WriteDecision,
)
from fleet_abac.kernel.security.principal import WILDCARD_REGION, PiiScope, Principal, Role
from fleet_abac.kernel.security.resource import (
    DataClassification,
    OwnershipType,
    PartialContext,
    RegionState,
    ResourceContext,
)

__all__ = [
    "AccessLevel",
    "Action",
    "AuditEvent",
    "Condition",
    "ConditionType",
    "DECOMMISSION_ACTIONS",
    "DataClassification",
    "Decision",
    "FINANCIAL_CRITICAL_ACTIONS",
    "FailingStep",
    "INVESTIGATION_ACTIONS",
    "MAJOR_FINANCIAL_ACTIONS",
    "OwnershipType",
    "PartialContext",
    "PiiScope",
    "Principal",
    "RegionState",
    "ResourceContext",
    "Role",
    "Tier",
    "WILDCARD_REGION",
    "WriteDecision",
]
