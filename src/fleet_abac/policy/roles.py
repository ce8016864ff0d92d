"""Policy – static role tables.

``ROLE_ACTIONS`` is the base allow-list consulted by the first gate: the
set of operations a role may *attempt*.  Privilege depth is decided later
by the ownership matrix, so a role may reach an action here that the
matrix still refuses for a given ownership type.
"""
from __future__ import annotations

from types import MappingProxyType
from typing import Mapping

from fleet_abac.kernel.errors import ConfigurationError
from fleet_abac.kernel.security import Action, RegionState, Role

A = Action

_GROUND_OPS = frozenset({
    A.VIEW_VEHICLES_BASIC,
    A.VIEW_VEHICLE_DASHBOARD,
    A.UPDATE_VEHICLE_STATUS_BASIC,
    A.VIEW_VEHICLE_TELEMETRY_BASIC,
    A.ASSIGN_DRIVER_TO_VEHICLE,
    A.SCHEDULE_VEHICLE_MAINTENANCE,
    A.VIEW_VEHICLE_MAINTENANCE_HISTORY,
    # always refused by the financial tier; reaches the ownership gate only
    A.APPROVE_VEHICLE_PURCHASES,
})

_OPS_MANAGER = _GROUND_OPS - {A.APPROVE_VEHICLE_PURCHASES} | frozenset({
    A.VIEW_VEHICLES_DETAILED,
    A.VIEW_VEHICLE_ANALYTICS,
    A.CREATE_VEHICLES,
    A.UPDATE_VEHICLE_DETAILS,
    A.APPROVE_VEHICLE_ASSIGNMENTS,
    A.CONFIGURE_VEHICLE_OPERATIONAL_PARAMS,
    A.MANAGE_VEHICLE_COMPLIANCE,
    A.REVIEW_VEHICLE_COMPLIANCE_VIOLATIONS,
    A.VIEW_VEHICLE_TELEMETRY_DETAILED,
    A.ACCESS_VEHICLE_TRACKING_HISTORY,
    A.GENERATE_VEHICLE_PERFORMANCE_REPORTS,
    A.CREATE_VEHICLE_REPORTS,
    A.ANALYZE_VEHICLE_UTILIZATION,
    A.CREATE_FLEET_EFFICIENCY_REPORTS,
    A.APPROVE_MAJOR_VEHICLE_MAINTENANCE,
    A.VIEW_VEHICLE_COST_ANALYSIS,
})

_REGIONAL_MANAGER = _OPS_MANAGER | frozenset({
    A.MANAGE_REGIONAL_VEHICLES,
    A.APPROVE_VEHICLE_REGISTRATIONS,
    A.MANAGE_VEHICLE_FLEET_BUDGET,
    A.APPROVE_VEHICLE_MAINTENANCE_BUDGETS,
    A.VIEW_VEHICLE_FINANCIAL_REPORTS,
    A.ACCESS_VEHICLE_INCIDENT_REPORTS,
    A.PLAN_VEHICLE_FLEET_EXPANSION,
    A.EVALUATE_VEHICLE_PARTNERSHIP_OPPORTUNITIES,
    A.CONFIGURE_EXPANSION_VEHICLE_REQUIREMENTS,
    A.APPROVE_VEHICLE_EXPANSION_PLANS,
    A.APPROVE_MAJOR_VEHICLE_PARTNERSHIPS,
    A.MANAGE_VEHICLE_PARTNERSHIPS,
    A.APPROVE_VEHICLE_DECOMMISSIONING,
})

_SUPPORT = frozenset({
    A.VIEW_VEHICLES_BASIC,
    A.VIEW_VEHICLES_SUPPORT,
    A.VIEW_VEHICLE_DASHBOARD,
    A.VIEW_VEHICLE_MAINTENANCE_HISTORY,
    A.VIEW_VEHICLE_TELEMETRY_BASIC,
    A.UPDATE_VEHICLE_SUPPORT_NOTES,
    A.ACCESS_VEHICLE_INCIDENT_REPORTS,
})

_RISK_INVESTIGATOR = frozenset({
    A.VIEW_VEHICLES_BASIC,
    A.VIEW_VEHICLES_DETAILED,
    A.VIEW_VEHICLES_SUPPORT,
    A.VIEW_VEHICLE_MAINTENANCE_HISTORY,
    A.VIEW_VEHICLE_TELEMETRY_BASIC,
    A.VIEW_VEHICLE_TELEMETRY_DETAILED,
    A.ACCESS_VEHICLE_TRACKING_HISTORY,
    A.ACCESS_VEHICLE_SECURITY_LOGS,
    A.INVESTIGATE_VEHICLE_INCIDENTS,
    A.ACCESS_VEHICLE_INCIDENT_REPORTS,
    A.AUDIT_VEHICLE_OWNERSHIP_VERIFICATION,
    A.REVIEW_VEHICLE_COMPLIANCE_VIOLATIONS,
})

_ANALYST = frozenset({
    A.VIEW_VEHICLES_BASIC,
    A.VIEW_VEHICLE_DASHBOARD,
    A.VIEW_VEHICLE_ANALYTICS,
    A.VIEW_VEHICLE_TELEMETRY_BASIC,
    A.GENERATE_VEHICLE_PERFORMANCE_REPORTS,
    A.CREATE_VEHICLE_REPORTS,
    A.ANALYZE_VEHICLE_UTILIZATION,
    A.EXPORT_VEHICLE_DATA_ANONYMIZED,
    A.CREATE_FLEET_EFFICIENCY_REPORTS,
    A.VIEW_GLOBAL_FLEET_ANALYTICS,
})

_FINANCE_OPS = frozenset({
    A.VIEW_VEHICLES_BASIC,
    A.VIEW_VEHICLE_DASHBOARD,
    A.CREATE_VEHICLE_REPORTS,
    A.APPROVE_VEHICLE_PURCHASES,
    A.MANAGE_VEHICLE_FINANCING,
    A.PROCESS_VEHICLE_INSURANCE_CLAIMS,
    A.APPROVE_VEHICLE_MAINTENANCE_BUDGETS,
    A.VIEW_VEHICLE_COST_ANALYSIS,
    A.MANAGE_VEHICLE_DEPRECIATION,
    A.VIEW_VEHICLE_FINANCIAL_REPORTS,
    A.MANAGE_VEHICLE_FLEET_BUDGET,
})

_DRIVER = frozenset({
    A.VIEW_VEHICLES_BASIC,
    A.VIEW_VEHICLE_TELEMETRY_BASIC,
    A.VIEW_VEHICLE_MAINTENANCE_HISTORY,
    A.UPDATE_VEHICLE_STATUS_BASIC,
})

_OPERATOR = _DRIVER | frozenset({
    A.VIEW_VEHICLE_DASHBOARD,
    A.ASSIGN_DRIVER_TO_VEHICLE,
    A.SCHEDULE_VEHICLE_MAINTENANCE,
})

_EXPANSION_MANAGER = frozenset({
    A.VIEW_VEHICLES_BASIC,
    A.VIEW_VEHICLE_DASHBOARD,
    A.VIEW_VEHICLE_ANALYTICS,
    A.PLAN_VEHICLE_FLEET_EXPANSION,
    A.EVALUATE_VEHICLE_PARTNERSHIP_OPPORTUNITIES,
    A.CONFIGURE_EXPANSION_VEHICLE_REQUIREMENTS,
})

ROLE_ACTIONS: Mapping[Role, frozenset[Action]] = MappingProxyType({
    Role.GROUND_OPS: _GROUND_OPS,
    Role.OPS_MANAGER: _OPS_MANAGER,
    Role.REGIONAL_MANAGER: _REGIONAL_MANAGER,
    Role.EXECUTIVE: frozenset(Action),
    Role.SUPPORT: _SUPPORT,
    Role.RISK_INVESTIGATOR: _RISK_INVESTIGATOR,
    Role.ANALYST: _ANALYST,
    Role.FINANCE_OPS: _FINANCE_OPS,
    Role.DRIVER: _DRIVER,
    Role.OPERATOR: _OPERATOR,
    Role.EXPANSION_MANAGER: _EXPANSION_MANAGER,
})

TOP_TIER_ROLE = Role.EXECUTIVE

CROSS_REGION_OVERRIDE_ROLES: frozenset[Role] = frozenset({
    Role.SUPPORT,
    Role.RISK_INVESTIGATOR,
})

# Roles cleared for confidential / restricted classifications.
CONFIDENTIAL_DATA_ROLES: frozenset[Role] = frozenset({
    Role.FINANCE_OPS,
    Role.REGIONAL_MANAGER,
    Role.EXECUTIVE,
    Role.ANALYST,
    Role.RISK_INVESTIGATOR,
})

FINANCIAL_FIELD_ROLES: frozenset[Role] = frozenset({
    Role.FINANCE_OPS,
    Role.REGIONAL_MANAGER,
    Role.EXECUTIVE,
})

OPERATIONAL_FIELD_ROLES: frozenset[Role] = frozenset({
    Role.OPS_MANAGER,
    Role.REGIONAL_MANAGER,
    Role.EXECUTIVE,
})

RESTRICTED_FIELD_ROLES: frozenset[Role] = frozenset({
    Role.RISK_INVESTIGATOR,
    Role.EXECUTIVE,
})

ASSIGNMENT_SCOPED_ROLES: frozenset[Role] = frozenset({Role.DRIVER, Role.OPERATOR})

EXPANSION_REGION_STATES: frozenset[RegionState] = frozenset({
    RegionState.PROSPECT,
    RegionState.PILOT,
})


def validate_role_actions(table: Mapping[Role, frozenset[Action]]) -> None:
    """Assert *table* covers every role with known actions only."""
    problems: list[str] = []
    for role in Role:
        if role not in table:
            problems.append(f"role {role.value!r} has no action allow-list")
    for role, actions in table.items():
        unknown = [a for a in actions if not isinstance(a, Action)]
        if unknown:
            problems.append(f"role {role!s} lists unknown actions {sorted(map(str, unknown))}")
    if problems:
        raise ConfigurationError("Invalid role action table", problems=problems)


def role_allows(
    role: Role | None,
    action: Action | None,
    table: Mapping[Role, frozenset[Action]] = ROLE_ACTIONS,
) -> bool:
    if role is None or action is None:
        return False
    return action in table.get(role, frozenset())


__all__ = [
    "ASSIGNMENT_SCOPED_ROLES",
    "CONFIDENTIAL_DATA_ROLES",
    "CROSS_REGION_OVERRIDE_ROLES",
    "EXPANSION_REGION_STATES",
    "FINANCIAL_FIELD_ROLES",
    "OPERATIONAL_FIELD_ROLES",
    "RESTRICTED_FIELD_ROLES",
    "ROLE_ACTIONS",
    "TOP_TIER_ROLE",
    "role_allows",
    "validate_role_actions",
]
