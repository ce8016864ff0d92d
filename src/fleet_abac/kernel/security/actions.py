"""Kernel security – fleet operations (actions) and their classifications."""
from __future__ import annotations

from enum import Enum


class Action(str, Enum):
    """Fleet-management operation a principal may request."""

    # Viewing
    VIEW_VEHICLES_BASIC = "view_vehicles_basic"
    VIEW_VEHICLES_DETAILED = "view_vehicles_detailed"
    VIEW_VEHICLES_SUPPORT = "view_vehicles_support"
    VIEW_VEHICLE_DASHBOARD = "view_vehicle_dashboard"
    VIEW_VEHICLE_ANALYTICS = "view_vehicle_analytics"

    # Vehicle management
    CREATE_VEHICLES = "create_vehicles"
    UPDATE_VEHICLE_DETAILS = "update_vehicle_details"
    DELETE_VEHICLES = "delete_vehicles"
    APPROVE_VEHICLE_REGISTRATIONS = "approve_vehicle_registrations"
    APPROVE_VEHICLE_DECOMMISSIONING = "approve_vehicle_decommissioning"
    MANAGE_REGIONAL_VEHICLES = "manage_regional_vehicles"
    MANAGE_VEHICLE_FLEET_BUDGET = "manage_vehicle_fleet_budget"

    # Assignments and operations
    ASSIGN_DRIVER_TO_VEHICLE = "assign_driver_to_vehicle"
    APPROVE_VEHICLE_ASSIGNMENTS = "approve_vehicle_assignments"
    UPDATE_VEHICLE_STATUS_BASIC = "update_vehicle_status_basic"
    CONFIGURE_VEHICLE_OPERATIONAL_PARAMS = "configure_vehicle_operational_params"

    # Maintenance and compliance
    SCHEDULE_VEHICLE_MAINTENANCE = "schedule_vehicle_maintenance"
    APPROVE_MAJOR_VEHICLE_MAINTENANCE = "approve_major_vehicle_maintenance"
    VIEW_VEHICLE_MAINTENANCE_HISTORY = "view_vehicle_maintenance_history"
    MANAGE_VEHICLE_COMPLIANCE = "manage_vehicle_compliance"
    REVIEW_VEHICLE_COMPLIANCE_VIOLATIONS = "review_vehicle_compliance_violations"

    # Telemetry and monitoring
    VIEW_VEHICLE_TELEMETRY_BASIC = "view_vehicle_telemetry_basic"
    VIEW_VEHICLE_TELEMETRY_DETAILED = "view_vehicle_telemetry_detailed"
    ACCESS_VEHICLE_TRACKING_HISTORY = "access_vehicle_tracking_history"
    ACCESS_VEHICLE_SECURITY_LOGS = "access_vehicle_security_logs"

    # Financial and budget
    APPROVE_VEHICLE_PURCHASES = "approve_vehicle_purchases"
    MANAGE_VEHICLE_FINANCING = "manage_vehicle_financing"
    PROCESS_VEHICLE_INSURANCE_CLAIMS = "process_vehicle_insurance_claims"
    APPROVE_VEHICLE_MAINTENANCE_BUDGETS = "approve_vehicle_maintenance_budgets"
    VIEW_VEHICLE_COST_ANALYSIS = "view_vehicle_cost_analysis"
    MANAGE_VEHICLE_DEPRECIATION = "manage_vehicle_depreciation"
    VIEW_VEHICLE_FINANCIAL_REPORTS = "view_vehicle_financial_reports"

    # Reporting and analytics
    GENERATE_VEHICLE_PERFORMANCE_REPORTS = "generate_vehicle_performance_reports"
    CREATE_VEHICLE_REPORTS = "create_vehicle_reports"
    ANALYZE_VEHICLE_UTILIZATION = "analyze_vehicle_utilization"
    EXPORT_VEHICLE_DATA_ANONYMIZED = "export_vehicle_data_anonymized"
    CREATE_FLEET_EFFICIENCY_REPORTS = "create_fleet_efficiency_reports"
    VIEW_GLOBAL_FLEET_ANALYTICS = "view_global_fleet_analytics"
    ACCESS_EXECUTIVE_VEHICLE_REPORTS = "access_executive_vehicle_reports"

    # Investigation and security
    INVESTIGATE_VEHICLE_INCIDENTS = "investigate_vehicle_incidents"
    ACCESS_VEHICLE_INCIDENT_REPORTS = "access_vehicle_incident_reports"
    UPDATE_VEHICLE_SUPPORT_NOTES = "update_vehicle_support_notes"
    AUDIT_VEHICLE_OWNERSHIP_VERIFICATION = "audit_vehicle_ownership_verification"

    # Expansion and strategic
    PLAN_VEHICLE_FLEET_EXPANSION = "plan_vehicle_fleet_expansion"
    EVALUATE_VEHICLE_PARTNERSHIP_OPPORTUNITIES = "evaluate_vehicle_partnership_opportunities"
    CONFIGURE_EXPANSION_VEHICLE_REQUIREMENTS = "configure_expansion_vehicle_requirements"
    APPROVE_STRATEGIC_VEHICLE_INVESTMENTS = "approve_strategic_vehicle_investments"
    APPROVE_VEHICLE_EXPANSION_PLANS = "approve_vehicle_expansion_plans"
    APPROVE_MAJOR_VEHICLE_PARTNERSHIPS = "approve_major_vehicle_partnerships"
    MANAGE_VEHICLE_PARTNERSHIPS = "manage_vehicle_partnerships"

    def __str__(self) -> str:
        return self.value

    @classmethod
    def parse(cls, raw: "Action | str") -> "Action | None":
        """Return the matching action, or ``None`` for unknown strings."""
        if isinstance(raw, Action):
            return raw
        try:
            return cls(raw)
        except ValueError:
            return None


FINANCIAL_CRITICAL_ACTIONS: frozenset[Action] = frozenset({
    Action.APPROVE_VEHICLE_PURCHASES,
    Action.MANAGE_VEHICLE_FINANCING,
    Action.PROCESS_VEHICLE_INSURANCE_CLAIMS,
    Action.APPROVE_STRATEGIC_VEHICLE_INVESTMENTS,
})

DECOMMISSION_ACTIONS: frozenset[Action] = frozenset({
    Action.APPROVE_VEHICLE_DECOMMISSIONING,
    Action.DELETE_VEHICLES,
})

INVESTIGATION_ACTIONS: frozenset[Action] = frozenset({
    Action.INVESTIGATE_VEHICLE_INCIDENTS,
    Action.ACCESS_VEHICLE_SECURITY_LOGS,
})

MAJOR_FINANCIAL_ACTIONS: frozenset[Action] = frozenset({
    Action.APPROVE_STRATEGIC_VEHICLE_INVESTMENTS,
    Action.APPROVE_MAJOR_VEHICLE_PARTNERSHIPS,
    Action.APPROVE_VEHICLE_EXPANSION_PLANS,
})


__all__ = [
    "Action",
    "DECOMMISSION_ACTIONS",
    "FINANCIAL_CRITICAL_ACTIONS",
    "INVESTIGATION_ACTIONS",
    "MAJOR_FINANCIAL_ACTIONS",
]
