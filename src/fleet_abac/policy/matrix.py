"""Policy – OwnershipAccessMatrix.

Maps each :class:`OwnershipType` to four action tiers and each tier to the
roles authorized for it.  The matrix is validated once at construction and
is immutable afterwards:

* every action appears in exactly one tier of every ownership type;
* role sets are nested along the tier ordering
  (restricted ⊆ financial ⊆ detailed ⊆ basic), so privilege is monotonic.

Example::

    matrix = default_matrix()
    tier = matrix.tier_of(OwnershipType.FLEET_OWNED, Action.VIEW_VEHICLES_BASIC)
    matrix.authorizes(OwnershipType.FLEET_OWNED, tier, Role.GROUND_OPS)  # True
"""

from __future__ import annotations

from types import MappingProxyType
from typing import Any, Iterable, Mapping

from fleet_abac.kernel.errors import ConfigurationError
from fleet_abac.kernel.security import Action, OwnershipType, Role, Tier

TIER_ORDER: tuple[Tier, ...] = (Tier.BASIC, Tier.DETAILED, Tier.FINANCIAL, Tier.RESTRICTED)

A = Action

# Tier of each action on platform-owned vehicles.
BASE_ACTION_TIERS: Mapping[Tier, frozenset[Action]] = MappingProxyType({
    Tier.BASIC: frozenset({
        A.VIEW_VEHICLES_BASIC,
        A.VIEW_VEHICLES_SUPPORT,
        A.VIEW_VEHICLE_DASHBOARD,
        A.UPDATE_VEHICLE_STATUS_BASIC,
        A.ASSIGN_DRIVER_TO_VEHICLE,
        A.SCHEDULE_VEHICLE_MAINTENANCE,
        A.VIEW_VEHICLE_MAINTENANCE_HISTORY,
        A.VIEW_VEHICLE_TELEMETRY_BASIC,
        A.EXPORT_VEHICLE_DATA_ANONYMIZED,
        A.UPDATE_VEHICLE_SUPPORT_NOTES,
        A.ACCESS_VEHICLE_INCIDENT_REPORTS,
    }),
    Tier.DETAILED: frozenset({
        A.VIEW_VEHICLES_DETAILED,
        A.VIEW_VEHICLE_ANALYTICS,
        A.CREATE_VEHICLES,
        A.UPDATE_VEHICLE_DETAILS,
        A.APPROVE_VEHICLE_REGISTRATIONS,
        A.MANAGE_REGIONAL_VEHICLES,
        A.APPROVE_VEHICLE_ASSIGNMENTS,
        A.CONFIGURE_VEHICLE_OPERATIONAL_PARAMS,
        A.APPROVE_MAJOR_VEHICLE_MAINTENANCE,
        A.MANAGE_VEHICLE_COMPLIANCE,
        A.REVIEW_VEHICLE_COMPLIANCE_VIOLATIONS,
        A.VIEW_VEHICLE_TELEMETRY_DETAILED,
        A.ACCESS_VEHICLE_TRACKING_HISTORY,
        A.GENERATE_VEHICLE_PERFORMANCE_REPORTS,
        A.CREATE_VEHICLE_REPORTS,
        A.ANALYZE_VEHICLE_UTILIZATION,
        A.CREATE_FLEET_EFFICIENCY_REPORTS,
        A.VIEW_GLOBAL_FLEET_ANALYTICS,
        A.PLAN_VEHICLE_FLEET_EXPANSION,
        A.EVALUATE_VEHICLE_PARTNERSHIP_OPPORTUNITIES,
        A.CONFIGURE_EXPANSION_VEHICLE_REQUIREMENTS,
    }),
    Tier.FINANCIAL: frozenset({
        A.MANAGE_VEHICLE_FLEET_BUDGET,
        A.APPROVE_VEHICLE_PURCHASES,
        A.MANAGE_VEHICLE_FINANCING,
        A.PROCESS_VEHICLE_INSURANCE_CLAIMS,
        A.APPROVE_VEHICLE_MAINTENANCE_BUDGETS,
        A.VIEW_VEHICLE_COST_ANALYSIS,
        A.MANAGE_VEHICLE_DEPRECIATION,
        A.VIEW_VEHICLE_FINANCIAL_REPORTS,
        A.ACCESS_EXECUTIVE_VEHICLE_REPORTS,
        A.APPROVE_STRATEGIC_VEHICLE_INVESTMENTS,
        A.APPROVE_VEHICLE_EXPANSION_PLANS,
        A.APPROVE_MAJOR_VEHICLE_PARTNERSHIPS,
        A.MANAGE_VEHICLE_PARTNERSHIPS,
    }),
    Tier.RESTRICTED: frozenset({
        A.DELETE_VEHICLES,
        A.APPROVE_VEHICLE_DECOMMISSIONING,
        A.ACCESS_VEHICLE_SECURITY_LOGS,
        A.INVESTIGATE_VEHICLE_INCIDENTS,
        A.AUDIT_VEHICLE_OWNERSHIP_VERIFICATION,
    }),
})

_IDENTITY = {tier: tier for tier in TIER_ORDER}

# Tier shift applied to the base tiers for privately owned vehicles.
OWNERSHIP_ESCALATION: Mapping[OwnershipType, Mapping[Tier, Tier]] = MappingProxyType({
    OwnershipType.PLATFORM_OWNED: _IDENTITY,
    OwnershipType.FLEET_OWNED: _IDENTITY,
    OwnershipType.OPERATOR_OWNED: {
        Tier.BASIC: Tier.BASIC,
        Tier.DETAILED: Tier.FINANCIAL,
        Tier.FINANCIAL: Tier.RESTRICTED,
        Tier.RESTRICTED: Tier.RESTRICTED,
    },
    OwnershipType.DRIVER_OWNED: {
        Tier.BASIC: Tier.BASIC,
        Tier.DETAILED: Tier.RESTRICTED,
        Tier.FINANCIAL: Tier.RESTRICTED,
        Tier.RESTRICTED: Tier.RESTRICTED,
    },
})

DEFAULT_TIER_ROLES: Mapping[Tier, frozenset[Role]] = MappingProxyType({
    Tier.BASIC: frozenset(Role),
    Tier.DETAILED: frozenset({
        Role.OPS_MANAGER,
        Role.REGIONAL_MANAGER,
        Role.EXECUTIVE,
        Role.RISK_INVESTIGATOR,
        Role.FINANCE_OPS,
        Role.ANALYST,
        Role.EXPANSION_MANAGER,
    }),
    Tier.FINANCIAL: frozenset({
        Role.REGIONAL_MANAGER,
        Role.EXECUTIVE,
        Role.RISK_INVESTIGATOR,
        Role.FINANCE_OPS,
    }),
    Tier.RESTRICTED: frozenset({
        Role.EXECUTIVE,
        Role.RISK_INVESTIGATOR,
    }),
})


def _parse_action(raw: Any) -> Action | None:
    return Action.parse(raw) if isinstance(raw, (str, Action)) else None


def _parse_role(raw: Any) -> Role | None:
    if isinstance(raw, Role):
        return raw
    try:
        return Role(raw)
    except ValueError:
        return None


class OwnershipAccessMatrix:
    """Immutable ownership → tier → actions/roles configuration.

    Parameters
    ----------
    rows:
        ``{ownership_type: {tier: [action, ...]}}``.  Actions and keys may
        be given as enum members or their string values.
    tier_roles:
        Roles authorized for each tier, shared by all ownership types.
    ownership_tier_roles:
        Optional per-ownership-type overrides of *tier_roles*.

    Raises
    ------
    ConfigurationError
        When any structural or monotonicity check fails.  All problems are
        collected before raising.
    """

    def __init__(
        self,
        rows: Mapping[Any, Mapping[Any, Iterable[Any]]],
        tier_roles: Mapping[Any, Iterable[Any]] = DEFAULT_TIER_ROLES,
        *,
        ownership_tier_roles: Mapping[Any, Mapping[Any, Iterable[Any]]] | None = None,
    ) -> None:
        problems: list[str] = []
        shared_roles = self._parse_tier_roles(tier_roles, "default", problems)

        overrides: dict[OwnershipType, dict[Tier, frozenset[Role]]] = {}
        for raw_ownership, raw_roles in (ownership_tier_roles or {}).items():
            ownership = self._parse_ownership(raw_ownership, problems)
            if ownership is not None:
                overrides[ownership] = self._parse_tier_roles(raw_roles, str(ownership), problems)

        tier_index: dict[OwnershipType, dict[Action, Tier]] = {}
        parsed_rows: dict[OwnershipType, dict[Tier, frozenset[Action]]] = {}
        for raw_ownership, raw_row in rows.items():
            ownership = self._parse_ownership(raw_ownership, problems)
            if ownership is None:
                continue
            index: dict[Action, Tier] = {}
            row: dict[Tier, set[Action]] = {tier: set() for tier in TIER_ORDER}
            for raw_tier, raw_actions in raw_row.items():
                tier = self._parse_tier(raw_tier, str(ownership), problems)
                if tier is None:
                    continue
                for raw_action in raw_actions:
                    action = _parse_action(raw_action)
                    if action is None:
                        problems.append(f"{ownership}: unknown action {raw_action!r}")
                        continue
                    if action in index and index[action] is not tier:
                        problems.append(
                            f"{ownership}: action {action} appears in both "
                            f"{index[action]} and {tier}"
                        )
                        continue
                    index[action] = tier
                    row[tier].add(action)
            missing = sorted(a.value for a in Action if a not in index)
            if missing:
                problems.append(f"{ownership}: actions without a tier {missing}")
            tier_index[ownership] = index
            parsed_rows[ownership] = {t: frozenset(a) for t, a in row.items()}

        for ownership in OwnershipType:
            if ownership not in parsed_rows:
                problems.append(f"ownership type {ownership} has no matrix row")

        roles_by_ownership: dict[OwnershipType, dict[Tier, frozenset[Role]]] = {}
        for ownership in OwnershipType:
            effective = dict(shared_roles)
            effective.update(overrides.get(ownership, {}))
            roles_by_ownership[ownership] = effective
            problems.extend(self._nesting_problems(ownership, effective))

        if problems:
            raise ConfigurationError(
                "Ownership access matrix failed validation", problems=problems
            )

        self._tier_index = MappingProxyType(
            {o: MappingProxyType(i) for o, i in tier_index.items()}
        )
        self._rows = MappingProxyType(
            {o: MappingProxyType(r) for o, r in parsed_rows.items()}
        )
        self._roles = MappingProxyType(
            {o: MappingProxyType(r) for o, r in roles_by_ownership.items()}
        )

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def tier_of(self, ownership: OwnershipType | None, action: Action | None) -> Tier | None:
        """Return the tier holding *action* for *ownership*, or ``None``."""
        if ownership is None or action is None:
            return None
        index = self._tier_index.get(ownership)
        return index.get(action) if index is not None else None

    def authorizes(self, ownership: OwnershipType | None, tier: Tier | None, role: Role | None) -> bool:
        if ownership is None or tier is None or role is None:
            return False
        roles = self._roles.get(ownership)
        return roles is not None and role in roles.get(tier, frozenset())

    def actions(self, ownership: OwnershipType, tier: Tier) -> frozenset[Action]:
        return self._rows[ownership][tier]

    def roles_for(self, ownership: OwnershipType, tier: Tier) -> frozenset[Role]:
        return self._roles[ownership][tier]

    def highest_tier(self, ownership: OwnershipType, role: Role) -> Tier | None:
        """Return the most privileged tier *role* holds for *ownership*."""
        granted = [t for t in TIER_ORDER if role in self._roles[ownership][t]]
        return granted[-1] if granted else None

    def as_dict(self) -> dict[str, dict[str, list[str]]]:
        """Serialisable dump of the action rows (for diagnostics)."""
        return {
            o.value: {t.value: sorted(a.value for a in row[t]) for t in TIER_ORDER}
            for o, row in self._rows.items()
        }

    # ------------------------------------------------------------------
    # Validation helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _parse_ownership(raw: Any, problems: list[str]) -> OwnershipType | None:
        if isinstance(raw, OwnershipType):
            return raw
        try:
            return OwnershipType(raw)
        except ValueError:
            problems.append(f"unknown ownership type {raw!r}")
            return None

    @staticmethod
    def _parse_tier(raw: Any, where: str, problems: list[str]) -> Tier | None:
        if isinstance(raw, Tier):
            return raw
        try:
            return Tier(raw)
        except ValueError:
            problems.append(f"{where}: unknown tier {raw!r}")
            return None

    @classmethod
    def _parse_tier_roles(
        cls,
        raw: Mapping[Any, Iterable[Any]],
        where: str,
        problems: list[str],
    ) -> dict[Tier, frozenset[Role]]:
        parsed: dict[Tier, frozenset[Role]] = {tier: frozenset() for tier in TIER_ORDER}
        for raw_tier, raw_roles in raw.items():
            tier = cls._parse_tier(raw_tier, where, problems)
            if tier is None:
                continue
            roles: set[Role] = set()
            for raw_role in raw_roles:
                role = _parse_role(raw_role)
                if role is None:
                    problems.append(f"{where}: unknown role {raw_role!r} in tier {tier}")
                else:
                    roles.add(role)
            parsed[tier] = frozenset(roles)
        return parsed

    @staticmethod
    def _nesting_problems(
        ownership: OwnershipType, roles: Mapping[Tier, frozenset[Role]]
    ) -> list[str]:
        problems: list[str] = []
        for lower, higher in zip(TIER_ORDER, TIER_ORDER[1:]):
            stray = roles[higher] - roles[lower]
            if stray:
                problems.append(
                    f"{ownership}: roles {sorted(r.value for r in stray)} hold "
                    f"{higher} but not {lower}"
                )
        return problems


def default_matrix() -> OwnershipAccessMatrix:
    """Build the shipped matrix from the base tiers and ownership escalation."""
    rows: dict[OwnershipType, dict[Tier, set[Action]]] = {}
    for ownership, shift in OWNERSHIP_ESCALATION.items():
        row: dict[Tier, set[Action]] = {tier: set() for tier in TIER_ORDER}
        for base_tier, actions in BASE_ACTION_TIERS.items():
            row[shift[base_tier]].update(actions)
        rows[ownership] = row
    return OwnershipAccessMatrix(rows, DEFAULT_TIER_ROLES)


__all__ = [
    "BASE_ACTION_TIERS",
    "DEFAULT_TIER_ROLES",
    "OWNERSHIP_ESCALATION",
    "OwnershipAccessMatrix",
    "TIER_ORDER",
    "default_matrix",
]
