"""Policy – RegionalScopeValidator."""
from __future__ import annotations

import dataclasses
from typing import Iterable

from fleet_abac.kernel.security import (
    WILDCARD_REGION,
    FailingStep,
    Principal,
    RegionState,
    ResourceContext,
    Role,
)
from fleet_abac.policy.roles import CROSS_REGION_OVERRIDE_ROLES, EXPANSION_REGION_STATES


@dataclasses.dataclass(frozen=True)
class RegionalCheck:
    """Result of the regional gate.

    ``override_used`` is set when access was granted only through the
    case-based cross-region path; the evaluator turns it into an MFA
    requirement.
    """

    allowed: bool
    override_used: bool = False
    step: FailingStep | None = None


class RegionalScopeValidator:
    """Checks region membership, wildcard scope and the case override.

    An empty region set grants nothing: only an explicit ``"*"`` is global.
    """

    def __init__(
        self,
        override_roles: Iterable[Role] = CROSS_REGION_OVERRIDE_ROLES,
        expansion_states: Iterable[RegionState] = EXPANSION_REGION_STATES,
    ) -> None:
        self._override_roles = frozenset(override_roles)
        self._expansion_states = frozenset(expansion_states)

    def in_scope(self, principal: Principal, region_id: str | None) -> bool:
        """Plain membership test, without the case override."""
        if principal.has_global_scope:
            return True
        return bool(region_id) and region_id in principal.regions

    def can_override(self, principal: Principal, case_id: str | None) -> bool:
        return principal.role in self._override_roles and bool(case_id)

    def check(self, principal: Principal, resource: ResourceContext) -> RegionalCheck:
        if self.in_scope(principal, resource.region_id):
            return self._expansion_check(principal, resource, override_used=False)
        if self.can_override(principal, resource.case_id):
            return self._expansion_check(principal, resource, override_used=True)
        return RegionalCheck(allowed=False, step=FailingStep.REGIONAL)

    def allowed_regions(self, principal: Principal) -> frozenset[str]:
        """Regions usable in a bulk filter: ``{"*"}`` for global principals."""
        if principal.has_global_scope:
            return frozenset({WILDCARD_REGION})
        return principal.regions

    def _expansion_check(
        self, principal: Principal, resource: ResourceContext, *, override_used: bool
    ) -> RegionalCheck:
        # expansion managers only act on regions still being launched
        if (
            principal.role is Role.EXPANSION_MANAGER
            and resource.region_state is not None
            and resource.region_state not in self._expansion_states
        ):
            return RegionalCheck(allowed=False, step=FailingStep.EXPANSION_SCOPE)
        return RegionalCheck(allowed=True, override_used=override_used)


__all__ = ["RegionalCheck", "RegionalScopeValidator"]
