"""Policy – DataSensitivityGate.

Two responsibilities:

* :meth:`DataSensitivityGate.check` – PII-scope and classification
  requirements (the ``sensitivity`` gate);
* :meth:`DataSensitivityGate.mfa_reasons` – which facts of a request
  call for step-up authentication.
"""
from __future__ import annotations

from typing import Iterable

from fleet_abac.kernel.security import (
    DECOMMISSION_ACTIONS,
    FINANCIAL_CRITICAL_ACTIONS,
    Action,
    DataClassification,
    PiiScope,
    Principal,
    ResourceContext,
    Role,
)
from fleet_abac.policy.roles import CONFIDENTIAL_DATA_ROLES

ELEVATED_CLASSIFICATIONS: frozenset[DataClassification] = frozenset({
    DataClassification.CONFIDENTIAL,
    DataClassification.RESTRICTED,
})


class DataSensitivityGate:
    def __init__(self, confidential_roles: Iterable[Role] = CONFIDENTIAL_DATA_ROLES) -> None:
        self._confidential_roles = frozenset(confidential_roles)

    def check(self, principal: Principal, resource: ResourceContext) -> bool:
        """Return ``True`` when the principal may see data of this sensitivity."""
        classification = resource.data_classification
        if classification is None:
            return False
        if resource.contains_pii and principal.pii_scope is PiiScope.NONE:
            return False
        if classification is DataClassification.RESTRICTED and principal.pii_scope is not PiiScope.FULL:
            return False
        return self.classification_allowed(principal.role, classification)

    def classification_allowed(self, role: Role | None, classification: DataClassification) -> bool:
        """Role clearance only; PII scope is not considered."""
        if classification in ELEVATED_CLASSIFICATIONS:
            return role in self._confidential_roles
        return True

    def mfa_reasons(
        self,
        principal: Principal,
        resource: ResourceContext,
        action: Action,
        *,
        override_used: bool = False,
    ) -> list[str]:
        """Return the reasons step-up authentication is required, in a stable order.

        An empty list means no MFA.
        """
        reasons: list[str] = []
        if action in FINANCIAL_CRITICAL_ACTIONS:
            reasons.append("financial_critical_action")
        if action in DECOMMISSION_ACTIONS:
            reasons.append("decommission_action")
        if resource.data_classification is DataClassification.RESTRICTED:
            reasons.append("restricted_data")
        if override_used:
            reasons.append("cross_region_override")
        if (
            principal.pii_scope is PiiScope.FULL
            and resource.contains_pii
            and resource.data_classification in ELEVATED_CLASSIFICATIONS
        ):
            reasons.append("full_pii_access")
        return reasons


__all__ = ["DataSensitivityGate", "ELEVATED_CLASSIFICATIONS"]
