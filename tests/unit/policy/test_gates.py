"""Unit tests for RegionalScopeValidator and DataSensitivityGate."""

from __future__ import annotations

import pytest

from fleet_abac.kernel.security import (
    Action,
    DataClassification,
    FailingStep,
    OwnershipType,
    PiiScope,
    Principal,
    RegionState,
    ResourceContext,
    Role,
)
from fleet_abac.policy.regional import RegionalScopeValidator
from fleet_abac.policy.sensitivity import DataSensitivityGate


def _principal(
    role: Role | None = Role.OPS_MANAGER,
    regions: tuple[str, ...] = ("NCR",),
    pii: PiiScope = PiiScope.NONE,
) -> Principal:
    return Principal("u1", role, frozenset(regions), pii)


def _resource(**overrides: object) -> ResourceContext:
    attrs: dict = {
        "resource_id": "veh-1",
        "ownership_type": OwnershipType.FLEET_OWNED,
        "region_id": "NCR",
        "data_classification": DataClassification.INTERNAL,
    }
    attrs.update(overrides)
    return ResourceContext(**attrs)


# ---------------------------------------------------------------------------
# RegionalScopeValidator
# ---------------------------------------------------------------------------


class TestRegionalScope:
    def setup_method(self) -> None:
        self.validator = RegionalScopeValidator()

    def test_member_region_allowed(self) -> None:
        result = self.validator.check(_principal(), _resource())
        assert result.allowed
        assert not result.override_used

    def test_other_region_denied(self) -> None:
        result = self.validator.check(_principal(), _resource(region_id="CEB"))
        assert not result.allowed
        assert result.step is FailingStep.REGIONAL

    def test_wildcard_allowed(self) -> None:
        result = self.validator.check(_principal(regions=("*",)), _resource(region_id="CEB"))
        assert result.allowed
        assert not result.override_used

    def test_empty_regions_grant_nothing(self) -> None:
        assert not self.validator.check(_principal(regions=()), _resource()).allowed

    @pytest.mark.parametrize("role", [Role.SUPPORT, Role.RISK_INVESTIGATOR])
    def test_case_override(self, role: Role) -> None:
        result = self.validator.check(
            _principal(role=role), _resource(region_id="CEB", case_id="C-9")
        )
        assert result.allowed
        assert result.override_used

    def test_override_needs_case(self) -> None:
        result = self.validator.check(_principal(role=Role.SUPPORT), _resource(region_id="CEB"))
        assert not result.allowed

    def test_override_limited_to_roles(self) -> None:
        result = self.validator.check(
            _principal(role=Role.OPS_MANAGER), _resource(region_id="CEB", case_id="C-9")
        )
        assert not result.allowed

    def test_in_region_case_is_not_override(self) -> None:
        result = self.validator.check(_principal(role=Role.SUPPORT), _resource(case_id="C-9"))
        assert result.allowed
        assert not result.override_used

    def test_allowed_regions(self) -> None:
        assert self.validator.allowed_regions(_principal(regions=("*", "NCR"))) == {"*"}
        assert self.validator.allowed_regions(_principal(regions=("NCR",))) == {"NCR"}


class TestExpansionScope:
    def setup_method(self) -> None:
        self.validator = RegionalScopeValidator()

    @pytest.mark.parametrize("state", [RegionState.PROSPECT, RegionState.PILOT, None])
    def test_launch_regions_allowed(self, state: RegionState | None) -> None:
        result = self.validator.check(
            _principal(role=Role.EXPANSION_MANAGER), _resource(region_state=state)
        )
        assert result.allowed

    @pytest.mark.parametrize("state", [RegionState.ACTIVE, RegionState.SUSPENDED])
    def test_established_regions_denied(self, state: RegionState) -> None:
        result = self.validator.check(
            _principal(role=Role.EXPANSION_MANAGER), _resource(region_state=state)
        )
        assert not result.allowed
        assert result.step is FailingStep.EXPANSION_SCOPE

    def test_other_roles_ignore_region_state(self) -> None:
        result = self.validator.check(_principal(), _resource(region_state=RegionState.ACTIVE))
        assert result.allowed


# ---------------------------------------------------------------------------
# DataSensitivityGate
# ---------------------------------------------------------------------------


class TestSensitivityCheck:
    def setup_method(self) -> None:
        self.gate = DataSensitivityGate()

    def test_internal_without_pii_allowed(self) -> None:
        assert self.gate.check(_principal(), _resource())

    def test_pii_needs_scope(self) -> None:
        assert not self.gate.check(_principal(), _resource(contains_pii=True))
        assert self.gate.check(_principal(pii=PiiScope.MASKED), _resource(contains_pii=True))

    def test_restricted_needs_full_scope(self) -> None:
        resource = _resource(data_classification=DataClassification.RESTRICTED)
        assert not self.gate.check(_principal(Role.FINANCE_OPS, pii=PiiScope.MASKED), resource)
        assert self.gate.check(_principal(Role.FINANCE_OPS, pii=PiiScope.FULL), resource)

    def test_confidential_needs_cleared_role(self) -> None:
        resource = _resource(data_classification=DataClassification.CONFIDENTIAL)
        assert not self.gate.check(_principal(Role.OPS_MANAGER), resource)
        assert self.gate.check(_principal(Role.ANALYST), resource)

    def test_classification_allowed_ignores_pii_scope(self) -> None:
        assert self.gate.classification_allowed(Role.RISK_INVESTIGATOR, DataClassification.RESTRICTED)
        assert not self.gate.classification_allowed(Role.SUPPORT, DataClassification.CONFIDENTIAL)
        assert self.gate.classification_allowed(None, DataClassification.PUBLIC)

    def test_unknown_classification_denied(self) -> None:
        assert not self.gate.check(
            _principal(Role.EXECUTIVE, pii=PiiScope.FULL), _resource(data_classification=None)
        )


class TestMfaReasons:
    def setup_method(self) -> None:
        self.gate = DataSensitivityGate()

    def test_plain_read_needs_nothing(self) -> None:
        assert self.gate.mfa_reasons(_principal(), _resource(), Action.VIEW_VEHICLES_BASIC) == []

    def test_financial_critical(self) -> None:
        reasons = self.gate.mfa_reasons(_principal(), _resource(), Action.MANAGE_VEHICLE_FINANCING)
        assert reasons == ["financial_critical_action"]

    def test_decommission(self) -> None:
        reasons = self.gate.mfa_reasons(_principal(), _resource(), Action.DELETE_VEHICLES)
        assert reasons == ["decommission_action"]

    def test_restricted_data(self) -> None:
        resource = _resource(data_classification=DataClassification.RESTRICTED)
        assert "restricted_data" in self.gate.mfa_reasons(
            _principal(), resource, Action.VIEW_VEHICLES_BASIC
        )

    def test_override_path(self) -> None:
        reasons = self.gate.mfa_reasons(
            _principal(), _resource(), Action.VIEW_VEHICLES_BASIC, override_used=True
        )
        assert reasons == ["cross_region_override"]

    def test_full_pii_on_confidential(self) -> None:
        resource = _resource(
            data_classification=DataClassification.CONFIDENTIAL, contains_pii=True
        )
        reasons = self.gate.mfa_reasons(
            _principal(pii=PiiScope.FULL), resource, Action.VIEW_VEHICLES_BASIC
        )
        assert reasons == ["full_pii_access"]

    def test_full_pii_on_internal_needs_nothing(self) -> None:
        resource = _resource(contains_pii=True)
        assert self.gate.mfa_reasons(
            _principal(pii=PiiScope.FULL), resource, Action.VIEW_VEHICLES_BASIC
        ) == []
