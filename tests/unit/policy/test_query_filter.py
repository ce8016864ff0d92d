"""Unit tests for QueryFilterBuilder: access policies, row filters, writes."""

from __future__ import annotations

import json
from datetime import UTC, datetime

import pytest
from structlog.testing import capture_logs

from fleet_abac.kernel.security import (
    AuditEvent,
    DataClassification,
    FailingStep,
    OwnershipType,
    PartialContext,
    PiiScope,
    Principal,
    Role,
)
from fleet_abac.kernel.time import FrozenClock
from fleet_abac.observability.audit import InMemoryAuditRecorder
from fleet_abac.policy.cache import DecisionCache
from fleet_abac.policy.predicates import And, Eq, In, Never
from fleet_abac.policy.projection import PII_FIELDS, RESTRICTED_FIELDS
from fleet_abac.policy.query_filter import ACTIVE_STATUSES, QueryFilterBuilder


def _builder(cache: bool = False) -> tuple[QueryFilterBuilder, InMemoryAuditRecorder]:
    clock = FrozenClock(datetime(2024, 6, 15, tzinfo=UTC))
    recorder = InMemoryAuditRecorder()
    builder = QueryFilterBuilder(
        recorder,
        cache=DecisionCache(300, clock=clock, name="policies") if cache else None,
        clock=clock,
    )
    return builder, recorder


def _principal(
    role: Role | None = Role.GROUND_OPS,
    regions: tuple[str, ...] = ("NCR",),
    pii: PiiScope = PiiScope.NONE,
    principal_id: str = "u1",
) -> Principal:
    return Principal(principal_id, role, frozenset(regions), pii)


def _row(**overrides: object) -> dict:
    row: dict = {
        "id": "veh-1",
        "license_plate": "NCR-1234",
        "region_id": "NCR",
        "ownership_type": "fleet_owned",
        "data_classification": "internal",
        "status": "active",
        "is_active": True,
        "assigned_user_id": "u1",
        "vin": "1HGCM82633A004352",
        "purchase_price": 1_250_000,
        "security_logs": ["login"],
    }
    row.update(overrides)
    return row


# ---------------------------------------------------------------------------
# get_access_policy
# ---------------------------------------------------------------------------


class TestAccessPolicy:
    def test_ground_ops_read_only(self) -> None:
        builder, _ = _builder()
        policy = builder.get_access_policy(_principal())
        assert policy.can_read
        assert not policy.can_write
        assert not policy.can_delete
        assert policy.allowed_regions == {"NCR"}
        assert policy.allowed_ownership_types == {
            OwnershipType.PLATFORM_OWNED,
            OwnershipType.FLEET_OWNED,
        }
        assert policy.allowed_data_classes == {
            DataClassification.PUBLIC,
            DataClassification.INTERNAL,
        }
        assert not policy.requires_mfa
        assert policy.audit_required

    def test_executive_global(self) -> None:
        builder, _ = _builder()
        policy = builder.get_access_policy(_principal(Role.EXECUTIVE, ("NCR",), PiiScope.FULL))
        assert policy.can_delete
        assert policy.allowed_regions == {"*"}
        assert policy.allowed_ownership_types == frozenset(OwnershipType)
        assert policy.requires_mfa

    def test_risk_investigator_global(self) -> None:
        builder, _ = _builder()
        policy = builder.get_access_policy(_principal(Role.RISK_INVESTIGATOR))
        assert policy.allowed_regions == {"*"}
        assert not policy.can_write

    def test_missing_role_gets_nothing(self) -> None:
        builder, _ = _builder()
        policy = builder.get_access_policy(_principal(role=None))
        assert not (policy.can_read or policy.can_write or policy.can_delete)
        assert policy.field_restrictions.allowed == ()

    def test_empty_regions_get_nothing(self) -> None:
        builder, _ = _builder()
        policy = builder.get_access_policy(_principal(regions=()))
        assert not policy.can_read

    def test_context_region_outside_scope(self) -> None:
        builder, _ = _builder()
        policy = builder.get_access_policy(_principal(), PartialContext(region_id="CEB"))
        assert not policy.can_read
        assert policy.allowed_regions == frozenset()

    def test_context_region_inside_scope(self) -> None:
        builder, _ = _builder()
        policy = builder.get_access_policy(
            _principal(regions=("NCR", "CEB")), PartialContext(region_id="CEB")
        )
        assert policy.can_read
        assert policy.allowed_regions == {"CEB"}

    def test_context_case_override(self) -> None:
        builder, _ = _builder()
        policy = builder.get_access_policy(
            _principal(Role.SUPPORT), PartialContext(region_id="CEB", case_id="C-1")
        )
        assert policy.can_read
        assert policy.allowed_regions == {"CEB"}

    def test_context_ownership_intersection(self) -> None:
        builder, _ = _builder()
        narrowed = builder.get_access_policy(
            _principal(Role.OPS_MANAGER), PartialContext(ownership_type=OwnershipType.FLEET_OWNED)
        )
        assert narrowed.allowed_ownership_types == {OwnershipType.FLEET_OWNED}
        assert narrowed.can_write

        emptied = builder.get_access_policy(
            _principal(Role.OPS_MANAGER), PartialContext(ownership_type=OwnershipType.DRIVER_OWNED)
        )
        assert emptied.allowed_ownership_types == frozenset()
        assert not (emptied.can_read or emptied.can_write)

    def test_context_classification_intersection(self) -> None:
        builder, _ = _builder()
        policy = builder.get_access_policy(
            _principal(), PartialContext(data_classification=DataClassification.RESTRICTED)
        )
        assert not policy.can_read

    def test_cached_policy_reused(self) -> None:
        builder, _ = _builder(cache=True)
        first = builder.get_access_policy(_principal())
        assert builder.get_access_policy(_principal()) is first

    def test_to_dict(self) -> None:
        builder, _ = _builder()
        payload = builder.get_access_policy(_principal()).to_dict()
        assert payload["allowed_regions"] == ["NCR"]
        assert payload["allowed_ownership_types"] == ["fleet_owned", "platform_owned"]


# ---------------------------------------------------------------------------
# build_query_filter
# ---------------------------------------------------------------------------


class TestBuildQueryFilter:
    def test_ground_ops_read(self) -> None:
        builder, _ = _builder()
        qf = builder.build_query_filter(_principal(), "read")
        assert qf.allowed
        assert qf.predicate == And(
            (
                In("region_id", "region_ids"),
                In("ownership_type", "ownership_types"),
                In("data_classification", "data_classes"),
                In("status", "allowed_statuses"),
                Eq("is_active", "is_active"),
            )
        )
        assert qf.parameters == {
            "region_ids": ["NCR"],
            "ownership_types": ["fleet_owned", "platform_owned"],
            "data_classes": ["internal", "public"],
            "allowed_statuses": list(ACTIVE_STATUSES),
            "is_active": True,
        }
        assert qf.joins == ("regions",)

    def test_wildcard_omits_region_clause(self) -> None:
        builder, _ = _builder()
        qf = builder.build_query_filter(_principal(Role.EXECUTIVE, ("*",), PiiScope.FULL), "delete")
        assert qf.allowed
        assert "region_ids" not in qf.parameters
        assert qf.joins == ()

    def test_driver_assignment_constraint(self) -> None:
        builder, _ = _builder()
        qf = builder.build_query_filter(_principal(Role.DRIVER, principal_id="drv-9"), "read")
        assert isinstance(qf.predicate, And)
        assert Eq("assigned_user_id", "user_id") in qf.predicate.clauses
        assert qf.parameters["user_id"] == "drv-9"
        assert qf.joins == ("vehicle_assignments", "regions")

    def test_missing_capability_gives_deny_all(self) -> None:
        builder, _ = _builder()
        qf = builder.build_query_filter(_principal(), "write")
        assert not qf.allowed
        assert qf.predicate == Never()
        assert qf.parameters == {}
        assert not qf.matches(_row())

    def test_unknown_operation_denied(self) -> None:
        builder, _ = _builder()
        assert not builder.build_query_filter(_principal(), "truncate").allowed

    def test_predicate_holds_no_raw_values(self) -> None:
        builder, _ = _builder()
        qf = builder.build_query_filter(_principal(Role.DRIVER, principal_id="drv-9"), "read")
        rendered = json.dumps(qf.predicate.to_dict())
        assert "NCR" not in rendered
        assert "drv-9" not in rendered
        assert qf.predicate.parameter_names() == set(qf.parameters)

    def test_matches_rows(self) -> None:
        builder, _ = _builder()
        qf = builder.build_query_filter(_principal(), "read")
        assert qf.matches(_row())
        assert not qf.matches(_row(region_id="CEB"))
        assert not qf.matches(_row(ownership_type="driver_owned"))
        assert not qf.matches(_row(status="decommissioned"))
        assert not qf.matches(_row(is_active=False))

    def test_field_manifest_from_policy(self) -> None:
        builder, _ = _builder()
        qf = builder.build_query_filter(_principal(), "read")
        assert set(PII_FIELDS) <= set(qf.field_manifest.forbidden)


# ---------------------------------------------------------------------------
# filter_results
# ---------------------------------------------------------------------------


class TestFilterResults:
    def test_no_read_yields_nothing(self) -> None:
        builder, _ = _builder()
        policy = builder.get_access_policy(_principal(role=None))
        assert builder.filter_results([_row()], policy) == []

    def test_pii_dropped_without_scope(self) -> None:
        builder, _ = _builder()
        policy = builder.get_access_policy(_principal())
        [out] = builder.filter_results([_row()], policy)
        assert "vin" not in out
        assert "purchase_price" not in out
        assert "security_logs" not in out
        assert out["license_plate"] == "NCR-1234"

    def test_pii_masked_with_masked_scope(self) -> None:
        builder, _ = _builder()
        policy = builder.get_access_policy(_principal(Role.SUPPORT, pii=PiiScope.MASKED))
        [out] = builder.filter_results([_row()], policy)
        assert out["vin"] == "1H*************52"

    def test_rows_not_mutated(self) -> None:
        builder, _ = _builder()
        row = _row()
        builder.filter_results([row], builder.get_access_policy(_principal()))
        assert row["vin"] == "1HGCM82633A004352"

    def test_restricted_fields_kept_for_investigator(self) -> None:
        builder, _ = _builder()
        policy = builder.get_access_policy(_principal(Role.RISK_INVESTIGATOR, pii=PiiScope.FULL))
        [out] = builder.filter_results([_row()], policy)
        assert out["security_logs"] == ["login"]
        assert not set(RESTRICTED_FIELDS) & set(policy.field_restrictions.forbidden)


# ---------------------------------------------------------------------------
# validate_write
# ---------------------------------------------------------------------------


def _payload(**overrides: object) -> dict:
    payload: dict = {
        "id": "veh-1",
        "region_id": "NCR",
        "ownership_type": "fleet_owned",
        "status": "maintenance",
    }
    payload.update(overrides)
    return payload


class TestValidateWrite:
    def test_read_only_role_denied(self) -> None:
        builder, _ = _builder()
        d = builder.validate_write(_principal(), _payload(), "create")
        assert not d.allowed
        assert d.step is FailingStep.RBAC

    def test_delete_needs_delete_capability(self) -> None:
        builder, _ = _builder()
        d = builder.validate_write(_principal(Role.REGIONAL_MANAGER), _payload(), "delete")
        assert d.step is FailingStep.RBAC

    def test_unknown_operation_denied(self) -> None:
        builder, _ = _builder()
        d = builder.validate_write(_principal(Role.OPS_MANAGER), _payload(), "archive")
        assert d.step is FailingStep.RBAC

    def test_region_outside_scope(self) -> None:
        builder, _ = _builder()
        d = builder.validate_write(_principal(Role.OPS_MANAGER), _payload(region_id="CEB"), "update")
        assert d.step is FailingStep.REGIONAL
        assert d.restrictions == ("region_access",)

    @pytest.mark.parametrize("ownership", ["driver_owned", "xpress_owned"])
    def test_ownership_outside_policy(self, ownership: str) -> None:
        builder, _ = _builder()
        d = builder.validate_write(
            _principal(Role.OPS_MANAGER), _payload(ownership_type=ownership), "update"
        )
        assert d.step is FailingStep.OWNERSHIP
        assert d.restrictions == ("ownership_access",)

    def test_classification_outside_policy(self) -> None:
        builder, _ = _builder()
        d = builder.validate_write(
            _principal(Role.OPS_MANAGER), _payload(data_classification="restricted"), "update"
        )
        assert d.step is FailingStep.SENSITIVITY
        assert d.restrictions == ("classification_access",)

    @pytest.mark.parametrize("field", ["purchase_price", "vin", "security_logs"])
    def test_forbidden_field_touch(self, field: str) -> None:
        builder, _ = _builder()
        d = builder.validate_write(
            _principal(Role.OPS_MANAGER), _payload(**{field: "x"}), "update"
        )
        assert d.step is FailingStep.SENSITIVITY
        assert d.restrictions == ("field_access",)
        assert field not in d.reason

    def test_allowed_update(self) -> None:
        builder, _ = _builder()
        d = builder.validate_write(_principal(Role.OPS_MANAGER), _payload(), "update")
        assert d.allowed
        assert not d.requires_mfa
        assert d.conditions == ()
        assert d.audit_required

    def test_complete_create_allowed(self) -> None:
        builder, _ = _builder()
        d = builder.validate_write(
            _principal(Role.OPS_MANAGER), _payload(data_classification="internal"), "create"
        )
        assert d.allowed

    @pytest.mark.parametrize(
        ("payload", "step", "restriction"),
        [
            ({"make": "Toyota"}, FailingStep.REGIONAL, "region_access"),
            (
                {"region_id": "", "ownership_type": "fleet_owned", "data_classification": "internal"},
                FailingStep.REGIONAL,
                "region_access",
            ),
            (
                {"region_id": "  ", "ownership_type": "fleet_owned", "data_classification": "internal"},
                FailingStep.REGIONAL,
                "region_access",
            ),
            (
                {"region_id": "NCR", "data_classification": "internal"},
                FailingStep.OWNERSHIP,
                "ownership_access",
            ),
            (
                {"region_id": "NCR", "ownership_type": "fleet_owned"},
                FailingStep.SENSITIVITY,
                "classification_access",
            ),
        ],
    )
    def test_create_requires_scope_attributes(
        self, payload: dict, step: FailingStep, restriction: str
    ) -> None:
        builder, _ = _builder()
        d = builder.validate_write(_principal(Role.OPS_MANAGER), payload, "create")
        assert not d.allowed
        assert d.step is step
        assert d.restrictions == (restriction,)

    @pytest.mark.parametrize("region", ["", "   ", None])
    def test_update_with_blank_region_denied(self, region: object) -> None:
        builder, _ = _builder()
        d = builder.validate_write(
            _principal(Role.OPS_MANAGER), _payload(region_id=region), "update"
        )
        assert d.step is FailingStep.REGIONAL
        assert d.restrictions == ("region_access",)

    def test_update_without_region_key_allowed(self) -> None:
        builder, _ = _builder()
        d = builder.validate_write(
            _principal(Role.OPS_MANAGER), {"id": "veh-1", "status": "maintenance"}, "update"
        )
        assert d.allowed

    def test_role_policy_mfa(self) -> None:
        builder, _ = _builder()
        d = builder.validate_write(_principal(Role.REGIONAL_MANAGER), _payload(), "update")
        assert d.allowed
        assert d.requires_mfa
        assert d.conditions[0].metadata == {"reasons": ("role_policy",)}

    def test_delete_always_requires_mfa(self) -> None:
        builder, _ = _builder()
        d = builder.validate_write(
            _principal(Role.EXECUTIVE, ("*",), PiiScope.FULL), _payload(region_id="CEB"), "delete"
        )
        assert d.allowed
        assert d.requires_mfa
        assert d.conditions[0].metadata == {"reasons": ("role_policy", "decommission_action")}

    def test_each_validation_audited(self) -> None:
        builder, recorder = _builder()
        builder.validate_write(_principal(Role.OPS_MANAGER), _payload(), "update")
        builder.validate_write(_principal(), _payload(id=None), "create")
        events = recorder.events
        assert [e.action for e in events] == ["vehicle.update", "vehicle.create"]
        assert events[0].resource_id == "veh-1"
        assert events[1].resource_id == "*"
        assert events[1].failing_step is FailingStep.RBAC

    def test_raising_recorder_does_not_fail_validation(self) -> None:
        class BrokenRecorder(InMemoryAuditRecorder):
            def record(self, event: AuditEvent) -> None:
                raise RuntimeError("recorder offline")

        builder = QueryFilterBuilder(
            BrokenRecorder(), clock=FrozenClock(datetime(2024, 6, 15, tzinfo=UTC))
        )
        with capture_logs() as logs:
            d = builder.validate_write(_principal(Role.OPS_MANAGER), _payload(), "update")
        assert d.allowed
        assert any(entry["event"] == "audit.delivery_failed" for entry in logs)
