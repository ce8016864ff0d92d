"""Policy – FieldProjector: field manifests and partial masking of rows.

String values longer than four characters keep their first and last two
characters; shorter strings are fully replaced.  Any other value (numbers,
lists, nested records) becomes :data:`MASKED_PLACEHOLDER`.  ``None``
passes through so presence can still be told apart from absence.

Example::

    mask_value("NCR-1234-XY")   # "NC*******XY"
    mask_value("AB1")           # "***"
    mask_value(1250000)         # "[MASKED]"
"""
from __future__ import annotations

import dataclasses
from typing import Any, Iterable, Mapping

from fleet_abac.kernel.security import Decision, PiiScope, Role
from fleet_abac.policy.roles import (
    FINANCIAL_FIELD_ROLES,
    OPERATIONAL_FIELD_ROLES,
    RESTRICTED_FIELD_ROLES,
    TOP_TIER_ROLE,
)

MASK_CHAR = "*"
MASKED_PLACEHOLDER = "[MASKED]"

# ---------------------------------------------------------------------------
# Field catalogue of a vehicle record
# ---------------------------------------------------------------------------

BASE_FIELDS: tuple[str, ...] = (
    "id", "vehicle_code", "license_plate", "make", "model", "year",
    "color", "category", "fuel_type", "seating_capacity", "ownership_type",
    "status", "condition_rating", "region_id", "created_at", "updated_at",
)
OPERATIONAL_FIELDS: tuple[str, ...] = (
    "total_distance_km", "total_trips", "average_rating", "utilization_rate",
    "availability_score", "service_types", "max_trip_distance_km",
)
MAINTENANCE_FIELDS: tuple[str, ...] = (
    "total_maintenance_cost", "maintenance_alerts_count", "last_maintenance_date",
    "next_maintenance_due", "condition_score",
)
FINANCIAL_FIELDS: tuple[str, ...] = (
    "purchase_price", "current_value", "depreciation_rate", "insurance_cost",
    "loan_details", "monthly_payment",
)
PII_FIELDS: tuple[str, ...] = (
    "vin", "engine_number", "registration_number", "owner_contact_info",
    "insurance_policy_number", "driver_personal_info",
)
RESTRICTED_FIELDS: tuple[str, ...] = (
    "tracking_device_id", "obd_device_data", "gps_tracking_history",
    "security_logs", "audit_trail",
)

# Masks attached to single-resource decisions.
IDENTIFIER_MASKS: tuple[str, ...] = ("vin", "engine_number", "registration_number")
FINANCIAL_MASKS: tuple[str, ...] = ("purchase_price", "insurance_policy_number", "loan_details")
CONTACT_MASKS: tuple[str, ...] = ("owner_contact", "driver_personal_info")


def _dedupe(fields: Iterable[str]) -> tuple[str, ...]:
    return tuple(dict.fromkeys(fields))


@dataclasses.dataclass(frozen=True)
class FieldRestrictions:
    """Field manifest of a bulk access policy."""

    allowed: tuple[str, ...] = ()
    masked: tuple[str, ...] = ()
    forbidden: tuple[str, ...] = ()

    @classmethod
    def deny_all(cls) -> "FieldRestrictions":
        return cls(forbidden=_dedupe(
            BASE_FIELDS + OPERATIONAL_FIELDS + MAINTENANCE_FIELDS
            + FINANCIAL_FIELDS + PII_FIELDS + RESTRICTED_FIELDS
        ))

    def to_dict(self) -> dict[str, list[str]]:
        return {
            "allowed": list(self.allowed),
            "masked": list(self.masked),
            "forbidden": list(self.forbidden),
        }


def mask_value(value: Any) -> Any:
    """Partially mask a string *value*; other non-``None`` values are replaced."""
    if value is None:
        return None
    if not isinstance(value, str):
        return MASKED_PLACEHOLDER
    length = len(value)
    if length <= 4:
        return MASK_CHAR * length
    return value[:2] + MASK_CHAR * (length - 4) + value[-2:]


class FieldProjector:
    """Computes field masks for a principal and redacts outbound rows."""

    def masked_fields(
        self,
        role: Role | None,
        pii_scope: PiiScope,
        *,
        sensitive: bool = True,
    ) -> tuple[str, ...]:
        """Fields to mask on an allowed single-resource decision.

        Records that hold neither PII nor confidential data (*sensitive*
        false) are returned unmasked.
        """
        if not sensitive:
            return ()
        if role is TOP_TIER_ROLE and pii_scope is PiiScope.FULL:
            return ()
        fields: list[str] = list(IDENTIFIER_MASKS)
        if role not in FINANCIAL_FIELD_ROLES:
            fields.extend(FINANCIAL_MASKS)
        if pii_scope is not PiiScope.FULL:
            fields.extend(CONTACT_MASKS)
        return _dedupe(fields)

    def restrictions(self, role: Role | None, pii_scope: PiiScope) -> FieldRestrictions:
        """Field manifest for bulk reads.

        ``forbidden`` holds every catalogued sensitive field the role is
        not granted, so rows never leak categories outside the manifest.
        """
        if role is None:
            return FieldRestrictions.deny_all()
        allowed: list[str] = list(BASE_FIELDS)
        forbidden: list[str] = []
        for granted, fields in (
            (role in OPERATIONAL_FIELD_ROLES, OPERATIONAL_FIELDS + MAINTENANCE_FIELDS),
            (role in FINANCIAL_FIELD_ROLES, FINANCIAL_FIELDS),
            (role in RESTRICTED_FIELD_ROLES, RESTRICTED_FIELDS),
        ):
            (allowed if granted else forbidden).extend(fields)

        masked: tuple[str, ...] = ()
        if pii_scope is PiiScope.NONE:
            forbidden.extend(PII_FIELDS)
        else:
            allowed.extend(PII_FIELDS)
            if pii_scope is PiiScope.MASKED:
                masked = PII_FIELDS
        return FieldRestrictions(
            allowed=_dedupe(allowed),
            masked=masked,
            forbidden=_dedupe(forbidden),
        )

    def project(
        self,
        row: Mapping[str, Any],
        masked: Iterable[str],
        forbidden: Iterable[str] = (),
    ) -> dict[str, Any]:
        """Return a redacted copy of *row*; the input is never mutated."""
        dropped = frozenset(forbidden)
        to_mask = frozenset(masked)
        return {
            key: mask_value(value) if key in to_mask else value
            for key, value in row.items()
            if key not in dropped
        }

    def apply(self, row: Mapping[str, Any], decision: Decision) -> dict[str, Any]:
        """Project *row* for a single-resource decision; ``{}`` when denied."""
        if not decision.allowed:
            return {}
        return self.project(row, decision.masked_fields)

    def apply_restrictions(
        self, row: Mapping[str, Any], restrictions: FieldRestrictions
    ) -> dict[str, Any]:
        return self.project(row, restrictions.masked, restrictions.forbidden)


__all__ = [
    "BASE_FIELDS",
    "FINANCIAL_FIELDS",
    "FieldProjector",
    "FieldRestrictions",
    "MASKED_PLACEHOLDER",
    "MAINTENANCE_FIELDS",
    "OPERATIONAL_FIELDS",
    "PII_FIELDS",
    "RESTRICTED_FIELDS",
    "mask_value",
]
