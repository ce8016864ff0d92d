"""Kernel security – resource attributes evaluated by the engine."""
from __future__ import annotations

import dataclasses
from enum import Enum
from typing import Any, Mapping, TypeVar

E = TypeVar("E", bound=Enum)


class OwnershipType(str, Enum):
    """Which party owns a fleet resource."""

    PLATFORM_OWNED = "platform_owned"
    FLEET_OWNED = "fleet_owned"
    OPERATOR_OWNED = "operator_owned"
    DRIVER_OWNED = "driver_owned"

    def __str__(self) -> str:
        return self.value


class DataClassification(str, Enum):
    """Sensitivity tier of a resource's data, independent of ownership."""

    PUBLIC = "public"
    INTERNAL = "internal"
    CONFIDENTIAL = "confidential"
    RESTRICTED = "restricted"

    def __str__(self) -> str:
        return self.value


class RegionState(str, Enum):
    """Lifecycle state of a service region."""

    PROSPECT = "prospect"
    PILOT = "pilot"
    ACTIVE = "active"
    SUSPENDED = "suspended"

    def __str__(self) -> str:
        return self.value


def coerce_enum(enum_cls: type[E], raw: Any) -> E | None:
    """Return ``enum_cls(raw)`` or ``None`` for missing / unknown values."""
    if raw is None or isinstance(raw, enum_cls):
        return raw
    try:
        return enum_cls(raw)
    except ValueError:
        return None


@dataclasses.dataclass(frozen=True)
class ResourceContext:
    """Resolved attributes of the resource an operation targets.

    ``ownership_type`` and ``data_classification`` may be ``None`` when
    the upstream value was unknown; both fail closed during evaluation.
    """

    resource_id: str
    ownership_type: OwnershipType | None
    region_id: str
    data_classification: DataClassification | None = DataClassification.INTERNAL
    contains_pii: bool = False
    case_id: str | None = None
    region_state: RegionState | None = None

    @classmethod
    def from_attributes(cls, attrs: Mapping[str, Any]) -> "ResourceContext":
        """Build a context from a resource-lookup record (snake_case keys)."""
        return cls(
            resource_id=str(attrs.get("resource_id") or attrs.get("id") or "unknown"),
            ownership_type=coerce_enum(OwnershipType, attrs.get("ownership_type")),
            region_id=str(attrs.get("region_id") or ""),
            data_classification=coerce_enum(
                DataClassification, attrs.get("data_classification")
            ),
            contains_pii=bool(attrs.get("contains_pii", False)),
            case_id=attrs.get("case_id") or None,
            region_state=coerce_enum(RegionState, attrs.get("region_state")),
        )


@dataclasses.dataclass(frozen=True)
class PartialContext:
    """Optional resource attributes used to narrow a bulk access policy."""

    region_id: str | None = None
    ownership_type: OwnershipType | None = None
    data_classification: DataClassification | None = None
    case_id: str | None = None


__all__ = [
    "DataClassification",
    "OwnershipType",
    "PartialContext",
    "RegionState",
    "ResourceContext",
    "coerce_enum",
]
