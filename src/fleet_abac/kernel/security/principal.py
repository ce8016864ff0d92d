"""Kernel security – Role, PiiScope, Principal."""
from __future__ import annotations

import dataclasses
from enum import Enum
from typing import Any, Iterable, Mapping

WILDCARD_REGION = "*"


class Role(str, Enum):
    """Primary operational role of a principal."""

    GROUND_OPS = "ground_ops"
    OPS_MANAGER = "ops_manager"
    REGIONAL_MANAGER = "regional_manager"
    EXECUTIVE = "executive"
    SUPPORT = "support"
    RISK_INVESTIGATOR = "risk_investigator"
    ANALYST = "analyst"
    FINANCE_OPS = "finance_ops"
    DRIVER = "driver"
    OPERATOR = "operator"
    EXPANSION_MANAGER = "expansion_manager"

    def __str__(self) -> str:
        return self.value


class PiiScope(str, Enum):
    """How much personally identifiable information a principal may see."""

    NONE = "none"
    MASKED = "masked"
    FULL = "full"

    def __str__(self) -> str:
        return self.value


def _coerce_role(raw: Any) -> Role | None:
    if isinstance(raw, Role):
        return raw
    try:
        return Role(raw)
    except ValueError:
        return None


def _coerce_pii_scope(raw: Any) -> PiiScope:
    if isinstance(raw, PiiScope):
        return raw
    try:
        return PiiScope(raw)
    except ValueError:
        return PiiScope.NONE


@dataclasses.dataclass(frozen=True)
class Principal:
    """Authenticated actor, as resolved by the upstream session layer.

    ``role`` is ``None`` when the upstream role is missing or unknown; the
    engine denies such principals at the first gate.
    """

    id: str
    role: Role | None
    regions: frozenset[str] = frozenset()
    pii_scope: PiiScope = PiiScope.NONE

    def __post_init__(self) -> None:
        if not isinstance(self.regions, frozenset):
            object.__setattr__(self, "regions", frozenset(self.regions))

    @classmethod
    def from_claims(cls, claims: Mapping[str, Any]) -> "Principal":
        """Build a principal from loosely-typed upstream claims.

        Recognised keys: ``id`` (or ``sub``), ``role``, ``regions`` (or
        ``allowed_regions``) and ``pii_scope``.  Unknown enum values are
        coerced to their fail-closed equivalents instead of raising.
        """
        regions: Iterable[str] = claims.get("regions") or claims.get("allowed_regions") or ()
        if isinstance(regions, str):
            regions = [r.strip() for r in regions.split(",") if r.strip()]
        return cls(
            id=str(claims.get("id") or claims.get("sub") or ""),
            role=_coerce_role(claims.get("role")),
            regions=frozenset(regions),
            pii_scope=_coerce_pii_scope(claims.get("pii_scope")),
        )

    @property
    def has_global_scope(self) -> bool:
        return WILDCARD_REGION in self.regions

    def sorted_regions(self) -> list[str]:
        return sorted(self.regions)


__all__ = ["PiiScope", "Principal", "Role", "WILDCARD_REGION"]
