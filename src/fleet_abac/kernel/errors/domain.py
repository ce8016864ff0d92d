"""Domain errors – configuration and invariant violations."""

from __future__ import annotations

from typing import Any

from fleet_abac.kernel.errors.base import BaseError


class DomainError(BaseError):
    """Raised when a domain rule / invariant is violated."""

    default_code = "domain_error"


class InvariantViolationError(DomainError):
    """A value object was constructed in an illegal state."""

    default_code = "invariant_violation"


class ConfigurationError(DomainError):
    """Policy configuration is malformed.

    Raised only while the engine is being built; it is meant to abort
    process startup.  ``problems`` lists every failed check so a broken
    matrix can be fixed in one pass.
    """

    default_code = "configuration_error"

    def __init__(
        self,
        message: str,
        *,
        problems: list[str] | None = None,
        **kwargs: Any,
    ) -> None:
        super().__init__(message, **kwargs)
        self.problems: list[str] = problems or []

    def to_dict(self) -> dict[str, Any]:
        base = super().to_dict()
        base["problems"] = self.problems
        return base


__all__ = ["ConfigurationError", "DomainError", "InvariantViolationError"]
