"""Policy – engine-agnostic row predicates.

A predicate tree references values only through named parameters, so a
data layer can bind them with its own placeholder syntax.  Trees can also
be evaluated in memory with :meth:`Predicate.is_satisfied_by`.

Example::

    pred = And((In("region_id", "region_ids"), Eq("is_active", "is_active")))
    pred.is_satisfied_by(row, {"region_ids": ["NCR"], "is_active": True})
"""
from __future__ import annotations

import abc
import dataclasses
from typing import Any, Mapping


class Predicate(abc.ABC):
    """Base node of a row predicate tree."""

    @abc.abstractmethod
    def is_satisfied_by(self, row: Mapping[str, Any], parameters: Mapping[str, Any]) -> bool: ...

    @abc.abstractmethod
    def to_dict(self) -> dict[str, Any]: ...

    def parameter_names(self) -> frozenset[str]:
        return frozenset()


@dataclasses.dataclass(frozen=True)
class In(Predicate):
    """``row[field]`` is a member of the list bound to ``param``."""

    field: str
    param: str

    def is_satisfied_by(self, row: Mapping[str, Any], parameters: Mapping[str, Any]) -> bool:
        return row.get(self.field) in parameters[self.param]

    def to_dict(self) -> dict[str, Any]:
        return {"op": "in", "field": self.field, "param": self.param}

    def parameter_names(self) -> frozenset[str]:
        return frozenset({self.param})


@dataclasses.dataclass(frozen=True)
class Eq(Predicate):
    """``row[field]`` equals the value bound to ``param``."""

    field: str
    param: str

    def is_satisfied_by(self, row: Mapping[str, Any], parameters: Mapping[str, Any]) -> bool:
        return row.get(self.field) == parameters[self.param]

    def to_dict(self) -> dict[str, Any]:
        return {"op": "eq", "field": self.field, "param": self.param}

    def parameter_names(self) -> frozenset[str]:
        return frozenset({self.param})


@dataclasses.dataclass(frozen=True)
class And(Predicate):
    clauses: tuple[Predicate, ...]

    def is_satisfied_by(self, row: Mapping[str, Any], parameters: Mapping[str, Any]) -> bool:
        return all(c.is_satisfied_by(row, parameters) for c in self.clauses)

    def to_dict(self) -> dict[str, Any]:
        return {"op": "and", "clauses": [c.to_dict() for c in self.clauses]}

    def parameter_names(self) -> frozenset[str]:
        names: frozenset[str] = frozenset()
        for clause in self.clauses:
            names |= clause.parameter_names()
        return names


@dataclasses.dataclass(frozen=True)
class Never(Predicate):
    """Matches no row (deny-all filter)."""

    def is_satisfied_by(self, row: Mapping[str, Any], parameters: Mapping[str, Any]) -> bool:  # noqa: ARG002
        return False

    def to_dict(self) -> dict[str, Any]:
        return {"op": "never"}


__all__ = ["And", "Eq", "In", "Never", "Predicate"]
