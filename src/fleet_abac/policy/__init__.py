"""Policy – the access-decision engine components."""
from fleet_abac.policy.cache import DecisionCache, decision_cache_key, policy_cache_key
from fleet_abac.policy.evaluator import DENIAL_REASONS, PolicyEvaluator
from fleet_abac.policy.matrix import OwnershipAccessMatrix, default_matrix
from fleet_abac.policy.predicates import And, Eq, In, Never, Predicate
from fleet_abac.policy.projection import FieldProjector, FieldRestrictions, mask_value
from fleet_abac.policy.query_filter import (
    AccessPolicy,
    QueryFilter,
    QueryFilterBuilder,
    RolePolicy,
)
from fleet_abac.policy.regional import RegionalCheck, RegionalScopeValidator
from fleet_abac.policy.roles import ROLE_ACTIONS, role_allows
from fleet_abac.policy.sensitivity import DataSensitivityGate

__all__ = [
    "AccessPolicy",
    "And",
    "DENIAL_REASONS",
    "DataSensitivityGate",
    "DecisionCache",
    "Eq",
    "FieldProjector",
    "FieldRestrictions",
    "In",
    "Never",
    "OwnershipAccessMatrix",
    "PolicyEvaluator",
    "Predicate",
    "QueryFilter",
    "QueryFilterBuilder",
    "ROLE_ACTIONS",
    "RegionalCheck",
    "RegionalScopeValidator",
    "RolePolicy",
    "decision_cache_key",
    "default_matrix",
    "mask_value",
    "policy_cache_key",
    "role_allows",
]
