"""
fleet_abac – attribute-based access control for fleet resources.

Import path convention::

    from fleet_abac.service import FleetAccessControl
    from fleet_abac.kernel.security import Principal, ResourceContext, Action
    from fleet_abac.policy import PolicyEvaluator, QueryFilterBuilder
"""

__version__ = "0.1.0"
__all__ = ["__version__"]
