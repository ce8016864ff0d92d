"""Observability – correlation context."""
from fleet_abac.observability.correlation.context import CorrelationContext, RequestContext

__all__ = ["CorrelationContext", "RequestContext"]
