"""Observability – structured logging."""
from fleet_abac.observability.logging.factory import configure_logging
from fleet_abac.observability.logging.processors import CorrelationProcessor, get_logger

__all__ = ["CorrelationProcessor", "configure_logging", "get_logger"]
