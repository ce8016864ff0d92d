"""Observability – audit recorders and sinks."""
from fleet_abac.observability.audit.recorder import (
    AuditRecorder,
    InMemoryAuditRecorder,
    QueuedAuditRecorder,
    record_safely,
)
from fleet_abac.observability.audit.sinks import AuditSink, InMemoryAuditSink, LoggingAuditSink

__all__ = [
    "AuditRecorder",
    "AuditSink",
    "InMemoryAuditRecorder",
    "InMemoryAuditSink",
    "LoggingAuditSink",
    "QueuedAuditRecorder",
    "record_safely",
]
