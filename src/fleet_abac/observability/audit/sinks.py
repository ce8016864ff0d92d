"""Observability – audit sinks (durable, append-only destinations)."""

from __future__ import annotations

import abc
import threading
from typing import Any, Literal

from fleet_abac.kernel.security.audit import AuditEvent
from fleet_abac.observability.logging import get_logger


class AuditSink(abc.ABC):
    """Port – append-only audit log storage.

    ``write`` may block and may raise; the recorder in front of it retries
    and isolates callers from both.
    """

    @abc.abstractmethod
    def write(self, event: AuditEvent) -> None:
        """Persist *event* to the audit log."""


class InMemoryAuditSink(AuditSink):
    """List-backed sink with a small query helper, for tests and local runs."""

    def __init__(self) -> None:
        self._events: list[AuditEvent] = []
        self._guard = threading.Lock()

    def write(self, event: AuditEvent) -> None:
        with self._guard:
            self._events.append(event)

    def query(
        self,
        *,
        principal_id: str | None = None,
        action_filter: str | None = None,
        outcome: Literal["allow", "deny"] | None = None,
        limit: int = 1000,
    ) -> list[AuditEvent]:
        """Events matching every given filter, oldest first.

        ``action_filter`` matches as a substring of the action label.
        """

        def keep(event: AuditEvent) -> bool:
            return (
                (principal_id is None or event.principal_id == principal_id)
                and (action_filter is None or action_filter in event.action)
                and (outcome is None or event.outcome == outcome)
            )

        matched = sorted(filter(keep, self.all()), key=lambda e: e.occurred_at)
        return matched[:limit]

    def all(self) -> list[AuditEvent]:
        with self._guard:
            return list(self._events)


class LoggingAuditSink(AuditSink):
    """Writes each event as a structured ``audit.access`` log line.

    Entries are emitted at ``WARNING`` so they pass through restrictive
    log-level filters.

    Parameters
    ----------
    service:
        Logical service name injected into every entry.
    logger:
        Structlog logger to write to; defaults to one named ``audit``.
    """

    def __init__(self, service: str = "fleet-abac", logger: Any = None) -> None:
        self._service = service
        self._log = logger if logger is not None else get_logger("audit")

    def write(self, event: AuditEvent) -> None:
        payload = event.to_dict()
        self._log.warning("audit.access", service=self._service, **payload)


__all__ = ["AuditSink", "InMemoryAuditSink", "LoggingAuditSink"]
