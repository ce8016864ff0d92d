"""Observability – fire-and-forget audit recorders.

The decision path hands every :class:`AuditEvent` to an
:class:`AuditRecorder` and returns immediately.  :class:`QueuedAuditRecorder`
buffers events in a bounded queue and drains it from a background thread,
retrying the sink with ``tenacity``.  When the buffer is full the *oldest*
pending event is dropped.
"""
from __future__ import annotations

import abc
import collections
import threading
from typing import Any

import tenacity

from fleet_abac.kernel.errors import AuditDeliveryError
from fleet_abac.kernel.security.audit import AuditEvent
from fleet_abac.observability.audit.sinks import AuditSink
from fleet_abac.observability.logging import get_logger

logger = get_logger(__name__)


class AuditRecorder(abc.ABC):
    """Port: accept audit events without blocking or failing the caller."""

    @abc.abstractmethod
    def record(self, event: AuditEvent) -> None:
        """Accept *event* for delivery.  Must never raise."""

    def flush(self, timeout: float = 5.0) -> bool:  # noqa: ARG002
        """Wait until pending events are delivered; ``True`` if drained."""
        return True

    def close(self, timeout: float = 5.0) -> None:  # noqa: ARG002
        """Flush pending events and release resources."""


def record_safely(recorder: AuditRecorder, event: AuditEvent) -> None:
    """Hand *event* to *recorder*; a raising recorder is logged, not propagated."""
    try:
        recorder.record(event)
    except Exception as exc:  # noqa: BLE001
        error = AuditDeliveryError(event.event_id, cause=exc)
        logger.error("audit.delivery_failed", event_id=event.event_id, **error.to_dict())


class InMemoryAuditRecorder(AuditRecorder):
    """Synchronous recorder that keeps events in a list (tests)."""

    def __init__(self) -> None:
        self._events: list[AuditEvent] = []
        self._lock = threading.Lock()

    def record(self, event: AuditEvent) -> None:
        with self._lock:
            self._events.append(event)

    @property
    def events(self) -> list[AuditEvent]:
        with self._lock:
            return list(self._events)

    def clear(self) -> None:
        with self._lock:
            self._events.clear()


class QueuedAuditRecorder(AuditRecorder):
    """Bounded, drop-oldest audit queue drained by a daemon thread.

    Parameters
    ----------
    sink:
        Destination for events.  May block or raise.
    maxsize:
        Maximum number of pending events.
    max_attempts:
        Delivery attempts per event, the first one included.
    wait:
        ``tenacity`` wait strategy between attempts.  Defaults to
        exponential backoff capped at *backoff_max* seconds.
    """

    def __init__(
        self,
        sink: AuditSink,
        *,
        maxsize: int = 10_000,
        max_attempts: int = 3,
        backoff_max: float = 2.0,
        wait: Any = None,
    ) -> None:
        if maxsize < 1:
            raise ValueError("maxsize must be >= 1")
        self._sink = sink
        self._maxsize = maxsize
        self._buffer: collections.deque[AuditEvent] = collections.deque()
        self._cond = threading.Condition()
        self._in_flight = 0
        self._closed = False
        self._retrying = tenacity.Retrying(
            stop=tenacity.stop_after_attempt(max_attempts),
            wait=wait or tenacity.wait_exponential(multiplier=0.05, max=backoff_max),
            reraise=True,
        )
        self.dropped = 0
        self.delivered = 0
        self.failed = 0
        self._worker = threading.Thread(
            target=self._drain, name="fleet-abac-audit", daemon=True
        )
        self._worker.start()

    # ------------------------------------------------------------------
    # AuditRecorder interface
    # ------------------------------------------------------------------

    def record(self, event: AuditEvent) -> None:
        with self._cond:
            if self._closed:
                self.dropped += 1
                logger.warning("audit.dropped", reason="recorder_closed", event_id=event.event_id)
                return
            if len(self._buffer) >= self._maxsize:
                oldest = self._buffer.popleft()
                self.dropped += 1
                logger.warning("audit.dropped", reason="queue_full", event_id=oldest.event_id)
            self._buffer.append(event)
            self._cond.notify()

    def flush(self, timeout: float = 5.0) -> bool:
        with self._cond:
            return self._cond.wait_for(
                lambda: not self._buffer and self._in_flight == 0, timeout=timeout
            )

    def close(self, timeout: float = 5.0) -> None:
        drained = self.flush(timeout)
        with self._cond:
            self._closed = True
            self._cond.notify_all()
        self._worker.join(timeout)
        if not drained:
            logger.warning("audit.close_timeout", pending=self.pending)

    @property
    def pending(self) -> int:
        with self._cond:
            return len(self._buffer)

    # ------------------------------------------------------------------
    # Worker
    # ------------------------------------------------------------------

    def _drain(self) -> None:
        while True:
            with self._cond:
                self._cond.wait_for(lambda: self._buffer or self._closed)
                if not self._buffer:
                    return
                event = self._buffer.popleft()
                self._in_flight += 1
            try:
                self._deliver(event)
            finally:
                with self._cond:
                    self._in_flight -= 1
                    self._cond.notify_all()

    def _deliver(self, event: AuditEvent) -> None:
        try:
            self._retrying(self._sink.write, event)
        except Exception as exc:  # noqa: BLE001 - delivery failures never reach callers
            self.failed += 1
            error = AuditDeliveryError(
                event.event_id,
                attempts=self._retrying.statistics.get("attempt_number", 0),
                cause=exc,
            )
            logger.error("audit.delivery_failed", **error.to_dict())
        else:
            self.delivered += 1


__all__ = ["AuditRecorder", "InMemoryAuditRecorder", "QueuedAuditRecorder", "record_safely"]
