"""Unit tests for audit recorders and sinks."""

from __future__ import annotations

import threading
from datetime import UTC, datetime, timedelta

import pytest
import tenacity
from structlog.testing import capture_logs

from fleet_abac.kernel.security import Decision, FailingStep
from fleet_abac.kernel.security.audit import AuditEvent
from fleet_abac.observability.audit import (
    AuditSink,
    InMemoryAuditRecorder,
    InMemoryAuditSink,
    LoggingAuditSink,
    QueuedAuditRecorder,
    record_safely,
)
from fleet_abac.observability.logging import get_logger


def _event(principal_id: str = "u1", allowed: bool = True, **kwargs: object) -> AuditEvent:
    decision = (
        Decision(allowed=True, reason="ok")
        if allowed
        else Decision.deny(FailingStep.RBAC, "Role does not grant this action")
    )
    return AuditEvent(
        principal_id=principal_id,
        resource_id="veh-1",
        action="view_vehicles_basic",
        decision=decision,
        latency_ms=0.4,
        correlation_id="corr-1",
        **kwargs,
    )


class _BlockingSink(AuditSink):
    """Holds the first write until released."""

    def __init__(self) -> None:
        self.started = threading.Event()
        self.release = threading.Event()
        self.written: list[AuditEvent] = []

    def write(self, event: AuditEvent) -> None:
        self.started.set()
        self.release.wait(5)
        self.written.append(event)


class _FlakySink(AuditSink):
    def __init__(self, failures: int) -> None:
        self.failures = failures
        self.calls = 0
        self.written: list[AuditEvent] = []

    def write(self, event: AuditEvent) -> None:
        self.calls += 1
        if self.calls <= self.failures:
            raise ConnectionError("audit store unavailable")
        self.written.append(event)


# ---------------------------------------------------------------------------
# InMemoryAuditRecorder
# ---------------------------------------------------------------------------


class TestInMemoryAuditRecorder:
    def test_records_in_order(self) -> None:
        recorder = InMemoryAuditRecorder()
        first, second = _event("a"), _event("b")
        recorder.record(first)
        recorder.record(second)
        assert recorder.events == [first, second]

    def test_events_is_a_copy(self) -> None:
        recorder = InMemoryAuditRecorder()
        recorder.record(_event())
        recorder.events.clear()
        assert len(recorder.events) == 1

    def test_clear(self) -> None:
        recorder = InMemoryAuditRecorder()
        recorder.record(_event())
        recorder.clear()
        assert recorder.events == []

    def test_flush_is_noop(self) -> None:
        assert InMemoryAuditRecorder().flush() is True


class _BrokenRecorder(InMemoryAuditRecorder):
    def record(self, event: AuditEvent) -> None:
        raise RuntimeError("recorder offline")


class TestRecordSafely:
    def test_delivers_to_recorder(self) -> None:
        recorder = InMemoryAuditRecorder()
        event = _event()
        record_safely(recorder, event)
        assert recorder.events == [event]

    def test_raising_recorder_logged(self) -> None:
        event = _event()
        with capture_logs() as logs:
            record_safely(_BrokenRecorder(), event)
        [failed] = [entry for entry in logs if entry["event"] == "audit.delivery_failed"]
        assert failed["log_level"] == "error"
        assert failed["event_id"] == event.event_id
        assert "recorder offline" in failed["cause"]


# ---------------------------------------------------------------------------
# QueuedAuditRecorder
# ---------------------------------------------------------------------------


class TestQueuedAuditRecorder:
    def test_delivers_to_sink(self) -> None:
        sink = InMemoryAuditSink()
        recorder = QueuedAuditRecorder(sink)
        events = [_event(str(i)) for i in range(10)]
        for event in events:
            recorder.record(event)
        assert recorder.flush(5)
        assert sink.all() == events
        assert recorder.delivered == 10
        recorder.close()

    def test_full_queue_drops_oldest(self) -> None:
        sink = _BlockingSink()
        recorder = QueuedAuditRecorder(sink, maxsize=2)
        first = _event("first")
        recorder.record(first)
        assert sink.started.wait(5)

        e2, e3, e4 = _event("2"), _event("3"), _event("4")
        for event in (e2, e3, e4):
            recorder.record(event)
        assert recorder.dropped == 1
        assert recorder.pending == 2

        sink.release.set()
        assert recorder.flush(5)
        assert sink.written == [first, e3, e4]
        recorder.close()

    def test_record_never_blocks_on_slow_sink(self) -> None:
        sink = _BlockingSink()
        recorder = QueuedAuditRecorder(sink, maxsize=5)
        for i in range(50):
            recorder.record(_event(str(i)))
        assert recorder.pending <= 5
        sink.release.set()
        recorder.close()

    def test_transient_failures_retried(self) -> None:
        sink = _FlakySink(failures=2)
        recorder = QueuedAuditRecorder(sink, max_attempts=3, wait=tenacity.wait_none())
        event = _event()
        recorder.record(event)
        assert recorder.flush(5)
        assert sink.calls == 3
        assert sink.written == [event]
        assert recorder.delivered == 1
        assert recorder.failed == 0
        recorder.close()

    def test_exhausted_retries_counted_not_raised(self) -> None:
        sink = _FlakySink(failures=100)
        recorder = QueuedAuditRecorder(sink, max_attempts=2, wait=tenacity.wait_none())
        recorder.record(_event("a"))
        recorder.record(_event("b"))
        assert recorder.flush(5)
        assert recorder.failed == 2
        assert recorder.delivered == 0
        assert sink.calls == 4
        recorder.close()

    def test_close_drains_pending(self) -> None:
        sink = InMemoryAuditSink()
        recorder = QueuedAuditRecorder(sink)
        for i in range(5):
            recorder.record(_event(str(i)))
        recorder.close()
        assert len(sink.all()) == 5

    def test_record_after_close_dropped(self) -> None:
        sink = InMemoryAuditSink()
        recorder = QueuedAuditRecorder(sink)
        recorder.close()
        recorder.record(_event())
        assert recorder.dropped == 1
        assert sink.all() == []

    def test_invalid_maxsize(self) -> None:
        with pytest.raises(ValueError):
            QueuedAuditRecorder(InMemoryAuditSink(), maxsize=0)


# ---------------------------------------------------------------------------
# Sinks
# ---------------------------------------------------------------------------


class TestInMemoryAuditSink:
    def setup_method(self) -> None:
        self.sink = InMemoryAuditSink()
        base = datetime(2024, 6, 15, tzinfo=UTC)
        self.late = _event("u1", occurred_at=base + timedelta(minutes=5))
        self.early = _event("u2", allowed=False, occurred_at=base)
        self.sink.write(self.late)
        self.sink.write(self.early)

    def test_query_sorted_oldest_first(self) -> None:
        assert self.sink.query() == [self.early, self.late]

    def test_query_by_principal(self) -> None:
        assert self.sink.query(principal_id="u1") == [self.late]

    def test_query_by_outcome(self) -> None:
        assert self.sink.query(outcome="deny") == [self.early]

    def test_query_by_action_substring(self) -> None:
        assert len(self.sink.query(action_filter="view_")) == 2
        assert self.sink.query(action_filter="delete") == []

    def test_limit(self) -> None:
        assert self.sink.query(limit=1) == [self.early]


class TestLoggingAuditSink:
    def test_writes_structured_entry(self) -> None:
        event = _event(allowed=False)
        with capture_logs() as logs:
            LoggingAuditSink(service="fleet-api", logger=get_logger("audit.test")).write(event)
        [entry] = logs
        assert entry["event"] == "audit.access"
        assert entry["log_level"] == "warning"
        assert entry["service"] == "fleet-api"
        assert entry["principal_id"] == "u1"
        assert entry["failing_step"] == "rbac"
        assert entry["correlation_id"] == "corr-1"
