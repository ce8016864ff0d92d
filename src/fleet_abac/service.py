"""FleetAccessControl – the composed access-control service.

Built once at startup and injected where needed; there is no module-level
instance.  ``shutdown`` flushes pending audit events and clears caches.

Example::

    with FleetAccessControl.from_settings() as access:
        decision = access.evaluate(principal, resource, "view_vehicles_basic")
        if not decision.allowed:
            return decision.to_error()
        return access.project(row, decision)
"""
from __future__ import annotations

from datetime import timedelta
from typing import Any, Iterable, Mapping

from fleet_abac.config import EnvSettingsLoader, FleetAccessSettings
from fleet_abac.kernel.security import (
    Action,
    Decision,
    PartialContext,
    Principal,
    ResourceContext,
    WriteDecision,
)
from fleet_abac.kernel.time import Clock, SystemClock
from fleet_abac.observability.audit import (
    AuditRecorder,
    AuditSink,
    LoggingAuditSink,
    QueuedAuditRecorder,
)
from fleet_abac.observability.logging import configure_logging, get_logger
from fleet_abac.policy.cache import DecisionCache
from fleet_abac.policy.evaluator import PolicyEvaluator
from fleet_abac.policy.matrix import OwnershipAccessMatrix
from fleet_abac.policy.projection import FieldProjector
from fleet_abac.policy.query_filter import AccessPolicy, QueryFilter, QueryFilterBuilder

logger = get_logger(__name__)


class FleetAccessControl:
    """Facade over the evaluator, query-filter builder and projector.

    All collaborators are injectable; :meth:`from_settings` wires the
    production defaults.
    """

    def __init__(
        self,
        recorder: AuditRecorder,
        *,
        matrix: OwnershipAccessMatrix | None = None,
        clock: Clock | None = None,
        cache_ttl_seconds: float = 300.0,
        cache_shards: int = 16,
        cache_sweep_interval_seconds: float = 60.0,
        investigation_window: timedelta = timedelta(days=7),
    ) -> None:
        self._clock = clock or SystemClock()
        self._recorder = recorder
        self._projector = FieldProjector()
        self._decision_cache: DecisionCache[Decision] = DecisionCache(
            cache_ttl_seconds,
            shards=cache_shards,
            sweep_interval=cache_sweep_interval_seconds,
            clock=self._clock,
            validator=lambda v: isinstance(v, Decision),
            name="decisions",
        )
        self._policy_cache: DecisionCache[AccessPolicy] = DecisionCache(
            cache_ttl_seconds,
            shards=cache_shards,
            sweep_interval=cache_sweep_interval_seconds,
            clock=self._clock,
            validator=lambda v: isinstance(v, AccessPolicy),
            name="policies",
        )
        self._evaluator = PolicyEvaluator(
            recorder,
            matrix=matrix,
            projector=self._projector,
            cache=self._decision_cache,
            clock=self._clock,
            investigation_window=investigation_window,
        )
        self._query_filters = QueryFilterBuilder(
            recorder,
            cache=self._policy_cache,
            projector=self._projector,
            clock=self._clock,
        )
        self._closed = False

    @classmethod
    def from_settings(
        cls,
        settings: FleetAccessSettings | None = None,
        *,
        sink: AuditSink | None = None,
        clock: Clock | None = None,
        configure_logs: bool = False,
    ) -> "FleetAccessControl":
        """Build the service from ``FLEET_ABAC_*`` settings.

        Audit events go through a :class:`QueuedAuditRecorder` to *sink*
        (structured log lines by default).
        """
        settings = settings or EnvSettingsLoader().load(FleetAccessSettings)
        if configure_logs:
            configure_logging(settings.log_level, json=settings.json_logs)
        recorder = QueuedAuditRecorder(
            sink or LoggingAuditSink(),
            maxsize=settings.audit_queue_size,
            max_attempts=settings.audit_max_attempts,
            backoff_max=settings.audit_backoff_max_seconds,
        )
        return cls(
            recorder,
            clock=clock,
            cache_ttl_seconds=settings.cache_ttl_seconds,
            cache_shards=settings.cache_shards,
            cache_sweep_interval_seconds=settings.cache_sweep_interval_seconds,
            investigation_window=timedelta(days=settings.investigation_window_days),
        )

    # ------------------------------------------------------------------
    # Single-resource decisions
    # ------------------------------------------------------------------

    def evaluate(
        self, principal: Principal, resource: ResourceContext, action: Action | str
    ) -> Decision:
        return self._evaluator.evaluate(principal, resource, action)

    def evaluate_many(
        self,
        principal: Principal,
        resource: ResourceContext,
        actions: Iterable[Action | str],
    ) -> dict[str, Decision]:
        return self._evaluator.evaluate_many(principal, resource, actions)

    def effective_actions(self, principal: Principal) -> frozenset[Action]:
        return self._evaluator.effective_actions(principal)

    def project(self, row: Mapping[str, Any], decision: Decision) -> dict[str, Any]:
        return self._projector.apply(row, decision)

    # ------------------------------------------------------------------
    # Bulk access
    # ------------------------------------------------------------------

    def get_access_policy(
        self, principal: Principal, context: PartialContext | None = None
    ) -> AccessPolicy:
        return self._query_filters.get_access_policy(principal, context)

    def build_query_filter(
        self,
        principal: Principal,
        operation: str,
        context: PartialContext | None = None,
    ) -> QueryFilter:
        return self._query_filters.build_query_filter(principal, operation, context)

    def filter_results(
        self, rows: Iterable[Mapping[str, Any]], policy: AccessPolicy
    ) -> list[dict[str, Any]]:
        return self._query_filters.filter_results(rows, policy)

    def validate_write(
        self, principal: Principal, payload: Mapping[str, Any], operation: str
    ) -> WriteDecision:
        return self._query_filters.validate_write(principal, payload, operation)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def clear_caches(self) -> None:
        self._decision_cache.clear()
        self._policy_cache.clear()

    def shutdown(self, timeout: float = 5.0) -> None:
        """Flush pending audit events and clear caches.  Idempotent."""
        if self._closed:
            return
        self._closed = True
        self._recorder.close(timeout)
        self.clear_caches()
        logger.info("fleet_abac.shutdown")

    def __enter__(self) -> "FleetAccessControl":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.shutdown()


__all__ = ["FleetAccessControl"]
