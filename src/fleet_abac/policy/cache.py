"""Policy – DecisionCache: sharded, thread-safe TTL cache.

Keys are hex SHA-256 digests of canonical (key-sorted) JSON, so equal
inputs always hash to the same key regardless of set or dict ordering.
Each shard is a plain dict guarded by its own lock; evaluations that land
on different shards never contend.

Expired entries are evicted lazily on :meth:`DecisionCache.get`.  In
addition, :meth:`DecisionCache.put` runs a sweep of all shards at most
once per ``sweep_interval`` seconds.
"""
from __future__ import annotations

import hashlib
import json
import threading
from typing import Any, Callable, Generic, TypeVar

from fleet_abac.kernel.errors import CacheAnomalyError
from fleet_abac.kernel.security import (
    WILDCARD_REGION,
    Action,
    PartialContext,
    Principal,
    ResourceContext,
)
from fleet_abac.kernel.time import Clock, SystemClock
from fleet_abac.observability.logging import get_logger
from fleet_abac.policy.roles import CROSS_REGION_OVERRIDE_ROLES

V = TypeVar("V")

logger = get_logger(__name__)

_ENTRY_SIZE = 2


def _enum_value(member: Any) -> Any:
    return getattr(member, "value", member)


def _digest(payload: dict[str, Any]) -> str:
    canonical = json.dumps(payload, sort_keys=True, separators=(",", ":"), default=str)
    return hashlib.sha256(canonical.encode()).hexdigest()


def _principal_fields(principal: Principal) -> dict[str, Any]:
    return {
        "principal_id": principal.id,
        "role": _enum_value(principal.role),
        "regions": principal.sorted_regions(),
        "pii_scope": _enum_value(principal.pii_scope),
    }


def decision_cache_key(
    principal: Principal, resource: ResourceContext, action: Action | str
) -> str:
    """Canonical key of one ``evaluate`` call."""
    override = (
        principal.role in CROSS_REGION_OVERRIDE_ROLES
        and bool(resource.case_id)
        and WILDCARD_REGION not in principal.regions
        and resource.region_id not in principal.regions
    )
    payload = _principal_fields(principal)
    payload.update({
        "action": _enum_value(action),
        "resource_region": resource.region_id,
        "ownership_type": _enum_value(resource.ownership_type),
        "data_classification": _enum_value(resource.data_classification),
        "contains_pii": resource.contains_pii,
        "case_override": override,
        "case_id": resource.case_id,
        "region_state": _enum_value(resource.region_state),
    })
    return _digest(payload)


def policy_cache_key(principal: Principal, context: PartialContext | None) -> str:
    """Canonical key of one ``get_access_policy`` call."""
    context = context or PartialContext()
    payload = _principal_fields(principal)
    payload.update({
        "context_region": context.region_id,
        "context_ownership": _enum_value(context.ownership_type),
        "context_data_class": _enum_value(context.data_classification),
        "context_case": bool(context.case_id),
    })
    return _digest(payload)


class DecisionCache(Generic[V]):
    """Read-through TTL cache with striped locks.

    Parameters
    ----------
    ttl:
        Default time-to-live in seconds.
    shards:
        Number of independently locked dicts.
    sweep_interval:
        Minimum seconds between full sweeps triggered from ``put``.
    clock:
        Time source; :class:`~fleet_abac.kernel.time.FrozenClock` in tests.
    validator:
        Optional predicate every cached value must satisfy.  Values that
        fail it are treated as corrupt.
    """

    def __init__(
        self,
        ttl: float = 300.0,
        *,
        shards: int = 16,
        sweep_interval: float = 60.0,
        clock: Clock | None = None,
        validator: Callable[[Any], bool] | None = None,
        name: str = "decisions",
    ) -> None:
        if ttl <= 0:
            raise ValueError("ttl must be positive")
        if shards < 1:
            raise ValueError("shards must be >= 1")
        self._ttl = ttl
        self._clock = clock or SystemClock()
        self._validator = validator
        self._name = name
        self._shards: list[dict[str, Any]] = [{} for _ in range(shards)]
        self._locks = [threading.Lock() for _ in range(shards)]
        self._sweep_interval = sweep_interval
        self._sweep_lock = threading.Lock()
        self._last_sweep = self._clock.monotonic()
        # Per shard; each slot is only written under its shard lock.
        self._hits = [0] * shards
        self._misses = [0] * shards
        self._anomalies = [0] * shards

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    @property
    def hits(self) -> int:
        return sum(self._hits)

    @property
    def misses(self) -> int:
        return sum(self._misses)

    @property
    def anomalies(self) -> int:
        """Corrupt entries evicted by :meth:`get`."""
        return sum(self._anomalies)

    def get(self, key: str) -> V | None:
        idx = self._shard_index(key)
        now = self._clock.monotonic()
        with self._locks[idx]:
            entry = self._shards[idx].get(key)
            if entry is None:
                self._misses[idx] += 1
                return None
            try:
                value, expires_at = self._unpack(key, entry)
            except CacheAnomalyError as exc:
                del self._shards[idx][key]
                self._anomalies[idx] += 1
                self._misses[idx] += 1
                logger.warning("policy.cache_anomaly", cache=self._name, **exc.to_dict())
                return None
            if expires_at <= now:
                del self._shards[idx][key]
                self._misses[idx] += 1
                return None
            self._hits[idx] += 1
            return value

    def put(self, key: str, value: V, ttl: float | None = None) -> None:
        now = self._clock.monotonic()
        idx = self._shard_index(key)
        with self._locks[idx]:
            self._shards[idx][key] = (value, now + (ttl if ttl is not None else self._ttl))
        if now - self._last_sweep >= self._sweep_interval:
            self.sweep()

    def sweep(self) -> int:
        """Evict every expired entry; return how many were removed."""
        if not self._sweep_lock.acquire(blocking=False):
            return 0
        try:
            now = self._clock.monotonic()
            self._last_sweep = now
            removed = 0
            for shard, lock in zip(self._shards, self._locks):
                with lock:
                    stale = [
                        k for k, entry in shard.items()
                        if not self._is_live(entry, now)
                    ]
                    for k in stale:
                        del shard[k]
                    removed += len(stale)
            return removed
        finally:
            self._sweep_lock.release()

    def clear(self) -> None:
        for shard, lock in zip(self._shards, self._locks):
            with lock:
                shard.clear()

    def __len__(self) -> int:
        total = 0
        for shard, lock in zip(self._shards, self._locks):
            with lock:
                total += len(shard)
        return total

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _shard_index(self, key: str) -> int:
        return int(hashlib.blake2b(key.encode(), digest_size=4).hexdigest(), 16) % len(self._shards)

    def _unpack(self, key: str, entry: Any) -> tuple[V, float]:
        if not isinstance(entry, tuple) or len(entry) != _ENTRY_SIZE:
            raise CacheAnomalyError(key, detail={"entry_type": type(entry).__name__})
        value, expires_at = entry
        if not isinstance(expires_at, (int, float)):
            raise CacheAnomalyError(key, detail={"expires_at": repr(expires_at)})
        if self._validator is not None and not self._validator(value):
            raise CacheAnomalyError(key, detail={"value_type": type(value).__name__})
        return value, float(expires_at)

    @staticmethod
    def _is_live(entry: Any, now: float) -> bool:
        if not isinstance(entry, tuple) or len(entry) != _ENTRY_SIZE:
            return False
        expires_at = entry[1]
        return isinstance(expires_at, (int, float)) and expires_at > now


__all__ = ["DecisionCache", "decision_cache_key", "policy_cache_key"]
