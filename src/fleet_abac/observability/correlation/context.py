"""Observability – per-request correlation context.

The request boundary stores a :class:`RequestContext`; log lines and audit
events pick its ``correlation_id`` up from the ``ContextVar`` without the
id being threaded through the decision path.
"""
from __future__ import annotations

import dataclasses
from contextvars import ContextVar
from typing import Mapping
from uuid import uuid4

CORRELATION_HEADERS: tuple[str, ...] = ("x-correlation-id", "x-request-id")


@dataclasses.dataclass(frozen=True)
class RequestContext:
    correlation_id: str
    user_id: str | None = None
    trace_id: str | None = None

    @classmethod
    def new(cls, user_id: str | None = None) -> "RequestContext":
        return cls(correlation_id=_new_id(), user_id=user_id)


_current: ContextVar[RequestContext | None] = ContextVar("fleet_abac_request", default=None)


def _new_id() -> str:
    return str(uuid4())


def _trace_id(traceparent: str | None) -> str | None:
    # version-traceid-parentid-flags
    if not traceparent:
        return None
    parts = traceparent.split("-")
    if len(parts) < 2 or not parts[1]:
        return None
    return parts[1]


class CorrelationContext:
    """Static accessors over the request ``ContextVar``."""

    @staticmethod
    def set(ctx: RequestContext) -> None:
        _current.set(ctx)

    @staticmethod
    def get() -> RequestContext | None:
        return _current.get()

    @staticmethod
    def clear() -> None:
        _current.set(None)

    @staticmethod
    def current_id() -> str:
        """Return the active correlation id, or a fresh one if none is set.

        A fresh id is not stored: evaluations outside a request still get
        distinct, traceable audit events.
        """
        ctx = _current.get()
        return ctx.correlation_id if ctx is not None else _new_id()

    @staticmethod
    def set_from_headers(headers: Mapping[str, str]) -> RequestContext:
        """Build a context from inbound headers and make it current.

        ``X-Correlation-ID`` wins over ``X-Request-ID``; without either a
        new id is generated.  ``traceparent`` supplies ``trace_id``.
        Header names are case-insensitive.
        """
        lowered = {name.lower(): value for name, value in headers.items()}
        correlation_id = next(
            (lowered[h] for h in CORRELATION_HEADERS if lowered.get(h)), None
        ) or _new_id()
        ctx = RequestContext(
            correlation_id=correlation_id,
            trace_id=_trace_id(lowered.get("traceparent")),
        )
        _current.set(ctx)
        return ctx


__all__ = ["CORRELATION_HEADERS", "CorrelationContext", "RequestContext"]
