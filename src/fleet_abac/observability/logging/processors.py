"""Observability – structlog processors and the get_logger helper."""
from __future__ import annotations

from typing import Any

import structlog

from fleet_abac.observability.correlation import CorrelationContext


class CorrelationProcessor:
    """Copy the ambient request ids onto every log event.

    Adds ``correlation_id`` plus ``user_id`` and ``trace_id`` when known.
    Keys the caller already bound win.
    """

    fields: tuple[str, ...] = ("correlation_id", "user_id", "trace_id")

    def __call__(self, _logger: Any, _method: str, event_dict: dict[str, Any]) -> dict[str, Any]:
        ctx = CorrelationContext.get()
        if ctx is None:
            return event_dict
        for name in self.fields:
            value = getattr(ctx, name)
            if value is not None:
                event_dict.setdefault(name, value)
        return event_dict


def get_logger(name: str | None = None, **bound: Any) -> Any:
    """Return a structlog logger named *name* with *bound* values attached."""
    log = structlog.get_logger(name)
    return log.bind(**bound) if bound else log


__all__ = ["CorrelationProcessor", "get_logger"]
