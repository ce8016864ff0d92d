"""Kernel errors – BaseError, root of the fleet-abac error hierarchy.

Errors here describe broken configuration or infrastructure.  An access
denial is never raised; it travels as a ``Decision`` value.
"""

from __future__ import annotations

import json
from typing import Any


class BaseError(Exception):
    """Root of every error raised by the engine.

    Parameters
    ----------
    message:
        Human-readable description, safe to log.
    code:
        Machine-readable slug; falls back to the class ``default_code``.
    detail:
        Extra JSON-friendly context (entry types, field names).
    cause:
        Underlying exception, also chained as ``__cause__``.
    """

    default_code: str = "base_error"

    def __init__(
        self,
        message: str,
        *,
        code: str | None = None,
        detail: dict[str, Any] | None = None,
        cause: BaseException | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.code = code if code is not None else self.default_code
        self.detail: dict[str, Any] = dict(detail) if detail else {}
        self.cause = cause
        if cause is not None:
            self.__cause__ = cause

    def to_dict(self) -> dict[str, Any]:
        """Structured form used in log events."""
        payload: dict[str, Any] = {"code": self.code, "message": self.message, "detail": self.detail}
        if self.cause is not None:
            payload["cause"] = repr(self.cause)
        return payload

    def __str__(self) -> str:
        return json.dumps(self.to_dict(), ensure_ascii=False, default=str)

    def __repr__(self) -> str:
        return f"{type(self).__name__}(code={self.code!r}, message={self.message!r})"


__all__ = ["BaseError"]
