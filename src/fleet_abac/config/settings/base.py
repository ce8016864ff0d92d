"""Config settings – Settings base class."""
from __future__ import annotations

import dataclasses
from typing import ClassVar

from fleet_abac.kernel.errors import ConfigurationError


@dataclasses.dataclass
class Settings:
    """Dataclass settings validated on construction.

    Subclasses set ``_prefix`` for environment lookup and override
    :meth:`problems`; every reported problem is raised together in one
    :class:`ConfigurationError`.
    """

    _prefix: ClassVar[str] = ""
    _title: ClassVar[str] = "settings"

    def __post_init__(self) -> None:
        problems = self.problems()
        if problems:
            raise ConfigurationError(f"Invalid {self._title}", problems=problems)

    def problems(self) -> list[str]:
        return []


__all__ = ["Settings"]
