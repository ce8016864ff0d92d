"""Config settings – SettingsLoader port and EnvSettingsLoader."""
from __future__ import annotations

import abc
import dataclasses
import os
from typing import Any, Callable, Mapping, TypeVar

from fleet_abac.config.settings.base import Settings
from fleet_abac.kernel.errors import ConfigurationError

T = TypeVar("T", bound=Settings)

TRUTHY = frozenset({"1", "true", "yes", "on"})


def _to_bool(raw: str) -> bool:
    return raw.strip().lower() in TRUTHY


def _to_list(raw: str) -> list[str]:
    return [item.strip() for item in raw.split(",") if item.strip()]


# Keyed by annotation text: settings modules use postponed annotations.
_COERCERS: dict[str, Callable[[str], Any]] = {
    "bool": _to_bool,
    "int": int,
    "float": float,
    "str": str,
    "list[str]": _to_list,
}


class SettingsLoader(abc.ABC):
    """Port: load settings from an external source."""

    @abc.abstractmethod
    def load(self, settings_class: type[T]) -> T: ...


class EnvSettingsLoader(SettingsLoader):
    """Load settings from environment variables.

    ``FleetAccessSettings.cache_ttl_seconds`` is read from
    ``FLEET_ABAC_CACHE_TTL_SECONDS``.  Unset variables keep the field
    default; a missing required field or an unparseable value raises
    :class:`ConfigurationError`.
    """

    def __init__(self, environ: Mapping[str, str] | None = None) -> None:
        self._environ = environ if environ is not None else os.environ

    def env_key(self, settings_class: type[Settings], field_name: str) -> str:
        prefix = getattr(settings_class, "_prefix", "")
        return f"{prefix}_{field_name}".upper() if prefix else field_name.upper()

    def load(self, settings_class: type[T]) -> T:
        values: dict[str, Any] = {}
        for field in dataclasses.fields(settings_class):  # type: ignore[arg-type]
            key = self.env_key(settings_class, field.name)
            raw = self._environ.get(key)
            if raw is None:
                if _is_required(field):
                    raise ConfigurationError(f"Required setting '{key}' is missing")
                continue
            coerce = _COERCERS.get(_annotation_name(field.type), str)
            try:
                values[field.name] = coerce(raw)
            except ValueError as exc:
                raise ConfigurationError(
                    f"Setting '{key}' has invalid value {raw!r}", cause=exc
                ) from exc
        return settings_class(**values)


def _is_required(field: dataclasses.Field[Any]) -> bool:
    return (
        field.default is dataclasses.MISSING
        and field.default_factory is dataclasses.MISSING
    )


def _annotation_name(type_hint: Any) -> str:
    if isinstance(type_hint, str):
        return type_hint.replace(" ", "")
    if isinstance(type_hint, type):
        return type_hint.__name__
    return str(type_hint)


__all__ = ["EnvSettingsLoader", "SettingsLoader"]
