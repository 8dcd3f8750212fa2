"""Shared, immutable configuration passed to every bundler plugin."""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field, replace
from types import MappingProxyType
from typing import TYPE_CHECKING, Any

from cnstack.core.errors import InvalidRequestError

if TYPE_CHECKING:
    from cnstack.core.settings import CnsSettings


def _freeze(mapping: Mapping[str, str] | None) -> Mapping[str, str]:
    return MappingProxyType(dict(mapping or {}))


def _freeze_nested(mapping: Mapping[str, Mapping[str, str]] | None) -> Mapping[str, Mapping[str, str]]:
    return MappingProxyType({key: _freeze(value) for key, value in (mapping or {}).items()})


@dataclass(frozen=True)
class BundlerConfig:
    """
    Configuration shared by all plugins in one orchestration run.

    Instances are frozen and their mappings are read-only views, so plugins
    running concurrently can share one instance. Accessor methods return
    mutable copies.
    """

    include_readme: bool = True
    include_checksums: bool = True
    verbose: bool = False
    version: str = "dev"
    namespace: str = ""
    helm_repository: str = ""
    helm_chart_version: str = ""
    custom_labels: Mapping[str, str] = field(default_factory=dict)
    custom_annotations: Mapping[str, str] = field(default_factory=dict)
    value_overrides: Mapping[str, Mapping[str, str]] = field(default_factory=dict)

    def __post_init__(self) -> None:
        object.__setattr__(self, "custom_labels", _freeze(self.custom_labels))
        object.__setattr__(self, "custom_annotations", _freeze(self.custom_annotations))
        object.__setattr__(self, "value_overrides", _freeze_nested(self.value_overrides))

    @classmethod
    def from_settings(cls, settings: CnsSettings, **overrides: Any) -> BundlerConfig:
        config = cls(
            include_readme=settings.include_readme,
            include_checksums=settings.include_checksums,
            version=settings.bundle_version,
        )
        return replace(config, **overrides) if overrides else config

    def labels(self) -> dict[str, str]:
        return dict(self.custom_labels)

    def annotations(self) -> dict[str, str]:
        return dict(self.custom_annotations)

    def overrides(self) -> dict[str, dict[str, str]]:
        return {key: dict(value) for key, value in self.value_overrides.items()}

    def value_overrides_for(self, bundle_type: str) -> dict[str, str]:
        """Overrides addressed to one bundler, matching with or without hyphens."""
        if bundle_type in self.value_overrides:
            return dict(self.value_overrides[bundle_type])
        compact = bundle_type.replace("-", "")
        for key, value in self.value_overrides.items():
            if key.replace("-", "") == compact:
                return dict(value)
        return {}

    def with_options(self, **changes: Any) -> BundlerConfig:
        """Copy with some fields replaced."""
        return replace(self, **changes)


def parse_value_overrides(entries: Iterable[str]) -> dict[str, dict[str, str]]:
    """Parse ``bundler:path=value`` strings into a per-bundler mapping.

    >>> parse_value_overrides(["gpu-operator:driver.version=570.86.15"])
    {'gpu-operator': {'driver.version': '570.86.15'}}
    """
    result: dict[str, dict[str, str]] = {}
    for entry in entries:
        bundler, sep, path_value = entry.partition(":")
        if not sep:
            raise InvalidRequestError(
                f"invalid format '{entry}': expected 'bundler:path=value'"
            ).with_context(field="value_overrides")
        path, sep, value = path_value.partition("=")
        if not sep:
            raise InvalidRequestError(
                f"invalid format '{entry}': expected 'bundler:path=value'"
            ).with_context(field="value_overrides")
        if not path or not value:
            raise InvalidRequestError(
                f"invalid format '{entry}': path and value cannot be empty"
            ).with_context(field="value_overrides")
        result.setdefault(bundler, {})[path] = value
    return result


__all__ = ["BundlerConfig", "parse_value_overrides"]
