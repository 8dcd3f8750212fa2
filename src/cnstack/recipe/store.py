"""
Overlay store: the base measurement set plus ordered overlay rules.

Manifesto:
    The recipe data set ships inside the package and never changes while the
    process runs. It is parsed once, validated strictly, and shared by every
    resolution. A broken data set is a packaging bug: the parse error is kept
    and handed to every caller instead of re-parsing on each request.

Architecture:
    ::

        recipe.yaml ──yaml.safe_load──► StoreDocument (pydantic, extra=forbid)
                                              │
                                              ▼
                                   Store(base=(...), overlays=(...))
                                              │
        load_store() ── lock-guarded once ────┘  (store or cached StoreLoadError)

Document shape::

    base:
      - type: K8s
        subtypes:
          - subtype: control-plane
            data: {version: "1.28.3"}
    overlays:
      - key: {service: eks}
        types:
          - type: K8s
            subtypes:
              - subtype: control-plane
                data: {version: "1.29.0"}

Tags:
    store, yaml, load-once, overlays, cnstack
"""

from __future__ import annotations

import threading
from dataclasses import dataclass, replace
from importlib import resources
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from cnstack.core.errors import CnsError, StoreLoadError
from cnstack.core.logging import get_logger
from cnstack.measurement.types import Measurement, MeasurementType, Subtype
from cnstack.recipe.query import Query

logger = get_logger(__name__)

DATA_PACKAGE = "cnstack.recipe"
DATA_FILE = "data/recipe.yaml"


# =============================================================================
# DOCUMENT SCHEMA
# =============================================================================


class SubtypeSpec(BaseModel):
    """One named group of readings."""

    model_config = ConfigDict(extra="forbid", populate_by_name=True)

    name: str = Field(..., alias="subtype", min_length=1)
    data: dict[str, Any] = Field(default_factory=dict)
    context: dict[str, Any] = Field(default_factory=dict)

    def to_subtype(self) -> Subtype:
        return Subtype.from_values(self.name, self.data, self.context)


class MeasurementSpec(BaseModel):
    """A typed list of subtypes."""

    model_config = ConfigDict(extra="forbid")

    type: MeasurementType
    subtypes: list[SubtypeSpec] = Field(..., min_length=1)

    @field_validator("type", mode="before")
    @classmethod
    def _parse_type(cls, value: Any) -> MeasurementType:
        try:
            return MeasurementType.parse(value)
        except CnsError as e:
            raise ValueError(e.message) from e

    def to_measurement(self) -> Measurement:
        return Measurement(type=self.type, subtypes=[s.to_subtype() for s in self.subtypes])


class OverlayKeySpec(BaseModel):
    """Match key of an overlay, in query-parameter form."""

    model_config = ConfigDict(extra="forbid")

    os: str | None = None
    osv: str | None = None
    kernel: str | None = None
    service: str | None = None
    k8s: str | None = None
    gpu: str | None = None
    intent: str | None = None

    @field_validator("osv", "kernel", "k8s", mode="before")
    @classmethod
    def _require_quoted_version(cls, value: Any) -> Any:
        # YAML reads 1.30 as the float 1.3.
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            raise ValueError(f"version {value!r} must be quoted")
        return value

    def to_query(self) -> Query:
        return Query.from_params(self.model_dump(exclude_none=True))


class OverlaySpec(BaseModel):
    model_config = ConfigDict(extra="forbid")

    key: OverlayKeySpec
    types: list[MeasurementSpec] = Field(default_factory=list)


class StoreDocument(BaseModel):
    """Top-level recipe data document."""

    model_config = ConfigDict(extra="forbid")

    base: list[MeasurementSpec] = Field(default_factory=list)
    overlays: list[OverlaySpec] = Field(default_factory=list)

    @field_validator("base")
    @classmethod
    def _unique_base_types(cls, value: list[MeasurementSpec]) -> list[MeasurementSpec]:
        seen: set[MeasurementType] = set()
        for spec in value:
            if spec.type in seen:
                raise ValueError(f"duplicate base measurement type: {spec.type.value}")
            seen.add(spec.type)
        return value


# =============================================================================
# STORE
# =============================================================================


@dataclass(frozen=True)
class Overlay:
    """A match rule and the measurements folded in when it fires."""

    key: Query
    types: tuple[Measurement, ...]

    @property
    def rule(self) -> str:
        """Identifier recorded in ``Recipe.matched_rules``."""
        return str(self.key)


@dataclass(frozen=True)
class Store:
    """
    Immutable snapshot of the recipe data set.

    The measurements held here are shared; callers must clone before
    mutating (see ``Measurement.clone``).
    """

    base: tuple[Measurement, ...]
    overlays: tuple[Overlay, ...]

    @classmethod
    def from_document(cls, document: StoreDocument) -> Store:
        overlays = []
        for position, spec in enumerate(document.overlays):
            try:
                key = spec.key.to_query()
            except CnsError as e:
                raise StoreLoadError(f"invalid key in overlay #{position}", cause=e) from e
            overlays.append(
                Overlay(key=key, types=tuple(m.to_measurement() for m in spec.types))
            )
        return cls(
            base=tuple(m.to_measurement() for m in document.base),
            overlays=tuple(overlays),
        )

    @classmethod
    def from_dict(cls, data: Any) -> Store:
        if not isinstance(data, dict):
            raise StoreLoadError(f"expected a mapping at document root, got {type(data).__name__}")
        try:
            document = StoreDocument.model_validate(data)
        except ValidationError as e:
            raise StoreLoadError("recipe data failed validation", cause=e) from e
        return cls.from_document(document)

    @classmethod
    def from_yaml(cls, text: str, *, source: str = "<string>") -> Store:
        try:
            data = yaml.safe_load(text)
        except yaml.YAMLError as e:
            raise StoreLoadError(f"invalid YAML in {source}", cause=e).with_context(path=source) from e
        try:
            return cls.from_dict(data)
        except StoreLoadError as e:
            raise e.with_context(path=source)

    @classmethod
    def from_file(cls, path: Path | str) -> Store:
        path = Path(path)
        logger.debug("store.read", path=str(path))
        try:
            text = path.read_text(encoding="utf-8")
        except OSError as e:
            raise StoreLoadError(f"cannot read recipe data {path}", cause=e).with_context(
                path=str(path)
            ) from e
        return cls.from_yaml(text, source=str(path))

    @classmethod
    def packaged(cls) -> Store:
        """The data set shipped inside the package."""
        resource = resources.files(DATA_PACKAGE).joinpath(DATA_FILE)
        try:
            text = resource.read_text(encoding="utf-8")
        except OSError as e:
            raise StoreLoadError("cannot read packaged recipe data", cause=e) from e
        return cls.from_yaml(text, source=f"{DATA_PACKAGE}:{DATA_FILE}")


# =============================================================================
# PROCESS-WIDE LOAD-ONCE ACCESSOR
# =============================================================================

_lock = threading.Lock()
_loaded = False
_store: Store | None = None
_error: StoreLoadError | None = None


def _read_configured_store() -> Store:
    from cnstack.core.settings import get_settings

    override = get_settings().recipe_data_file
    if override is not None:
        return Store.from_file(override)
    return Store.packaged()


def load_store() -> Store:
    """
    Return the process-wide store, parsing it on the first call only.

    Concurrent first callers block until one parse completes and then share
    its outcome. A parse failure is cached and raised on every later call.

    Raises:
        StoreLoadError: the data set could not be read or validated
    """
    global _loaded, _store, _error

    if not _loaded:
        with _lock:
            if not _loaded:
                try:
                    _store = _read_configured_store()
                    logger.info(
                        "store.loaded",
                        base=len(_store.base),
                        overlays=len(_store.overlays),
                    )
                except StoreLoadError as e:
                    _error = e
                    logger.error("store.load_failed", error=str(e))
                _loaded = True

    if _error is not None:
        # New instance per call; the cached error itself is never re-raised.
        raise StoreLoadError(
            _error.message,
            context=replace(_error.context, metadata=dict(_error.context.metadata)),
            cause=_error.cause,
        )
    return _store


def reset_store_cache() -> None:
    """Forget the cached store or error (for tests)."""
    global _loaded, _store, _error
    with _lock:
        _loaded = False
        _store = None
        _error = None


__all__ = [
    "Store",
    "Overlay",
    "StoreDocument",
    "load_store",
    "reset_store_cache",
]
