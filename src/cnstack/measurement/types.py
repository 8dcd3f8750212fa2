"""
Measurement model: Reading → Subtype → Measurement.

The same three-level hierarchy describes the packaged base configuration,
every overlay patch, and the resolved recipe handed to bundlers.

    Measurement(type=K8s)
      └── Subtype(name="control-plane")
            ├── data:    {"version": Reading("1.29.0")}
            └── context: {"version": "EKS default for 1.29"}

Clone-on-read:
    The store's base measurements are shared across every resolution in the
    process. ``Measurement.clone()`` and ``Subtype.clone()`` copy every
    container down to the reading maps; readings themselves are immutable and
    are shared. Resolvers only ever mutate clones.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from cnstack.core.errors import InvalidRequestError, NotFoundError

ReadingValue = str | bool | int | float


class MeasurementType(str, Enum):
    """Domain a measurement belongs to."""

    K8S = "K8s"
    GPU = "GPU"
    OS = "OS"
    SYSTEMD = "SystemD"

    @classmethod
    def parse(cls, value: str | MeasurementType) -> MeasurementType:
        if isinstance(value, MeasurementType):
            return value
        for member in cls:
            if member.value.lower() == str(value).strip().lower():
                return member
        raise InvalidRequestError(
            f"unknown measurement type '{value}'. "
            f"Supported: {', '.join(m.value for m in cls)}"
        ).with_context(field="type")


class ReadingKind(str, Enum):
    STRING = "string"
    BOOL = "bool"
    INT = "int"
    FLOAT = "float"


@dataclass(frozen=True, eq=False)
class Reading:
    """A single immutable scalar value.

    Equality is structural and type-aware: ``Reading(True) != Reading(1)``.
    """

    value: ReadingValue

    def __post_init__(self) -> None:
        if not isinstance(self.value, (str, bool, int, float)):
            raise TypeError(f"unsupported reading type: {type(self.value).__name__}")

    @classmethod
    def of(cls, value: Any) -> Reading:
        """Build a reading, rendering anything non-scalar as a string."""
        if isinstance(value, Reading):
            return value
        if isinstance(value, (str, bool, int, float)):
            return cls(value)
        return cls(str(value))

    @property
    def kind(self) -> ReadingKind:
        if isinstance(self.value, bool):
            return ReadingKind.BOOL
        if isinstance(self.value, int):
            return ReadingKind.INT
        if isinstance(self.value, float):
            return ReadingKind.FLOAT
        return ReadingKind.STRING

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Reading):
            return NotImplemented
        return self.kind is other.kind and self.value == other.value

    def __hash__(self) -> int:
        return hash((self.kind, self.value))

    def __str__(self) -> str:
        if isinstance(self.value, bool):
            return "true" if self.value else "false"
        return str(self.value)


@dataclass
class Subtype:
    """A named group of readings, with optional per-field provenance notes."""

    name: str
    data: dict[str, Reading] = field(default_factory=dict)
    context: dict[str, str] = field(default_factory=dict)

    @classmethod
    def from_values(
        cls,
        name: str,
        data: Mapping[str, Any] | None = None,
        context: Mapping[str, str] | None = None,
    ) -> Subtype:
        """Build a subtype from plain Python values."""
        return cls(
            name=name,
            data={key: Reading.of(value) for key, value in (data or {}).items()},
            context={key: str(value) for key, value in (context or {}).items()},
        )

    def clone(self) -> Subtype:
        return Subtype(name=self.name, data=dict(self.data), context=dict(self.context))

    def values(self) -> dict[str, ReadingValue]:
        """Reading map as plain Python values."""
        return {key: reading.value for key, reading in self.data.items()}

    def _get(self, key: str) -> Reading:
        try:
            return self.data[key]
        except KeyError:
            raise NotFoundError(f"key '{key}' not found in subtype '{self.name}'").with_context(
                field=key
            ) from None

    def get_string(self, key: str) -> str:
        reading = self._get(key)
        if reading.kind is not ReadingKind.STRING:
            raise InvalidRequestError(
                f"key '{key}' in subtype '{self.name}' is {reading.kind.value}, not string"
            ).with_context(field=key)
        return reading.value

    def get_int(self, key: str) -> int:
        reading = self._get(key)
        if reading.kind is not ReadingKind.INT:
            raise InvalidRequestError(
                f"key '{key}' in subtype '{self.name}' is {reading.kind.value}, not int"
            ).with_context(field=key)
        return reading.value

    def get_float(self, key: str) -> float:
        reading = self._get(key)
        if reading.kind is ReadingKind.INT:
            return float(reading.value)
        if reading.kind is not ReadingKind.FLOAT:
            raise InvalidRequestError(
                f"key '{key}' in subtype '{self.name}' is {reading.kind.value}, not float"
            ).with_context(field=key)
        return reading.value

    def get_bool(self, key: str) -> bool:
        reading = self._get(key)
        if reading.kind is not ReadingKind.BOOL:
            raise InvalidRequestError(
                f"key '{key}' in subtype '{self.name}' is {reading.kind.value}, not bool"
            ).with_context(field=key)
        return reading.value

    def to_dict(self, include_context: bool = True) -> dict[str, Any]:
        result: dict[str, Any] = {"subtype": self.name, "data": self.values()}
        if include_context and self.context:
            result["context"] = dict(self.context)
        return result


@dataclass
class Measurement:
    """A typed, ordered group of subtypes."""

    type: MeasurementType
    subtypes: list[Subtype] = field(default_factory=list)

    def clone(self) -> Measurement:
        return Measurement(type=self.type, subtypes=[s.clone() for s in self.subtypes])

    def validate(self) -> None:
        """Raise ``InvalidRequestError`` unless the measurement is well formed."""
        if not self.subtypes:
            raise InvalidRequestError(
                f"measurement {self.type.value} has no subtypes"
            ).with_context(field="subtypes")
        for subtype in self.subtypes:
            if not subtype.name:
                raise InvalidRequestError(
                    f"measurement {self.type.value} has a subtype without a name"
                ).with_context(field="subtype")
            if not subtype.data:
                raise InvalidRequestError(
                    f"subtype '{subtype.name}' of {self.type.value} has no data"
                ).with_context(field=subtype.name)

    def get_subtype(self, name: str) -> Subtype | None:
        for subtype in self.subtypes:
            if subtype.name == name:
                return subtype
        return None

    def has_subtype(self, name: str) -> bool:
        return self.get_subtype(name) is not None

    def get_or_create_subtype(self, name: str) -> Subtype:
        subtype = self.get_subtype(name)
        if subtype is None:
            subtype = Subtype(name=name)
            self.subtypes.append(subtype)
        return subtype

    def subtype_names(self) -> list[str]:
        return [s.name for s in self.subtypes]

    def merge(self, overlay: Measurement) -> None:
        """Fold an overlay measurement of the same type into this one, in place.

        Overlay readings win on key collisions; target keys not named by the
        overlay survive. Overlay subtypes with no data are skipped. Unknown
        overlay subtypes are cloned and appended.
        """
        if overlay.type is not self.type:
            raise InvalidRequestError(
                f"cannot merge {overlay.type.value} measurement into {self.type.value}"
            )
        index = {s.name: s for s in self.subtypes}
        for incoming in overlay.subtypes:
            if not incoming.data:
                continue
            existing = index.get(incoming.name)
            if existing is None:
                copied = incoming.clone()
                self.subtypes.append(copied)
                index[copied.name] = copied
                continue
            existing.data.update(incoming.data)
            existing.context.update(incoming.context)

    def to_dict(self, include_context: bool = True) -> dict[str, Any]:
        return {
            "type": self.type.value,
            "subtypes": [s.to_dict(include_context) for s in self.subtypes],
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> Measurement:
        """Inverse of ``to_dict``."""
        return cls(
            type=MeasurementType.parse(data["type"]),
            subtypes=[
                Subtype.from_values(s["subtype"], s.get("data"), s.get("context"))
                for s in data.get("subtypes") or []
            ],
        )


def clone_measurements(measurements: list[Measurement] | tuple[Measurement, ...]) -> list[Measurement]:
    """Deep copy a measurement sequence into a fresh list."""
    return [m.clone() for m in measurements]


__all__ = [
    "MeasurementType",
    "ReadingKind",
    "Reading",
    "ReadingValue",
    "Subtype",
    "Measurement",
    "clone_measurements",
]
