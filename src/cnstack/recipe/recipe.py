"""Resolved recipe: the configuration payload handed to bundlers."""

from __future__ import annotations

import json
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any

import yaml

from cnstack.core.errors import InvalidRequestError
from cnstack.measurement.types import Measurement, MeasurementType, Subtype
from cnstack.recipe.query import Query


@dataclass
class Recipe:
    """
    Configuration resolved for one query.

    Created fresh by every ``RecipeBuilder.build`` call and owned by the
    caller; mutating it never affects later builds.
    """

    request: Query | None = None
    measurements: list[Measurement] = field(default_factory=list)
    matched_rules: list[str] = field(default_factory=list)
    generated_at: datetime = field(default_factory=lambda: datetime.now(UTC))
    payload_version: str = ""

    # ── Lookup ───────────────────────────────────────────────────

    def get_measurement(self, measurement_type: MeasurementType | str) -> Measurement | None:
        measurement_type = MeasurementType.parse(measurement_type)
        for m in self.measurements:
            if m.type is measurement_type:
                return m
        return None

    def get_subtype(self, measurement_type: MeasurementType | str, name: str) -> Subtype | None:
        m = self.get_measurement(measurement_type)
        return None if m is None else m.get_subtype(name)

    # ── Validation ───────────────────────────────────────────────

    def validate(self) -> None:
        """Minimal check: the recipe carries at least one measurement."""
        if not self.measurements:
            raise InvalidRequestError("recipe has no measurements").with_context(field="measurements")

    def validate_structure(self) -> None:
        """Every measurement has a type and named subtypes."""
        self.validate()
        for i, m in enumerate(self.measurements):
            if m is None:
                raise InvalidRequestError(f"measurement at index {i} is missing")
            if not isinstance(m.type, MeasurementType):
                raise InvalidRequestError(f"measurement at index {i} has no type")
            if not m.subtypes:
                raise InvalidRequestError(f"measurement type {m.type.value} has no subtypes")
            for j, subtype in enumerate(m.subtypes):
                if not subtype.name:
                    raise InvalidRequestError(
                        f"subtype at index {j} in measurement {m.type.value} has empty name"
                    )
                if subtype.data is None:
                    raise InvalidRequestError(
                        f"subtype {subtype.name} in measurement {m.type.value} has no data map"
                    )

    def validate_measurement_exists(self, measurement_type: MeasurementType | str) -> None:
        self.validate_structure()
        measurement_type = MeasurementType.parse(measurement_type)
        if self.get_measurement(measurement_type) is None:
            raise InvalidRequestError(
                f"measurement type {measurement_type.value} not found in recipe"
            ).with_context(field=measurement_type.value)

    def validate_subtype_exists(self, measurement_type: MeasurementType | str, name: str) -> None:
        self.validate_measurement_exists(measurement_type)
        m = self.get_measurement(measurement_type)
        if not m.has_subtype(name):
            raise InvalidRequestError(
                f"subtype {name} not found in measurement type {m.type.value}"
            ).with_context(field=name)

    # ── Serialization ────────────────────────────────────────────

    def to_dict(self, include_context: bool = True) -> dict[str, Any]:
        result: dict[str, Any] = {
            "payloadVersion": self.payload_version,
            "generatedAt": self.generated_at.isoformat(),
        }
        if self.request is not None:
            result["request"] = self.request.to_params()
        result["matchedRules"] = list(self.matched_rules)
        result["measurements"] = [m.to_dict(include_context) for m in self.measurements]
        return result

    def to_yaml(self) -> str:
        return yaml.safe_dump(self.to_dict(), sort_keys=False, allow_unicode=True)

    def to_json(self, indent: int | None = 2) -> str:
        return json.dumps(self.to_dict(), indent=indent)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> Recipe:
        """Read back a serialized recipe (``to_dict`` / ``to_yaml`` output)."""
        generated = data.get("generatedAt")
        if isinstance(generated, str):
            generated_at = datetime.fromisoformat(generated)
        elif isinstance(generated, datetime):
            generated_at = generated
        else:
            generated_at = datetime.now(UTC)
        request = data.get("request")
        return cls(
            request=Query.from_params(request, validate=False) if request else None,
            measurements=[Measurement.from_dict(m) for m in data.get("measurements") or []],
            matched_rules=list(data.get("matchedRules") or []),
            generated_at=generated_at,
            payload_version=str(data.get("payloadVersion", "")),
        )

    @classmethod
    def from_yaml(cls, text: str) -> Recipe:
        data = yaml.safe_load(text)
        if not isinstance(data, dict):
            raise InvalidRequestError("recipe document must be a mapping")
        return cls.from_dict(data)


def validate_required_keys(subtype: Subtype | None, keys: Iterable[str]) -> None:
    """Raise unless every key is present in the subtype's readings."""
    if subtype is None:
        raise InvalidRequestError("subtype is missing")
    for key in keys:
        if key not in subtype.data:
            raise InvalidRequestError(
                f"required key {key} not found in subtype {subtype.name}"
            ).with_context(field=key)


__all__ = ["Recipe", "validate_required_keys"]
