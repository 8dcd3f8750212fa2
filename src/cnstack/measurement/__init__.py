"""Typed value containers shared by the resolver and the bundlers."""

from cnstack.measurement.diff import compare
from cnstack.measurement.filter import filter_in, filter_out, matches_pattern
from cnstack.measurement.types import (
    Measurement,
    MeasurementType,
    Reading,
    ReadingKind,
    Subtype,
    clone_measurements,
)

__all__ = [
    "Measurement",
    "MeasurementType",
    "Reading",
    "ReadingKind",
    "Subtype",
    "clone_measurements",
    "compare",
    "filter_in",
    "filter_out",
    "matches_pattern",
]
