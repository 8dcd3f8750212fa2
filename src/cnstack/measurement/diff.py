"""Difference between two measurements of the same type."""

from __future__ import annotations

from cnstack.core.errors import InvalidRequestError
from cnstack.measurement.types import Measurement, Subtype


def compare(old: Measurement, new: Measurement) -> list[Subtype]:
    """Subtypes of ``new`` that are absent from ``old`` or carry changed readings.

    New subtypes are returned whole (as clones). For subtypes present in both,
    only the new or changed readings are kept; unchanged subtypes are omitted.
    Keys removed in ``new`` are not reported.
    """
    if old.type is not new.type:
        raise InvalidRequestError(
            f"cannot compare different measurement types: "
            f"{old.type.value} ({len(old.subtypes)} subtypes) vs "
            f"{new.type.value} ({len(new.subtypes)} subtypes)"
        )

    previous = {s.name: s for s in old.subtypes}
    diffs: list[Subtype] = []

    for subtype in new.subtypes:
        before = previous.get(subtype.name)
        if before is None:
            diffs.append(subtype.clone())
            continue

        changed = {
            key: reading
            for key, reading in subtype.data.items()
            if before.data.get(key) != reading
        }
        if changed:
            diffs.append(Subtype(name=subtype.name, data=changed))

    return diffs


__all__ = ["compare"]
