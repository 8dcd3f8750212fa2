"""Select or drop readings by key pattern.

Patterns use ``*`` as the only wildcard: ``"driver*"``, ``"*version"``,
``"*cuda*"`` or an exact key. Other glob metacharacters are literal.
"""

from __future__ import annotations

import re
from collections.abc import Iterable, Mapping
from functools import lru_cache

from cnstack.measurement.types import Reading


@lru_cache(maxsize=256)
def _compile(pattern: str) -> re.Pattern[str]:
    return re.compile(".*".join(re.escape(part) for part in pattern.split("*")), re.DOTALL)


def matches_pattern(key: str, pattern: str) -> bool:
    """True if ``key`` matches the ``*`` wildcard ``pattern``."""
    if "*" not in pattern:
        return key == pattern
    return _compile(pattern).fullmatch(key) is not None


def filter_out(readings: Mapping[str, Reading], patterns: Iterable[str]) -> dict[str, Reading]:
    """Copy of ``readings`` without keys matching any pattern."""
    patterns = list(patterns)
    return {
        key: value
        for key, value in readings.items()
        if not any(matches_pattern(key, p) for p in patterns)
    }


def filter_in(readings: Mapping[str, Reading], patterns: Iterable[str]) -> dict[str, Reading]:
    """Copy of ``readings`` with only keys matching at least one pattern."""
    patterns = list(patterns)
    return {
        key: value
        for key, value in readings.items()
        if any(matches_pattern(key, p) for p in patterns)
    }


__all__ = ["matches_pattern", "filter_in", "filter_out"]
