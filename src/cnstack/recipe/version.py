"""
Semantic versions with precision.

A version written as ``1.29`` has precision 2: it says nothing about the
patch level. Comparisons use the lower precision of the two operands, so
``1.29`` and ``1.29.4`` compare equal.

Examples:
    >>> v = parse_version("v1.29.4-eks.1")
    >>> v.major, v.minor, v.patch, v.precision, v.extras
    (1, 29, 4, 3, '-eks.1')
    >>> str(v)
    '1.29.4-eks.1'
    >>> parse_version("1.29").compare(v)
    0
"""

from __future__ import annotations

import re
from dataclasses import dataclass

from cnstack.core.errors import VersionParseError

_INTEGER = re.compile(r"-?[0-9]+")


@dataclass(frozen=True)
class Version:
    """Parsed version. ``precision`` is the number of components given (1-3)."""

    major: int = 0
    minor: int = 0
    patch: int = 0
    precision: int = 0
    extras: str = ""

    def is_valid(self) -> bool:
        return 1 <= self.precision <= 3

    def core(self) -> str:
        """Numeric components only, per precision."""
        if self.precision == 1:
            return f"{self.major}"
        if self.precision == 2:
            return f"{self.major}.{self.minor}"
        return f"{self.major}.{self.minor}.{self.patch}"

    def __str__(self) -> str:
        return self.core() + self.extras

    def compare(self, other: Version) -> int:
        """-1, 0 or 1, comparing only up to the lower of the two precisions."""
        precision = min(self.precision, other.precision)
        mine = (self.major, self.minor, self.patch)[: max(precision, 1)]
        theirs = (other.major, other.minor, other.patch)[: max(precision, 1)]
        if mine < theirs:
            return -1
        if mine > theirs:
            return 1
        return 0

    def equals(self, other: Version) -> bool:
        """Exact equality of all three numeric components."""
        return (self.major, self.minor, self.patch) == (other.major, other.minor, other.patch)

    def equals_or_newer(self, other: Version) -> bool:
        return self.compare(other) >= 0

    def is_newer(self, other: Version) -> bool:
        return self.compare(other) > 0


def parse_version(text: str) -> Version:
    """Parse ``[v]MAJOR[.MINOR[.PATCH]][-pre|+build]``.

    Raises:
        VersionParseError: empty input, more than three components, a
            non-numeric or negative component.
    """
    if text is None or not str(text).strip():
        raise VersionParseError("empty version string")

    text = str(text).strip()
    if text.startswith("v"):
        text = text[1:]

    main, extras = text, ""
    for i, ch in enumerate(text):
        if ch in "-+" and i > 0 and text[i - 1].isdigit():
            main, extras = text[:i], text[i:]
            break

    parts = main.split(".")
    if len(parts) > 3:
        raise VersionParseError(f"too many version components: {text!r}")

    numbers: list[int] = []
    for part in parts:
        if not part:
            raise VersionParseError(f"non-numeric version component: empty component in {text!r}")
        if not _INTEGER.fullmatch(part):
            raise VersionParseError(f"non-numeric version component: {part!r}")
        number = int(part)
        if number < 0:
            raise VersionParseError(f"negative version component: {number}")
        numbers.append(number)

    padded = numbers + [0] * (3 - len(numbers))
    return Version(
        major=padded[0],
        minor=padded[1],
        patch=padded[2],
        precision=len(numbers),
        extras=extras,
    )


def to_version(value: Version | str | int | float | None) -> Version | None:
    """Coerce user input into a Version; empty or ``any`` means no version."""
    if value is None or isinstance(value, Version):
        return value
    text = str(value).strip()
    if not text or text.lower() == "any":
        return None
    return parse_version(text)


__all__ = ["Version", "parse_version", "to_version"]
