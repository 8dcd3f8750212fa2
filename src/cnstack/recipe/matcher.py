"""
Overlay rule matching.

``matches(rule, candidate)`` decides whether an overlay rule applies to an
incoming query. The relation is deliberately asymmetric:

    rule field        candidate field       result
    ──────────        ───────────────       ──────
    empty / any       anything              satisfied
    concrete          equal value           satisfied
    concrete          different value       fails
    concrete          empty / any           fails

Version fields follow the same table; a concrete rule version is satisfied
only by an identical candidate version: same components, same precision
and same extras (``1.29`` does not match ``1.29.4``).
"""

from __future__ import annotations

from cnstack.recipe.query import Query, is_unconstrained
from cnstack.recipe.version import Version

_STRING_FIELDS = ("os", "service", "gpu", "intent")
_VERSION_FIELDS = ("os_version", "kernel", "k8s")


def _string_field_matches(rule: str, candidate: str) -> bool:
    if is_unconstrained(rule):
        return True
    if is_unconstrained(candidate):
        return False
    return rule == candidate


def _version_field_matches(rule: Version | None, candidate: Version | None) -> bool:
    if rule is None or not rule.is_valid():
        return True
    if candidate is None or not candidate.is_valid():
        return False
    return rule == candidate


def matches(rule: Query | None, candidate: Query | None) -> bool:
    """True if every constrained field of ``rule`` is satisfied by ``candidate``.

    A missing rule, a missing candidate, or a candidate with no constrained
    fields never matches.
    """
    if rule is None or candidate is None or candidate.is_empty():
        return False

    for name in _STRING_FIELDS:
        if not _string_field_matches(getattr(rule, name), getattr(candidate, name)):
            return False

    for name in _VERSION_FIELDS:
        if not _version_field_matches(getattr(rule, name), getattr(candidate, name)):
            return False

    return True


__all__ = ["matches"]
