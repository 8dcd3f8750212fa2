"""
Platform query: the request side and the overlay-rule side of matching.

A ``Query`` describes a platform by seven optional fields. Callers build one
for the system they want a recipe for; every overlay in the store carries
one as its match key. Empty and ``"any"`` both mean unconstrained.

Examples:
    >>> q = Query.from_params({"service": "EKS", "gpu": "h100", "k8s": "1.29"})
    >>> q.service, q.gpu, str(q.k8s)
    ('eks', 'h100', '1.29')
    >>> str(q)
    'OS: any any, Kernel: any, Service: eks, K8s: 1.29, GPU: h100, Intent: any'
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from enum import Enum
from typing import Any

from cnstack.core.errors import InvalidRequestError, VersionParseError
from cnstack.recipe.version import Version, to_version

ANY = "any"


class OsFamily(str, Enum):
    ANY = "any"
    UBUNTU = "ubuntu"
    COS = "cos"


class ServiceType(str, Enum):
    ANY = "any"
    EKS = "eks"
    GKE = "gke"
    AKS = "aks"


class GpuType(str, Enum):
    ANY = "any"
    H100 = "h100"
    GB200 = "gb200"


class IntentType(str, Enum):
    ANY = "any"
    TRAINING = "training"
    INFERENCE = "inference"


# Query field -> (parameter name, enum of accepted values)
_ENUM_FIELDS: dict[str, tuple[str, type[Enum]]] = {
    "os": ("os", OsFamily),
    "service": ("service", ServiceType),
    "gpu": ("gpu", GpuType),
    "intent": ("intent", IntentType),
}

# Query field -> parameter name
_VERSION_FIELDS: dict[str, str] = {
    "os_version": "osv",
    "kernel": "kernel",
    "k8s": "k8s",
}

_PARAM_ALIASES = {"env": "service"}


def normalize(value: Any) -> str:
    """Trim and lowercase; ``None`` becomes empty."""
    if value is None:
        return ""
    if isinstance(value, Enum):
        value = value.value
    return str(value).strip().lower()


def is_unconstrained(value: str) -> bool:
    return value == "" or value == ANY


@dataclass(frozen=True)
class Query:
    """Seven optional platform fields. Strings are stored normalized."""

    os: str = ""
    os_version: Version | None = None
    kernel: Version | None = None
    service: str = ""
    k8s: Version | None = None
    gpu: str = ""
    intent: str = ""

    def __post_init__(self) -> None:
        for name in _ENUM_FIELDS:
            object.__setattr__(self, name, normalize(getattr(self, name)))
        for name in _VERSION_FIELDS:
            try:
                object.__setattr__(self, name, to_version(getattr(self, name)))
            except VersionParseError as e:
                raise e.with_context(field=name)

    @classmethod
    def from_params(cls, params: Mapping[str, Any], *, validate: bool = True) -> Query:
        """Build a query from request-style parameters.

        Accepts ``os``, ``osv``, ``kernel``, ``service`` (or ``env``), ``k8s``,
        ``gpu`` and ``intent``. Unknown parameters are rejected.
        """
        by_param = {param: name for name, (param, _) in _ENUM_FIELDS.items()}
        by_param.update({param: name for name, param in _VERSION_FIELDS.items()})

        kwargs: dict[str, Any] = {}
        for key, value in params.items():
            param = _PARAM_ALIASES.get(key, key)
            name = by_param.get(param)
            if name is None:
                raise InvalidRequestError(
                    f"unknown query parameter '{key}'. "
                    f"Supported: {', '.join(sorted(by_param) + sorted(_PARAM_ALIASES))}"
                ).with_context(field=key)
            if value is None:
                continue
            kwargs[name] = value

        query = cls(**kwargs)
        if validate:
            query.validate()
        return query

    def validate(self) -> None:
        """Reject string fields outside the supported enums."""
        for name, (param, enum_type) in _ENUM_FIELDS.items():
            value = getattr(self, name)
            if value == "":
                continue
            allowed = [member.value for member in enum_type]
            if value not in allowed:
                raise InvalidRequestError(
                    f"unsupported {param} '{value}'. Supported: {', '.join(allowed)}"
                ).with_context(field=param)

    def is_empty(self) -> bool:
        """True when no field constrains anything."""
        return (
            all(is_unconstrained(getattr(self, name)) for name in _ENUM_FIELDS)
            and all(getattr(self, name) is None for name in _VERSION_FIELDS)
        )

    def is_match(self, candidate: Query | None) -> bool:
        """Treat this query as a rule and test ``candidate`` against it."""
        from cnstack.recipe.matcher import matches

        return matches(self, candidate)

    def to_params(self) -> dict[str, str]:
        """Constrained fields as request parameters."""
        params: dict[str, str] = {}
        for name, (param, _) in _ENUM_FIELDS.items():
            value = getattr(self, name)
            if not is_unconstrained(value):
                params[param] = value
        for name, param in _VERSION_FIELDS.items():
            version = getattr(self, name)
            if version is not None:
                params[param] = str(version)
        order = ("os", "osv", "kernel", "service", "k8s", "gpu", "intent")
        return {key: params[key] for key in order if key in params}

    def __str__(self) -> str:
        def show(value: Any) -> str:
            if value is None:
                return ANY
            text = str(value)
            return ANY if is_unconstrained(text) else text

        return (
            f"OS: {show(self.os)} {show(self.os_version)}, "
            f"Kernel: {show(self.kernel)}, "
            f"Service: {show(self.service)}, "
            f"K8s: {show(self.k8s)}, "
            f"GPU: {show(self.gpu)}, "
            f"Intent: {show(self.intent)}"
        )


__all__ = [
    "ANY",
    "OsFamily",
    "ServiceType",
    "GpuType",
    "IntentType",
    "Query",
    "normalize",
    "is_unconstrained",
]
