"""
Structured error types for cnstack.

Every failure raised by the resolver, the store and the bundler orchestrator
is a ``CnsError``. Instead of generic exceptions that lose context, each
error carries:
- **Code:** A stable ``ErrorCode`` (invalid-request, not-found, internal, timeout)
- **Message:** A human readable description
- **Context:** Structured metadata (which field, which bundler, which stage)
- **Cause:** The chained underlying exception

Manifesto:
    - **Stable codes:** Callers branch on ``error.code``, never on message text
    - **Rich Context:** Errors name the plugin and stage that failed
    - **Error Chaining:** Original exceptions are preserved as ``cause``

Architecture:
    ::

        ┌─────────────────────────────────────────────────────────────────┐
        │                         CnsError                                 │
        │                  (code, context, cause)                          │
        ├─────────────────────────────────────────────────────────────────┤
        │                                                                  │
        │  InvalidRequestError   NotFoundError      InternalError          │
        │  (INVALID_REQUEST)     (NOT_FOUND)        (INTERNAL)             │
        │       │                     │                  │                 │
        │  VersionParseError     PluginNotFound     StoreLoadError         │
        │  PluginAlreadyRegistered                  BundleExecutionError   │
        │                                                                  │
        │  DeadlineExceededError                    PluginError            │
        │  (TIMEOUT)                                (code of its cause)    │
        │       │                                                          │
        │  ContextCancelledError                                           │
        └─────────────────────────────────────────────────────────────────┘

Examples:
    >>> err = InvalidRequestError("unsupported gpu type").with_context(field="gpu")
    >>> err.code
    <ErrorCode.INVALID_REQUEST: 'INVALID_REQUEST'>
    >>> err.context.field
    'gpu'
    >>> str(InternalError("bundler execution failed", cause=ValueError("boom")))
    '[INTERNAL] bundler execution failed: boom'

Tags:
    error-handling, exception-hierarchy, error-context, cnstack

Doc-Types:
    - API Reference
    - Error Handling Guide
"""

from __future__ import annotations

import dataclasses
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from cnstack.bundler.result import Output


class ErrorCode(str, Enum):
    """Stable error codes shared by every cnstack component."""

    INVALID_REQUEST = "INVALID_REQUEST"
    NOT_FOUND = "NOT_FOUND"
    INTERNAL = "INTERNAL"
    TIMEOUT = "TIMEOUT"


class PluginStage(str, Enum):
    """Lifecycle stage of a bundler plugin at which a failure happened."""

    CONFIGURATION = "configuration"
    VALIDATION = "validation"
    EXECUTION = "execution"


@dataclass
class ErrorContext:
    """
    Structured metadata attached to an error.

    Known keys are promoted to attributes; anything else lands in
    ``metadata``.
    """

    bundler_type: str | None = None
    stage: str | None = None
    field: str | None = None
    path: str | None = None

    metadata: dict[str, Any] = dataclasses.field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for logging."""
        result = {}
        for key in ["bundler_type", "stage", "field", "path"]:
            value = getattr(self, key)
            if value is not None:
                result[key] = value
        if self.metadata:
            result.update(self.metadata)
        return result


class CnsError(Exception):
    """
    Base exception for all cnstack errors.

    Subclasses set ``default_code``; an explicit ``code=`` overrides it.

    Examples:
        >>> err = CnsError("something went wrong")
        >>> err.code
        <ErrorCode.INTERNAL: 'INTERNAL'>
        >>> err.to_dict()["code"]
        'INTERNAL'
    """

    default_code: ErrorCode = ErrorCode.INTERNAL

    def __init__(
        self,
        message: str,
        *,
        code: ErrorCode | None = None,
        context: ErrorContext | None = None,
        cause: BaseException | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.code = code or self.default_code
        self.context = context or ErrorContext()
        self.cause = cause

        if cause is not None:
            self.__cause__ = cause

    def with_context(self, **kwargs: Any) -> CnsError:
        """
        Add context to this error (fluent API).

        Usage:
            raise InvalidRequestError("bad value").with_context(field="k8s")
        """
        for key, value in kwargs.items():
            if key != "metadata" and hasattr(self.context, key):
                setattr(self.context, key, value)
            else:
                self.context.metadata[key] = value
        return self

    def to_dict(self) -> dict[str, Any]:
        """Convert error to dictionary for logging/serialization."""
        result: dict[str, Any] = {
            "error_type": self.__class__.__name__,
            "code": self.code.value,
            "message": self.message,
        }
        context_dict = self.context.to_dict()
        if context_dict:
            result["context"] = context_dict
        if self.cause is not None:
            result["cause"] = str(self.cause)
        return result

    def __str__(self) -> str:
        if self.cause is not None:
            return f"[{self.code.value}] {self.message}: {self.cause}"
        return f"[{self.code.value}] {self.message}"

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.message!r}, code={self.code.value})"


# =============================================================================
# REQUEST ERRORS
# =============================================================================


class InvalidRequestError(CnsError):
    """A query, recipe or option is missing or malformed."""

    default_code = ErrorCode.INVALID_REQUEST


class VersionParseError(InvalidRequestError, ValueError):
    """A version string could not be parsed."""


class PluginAlreadyRegisteredError(InvalidRequestError, ValueError):
    """A bundler type was registered twice."""


class NotFoundError(CnsError):
    """A requested resource does not exist."""

    default_code = ErrorCode.NOT_FOUND


class PluginNotFoundError(NotFoundError):
    """No bundler plugin is registered under the requested type."""

    def __init__(self, bundler_type: str, available: list[str] | None = None):
        available = available or []
        message = f"bundler '{bundler_type}' not found"
        if available:
            message += f". Available: {', '.join(available)}"
        super().__init__(message, context=ErrorContext(bundler_type=bundler_type))
        self.bundler_type = bundler_type
        self.available = available


# =============================================================================
# TIMEOUT ERRORS
# =============================================================================


class DeadlineExceededError(CnsError):
    """The run context deadline passed before the operation finished."""

    default_code = ErrorCode.TIMEOUT


class ContextCancelledError(DeadlineExceededError):
    """The run context was cancelled, by the caller or by a fail-fast sibling."""


# =============================================================================
# INTERNAL ERRORS
# =============================================================================


class InternalError(CnsError):
    """Unexpected failure inside cnstack or one of its plugins."""

    default_code = ErrorCode.INTERNAL


class StoreLoadError(InternalError):
    """The packaged recipe data set could not be parsed."""


class PluginError(CnsError):
    """
    A bundler plugin failed at a specific lifecycle stage.

    The code follows the cause: a plugin that raises ``DeadlineExceededError``
    surfaces as TIMEOUT, an arbitrary exception as INTERNAL.
    """

    def __init__(self, bundler_type: str, stage: PluginStage, cause: BaseException):
        if stage is PluginStage.EXECUTION:
            message = f"bundler {bundler_type} failed"
        else:
            message = f"{stage.value} failed for bundler {bundler_type}"
        super().__init__(
            message,
            code=error_code(cause),
            context=ErrorContext(bundler_type=bundler_type, stage=stage.value),
            cause=cause,
        )
        self.bundler_type = bundler_type
        self.stage = stage


class BundleExecutionError(InternalError):
    """Fail-fast orchestration aborted; ``output`` holds what was collected."""

    def __init__(self, message: str, *, cause: BaseException | None = None, output: Output | None = None):
        super().__init__(message, cause=cause)
        self.output = output


# =============================================================================
# UTILITY FUNCTIONS
# =============================================================================


def error_code(error: BaseException) -> ErrorCode:
    """Return the code of an error, mapping foreign exceptions to INTERNAL."""
    if isinstance(error, CnsError):
        return error.code
    if isinstance(error, TimeoutError):
        return ErrorCode.TIMEOUT
    return ErrorCode.INTERNAL


def is_timeout(error: BaseException) -> bool:
    """Check if an error is timeout-class (deadline or cancellation)."""
    return error_code(error) is ErrorCode.TIMEOUT


__all__ = [
    "ErrorCode",
    "PluginStage",
    "ErrorContext",
    "CnsError",
    "InvalidRequestError",
    "VersionParseError",
    "PluginAlreadyRegisteredError",
    "NotFoundError",
    "PluginNotFoundError",
    "DeadlineExceededError",
    "ContextCancelledError",
    "InternalError",
    "StoreLoadError",
    "PluginError",
    "BundleExecutionError",
    "error_code",
    "is_timeout",
]
