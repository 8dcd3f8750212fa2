"""cnstack core -- errors, logging, settings and run context.

Architecture::

    errors.py      Structured error hierarchy (CnsError, ErrorCode)
    logging.py     structlog configuration and helpers
    settings.py    CnsSettings (pydantic-settings, CNS_* environment)
    context.py     RunContext cancellation / deadline token
"""

from cnstack.core.context import RunContext
from cnstack.core.errors import (
    CnsError,
    ErrorCode,
    ErrorContext,
    InternalError,
    InvalidRequestError,
    NotFoundError,
)
from cnstack.core.logging import configure_logging, get_logger
from cnstack.core.settings import CnsSettings, get_settings

__all__ = [
    "RunContext",
    "CnsError",
    "ErrorCode",
    "ErrorContext",
    "InternalError",
    "InvalidRequestError",
    "NotFoundError",
    "configure_logging",
    "get_logger",
    "CnsSettings",
    "get_settings",
]
