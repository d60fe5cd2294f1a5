"""
Error classification for the signal board.

Ingress errors are surfaced to the webhook caller; system failures are
logged and isolated so they never affect in-memory state or other viewers.
"""

from .ingress import (
    IngressError,
    MissingFieldError,
    MalformedEventError,
    UnknownSymbolError,
    UnknownIndicatorError,
    UnknownRangeWindowError,
)
from .system_failures import (
    SystemFailureError,
    PersistenceError,
    ViewerConnectionError,
    ConfigError,
)

__all__ = [
    # Ingress Errors
    "IngressError",
    "MissingFieldError",
    "MalformedEventError",
    "UnknownSymbolError",
    "UnknownIndicatorError",
    "UnknownRangeWindowError",
    # System Failures
    "SystemFailureError",
    "PersistenceError",
    "ViewerConnectionError",
    "ConfigError",
]
