"""
System failure error classifications.

Persistence and viewer transport faults are contained where they occur:
they are logged and recorded, never propagated to the ingress caller.
"""

from typing import Optional, Dict, Any


class SystemFailureError(Exception):
    """Base class for infrastructure failures."""

    def __init__(self, message: str, context: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.context = context or {}
        self.recoverable = False


class PersistenceError(SystemFailureError):
    """Durable store unavailable or write/read failure."""

    def __init__(self, message: str, operation: Optional[str] = None,
                 target: Optional[str] = None, **kwargs):
        super().__init__(message, **kwargs)
        self.operation = operation
        self.target = target


class ViewerConnectionError(SystemFailureError):
    """Transport fault on a single viewer session."""

    def __init__(self, message: str, session_id: Optional[str] = None, **kwargs):
        super().__init__(message, **kwargs)
        self.session_id = session_id


class ConfigError(SystemFailureError):
    """Configuration failed validation at startup."""

    def __init__(self, message: str, errors: Optional[list] = None, **kwargs):
        super().__init__(message, **kwargs)
        self.errors = errors or []
