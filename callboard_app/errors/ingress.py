"""
Ingress validation errors for webhook events.

These exceptions are raised before the transition engine runs, so an event
that fails validation never mutates state.
"""

from typing import Optional, Dict, Any


class IngressError(Exception):
    """Base class for rejected ingress events."""

    def __init__(self, message: str, context: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.context = context or {}
        self.recoverable = True


class MissingFieldError(IngressError):
    """One or more required event fields are absent."""

    def __init__(self, message: str, missing_fields: Optional[list] = None, **kwargs):
        super().__init__(message, **kwargs)
        self.missing_fields = missing_fields or []


class MalformedEventError(IngressError):
    """Event fields exist but have the wrong type or value."""

    def __init__(self, message: str, field: Optional[str] = None,
                 value: Any = None, **kwargs):
        super().__init__(message, **kwargs)
        self.field = field
        self.value = value


class UnknownSymbolError(IngressError):
    """Symbol is not part of the tracked registry."""

    def __init__(self, message: str, symbol: Optional[str] = None, **kwargs):
        super().__init__(message, **kwargs)
        self.symbol = symbol


class UnknownIndicatorError(IngressError):
    """Indicator code has no channel family."""

    def __init__(self, message: str, indicator: Any = None, **kwargs):
        super().__init__(message, **kwargs)
        self.indicator = indicator


class UnknownRangeWindowError(IngressError):
    """Range event window label is not recognised."""

    def __init__(self, message: str, window: Optional[str] = None, **kwargs):
        super().__init__(message, **kwargs)
        self.window = window
