"""Viewer delivery: sessions, transports and broadcast fan-out."""

from .base import DeliveryResult, DeliveryStatus, ViewerTransport
from .broadcaster import Broadcaster
from .session import ViewerSession

__all__ = [
    "Broadcaster",
    "DeliveryResult",
    "DeliveryStatus",
    "ViewerSession",
    "ViewerTransport",
]
