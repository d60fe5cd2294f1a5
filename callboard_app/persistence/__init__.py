"""Durable persistence of signal state."""

from .state_gateway import StateGateway, StoredState

__all__ = ["StateGateway", "StoredState"]
