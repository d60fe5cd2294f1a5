"""Base classes for viewer delivery."""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import Optional


class DeliveryStatus(Enum):
    """Outcome of handing a message to a viewer session."""
    QUEUED = "queued"
    DROPPED = "dropped"


@dataclass
class DeliveryResult:
    """Result of a delivery attempt to one session."""
    status: DeliveryStatus
    session_id: str
    message: Optional[str] = None


class ViewerTransport(ABC):
    """Push connection to one viewer."""

    @abstractmethod
    async def send_text(self, data: str) -> None:
        """Send one text frame. Raises on transport failure."""
        pass

    @abstractmethod
    async def close(self, code: int = 1000) -> None:
        """Close the connection."""
        pass

    @property
    def peer(self) -> str:
        """Human-readable peer description for logs."""
        return "unknown"
