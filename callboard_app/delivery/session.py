"""
Viewer session with a private outbound queue.

Each session drains its own queue from a dedicated writer task, so enqueueing
never waits on the network and a stalled viewer only delays itself.
"""

import asyncio
import uuid
from typing import Awaitable, Callable, Optional

from ..errors import ViewerConnectionError
from ..logging.config import get_viewer_logger
from .base import DeliveryResult, DeliveryStatus, ViewerTransport

logger = get_viewer_logger(__name__)

FailureCallback = Callable[["ViewerSession", ViewerConnectionError], Awaitable[None]]


class ViewerSession:
    """One connected viewer."""

    def __init__(self, transport: ViewerTransport, session_id: Optional[str] = None):
        self.transport = transport
        self.session_id = session_id or uuid.uuid4().hex[:12]
        self.logger = logger.bind(session_id=self.session_id, peer=transport.peer)

        self.outbox: asyncio.Queue[str] = asyncio.Queue()
        self.is_alive = True
        self.closed = False
        self.sent_count = 0
        self._writer: Optional[asyncio.Task] = None
        self._on_failure: Optional[FailureCallback] = None

    def start(self, on_failure: Optional[FailureCallback] = None) -> None:
        """Start the writer task. Must be called from the event loop."""
        if self._writer is not None:
            return
        self._on_failure = on_failure
        self._writer = asyncio.create_task(self._write_loop(), name=f"viewer-{self.session_id}")

    def enqueue(self, payload: str) -> DeliveryResult:
        """Queue a serialized message without waiting for delivery."""
        if self.closed:
            return DeliveryResult(
                status=DeliveryStatus.DROPPED,
                session_id=self.session_id,
                message="Session closed",
            )
        self.outbox.put_nowait(payload)
        return DeliveryResult(status=DeliveryStatus.QUEUED, session_id=self.session_id)

    def mark_alive(self) -> None:
        """Record a probe acknowledgement."""
        self.is_alive = True

    async def close(self, code: int = 1000) -> None:
        """Stop the writer and close the transport. Safe to call twice."""
        if self.closed:
            return
        self.closed = True

        if self._writer is not None and self._writer is not asyncio.current_task():
            self._writer.cancel()
        self._discard_pending()

        try:
            await self.transport.close(code)
        except Exception as e:
            # Transport already gone; nothing left to release
            self.logger.debug("Transport close failed", error=str(e))

        self.logger.info("Viewer session closed", sent=self.sent_count)

    async def _write_loop(self) -> None:
        while True:
            payload = await self.outbox.get()
            try:
                await self.transport.send_text(payload)
                self.sent_count += 1
            except asyncio.CancelledError:
                raise
            except Exception as e:
                error = ViewerConnectionError(
                    f"Send failed: {e}", session_id=self.session_id
                )
                self.logger.warning("Viewer send failed", error=str(e))
                self.outbox.task_done()
                self._discard_pending()
                if self._on_failure is not None:
                    await self._on_failure(self, error)
                else:
                    await self.close()
                return
            self.outbox.task_done()

    def _discard_pending(self) -> None:
        while not self.outbox.empty():
            self.outbox.get_nowait()
            self.outbox.task_done()
