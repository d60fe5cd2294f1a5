"""Broadcast fan-out of state snapshots and price ticks to viewer sessions."""

import asyncio
import json
from typing import Any, Callable, Optional

from ..errors import ViewerConnectionError
from ..logging.config import get_viewer_logger
from ..state.models import PriceTick, StateSnapshot
from ..utils.time import wall_clock_ms
from .base import DeliveryStatus
from .session import ViewerSession

logger = get_viewer_logger(__name__)

DEFAULT_HEARTBEAT_SECONDS = 30.0


class Broadcaster:
    """
    Fans every state change out to all live viewer sessions.

    Messages are serialised once and enqueued on each session; delivery runs
    in the sessions' own writer tasks. A failing session is removed without
    affecting the others.
    """

    def __init__(self, snapshot_provider: Callable[[], StateSnapshot]):
        self.snapshot_provider = snapshot_provider
        self.logger = logger
        self.sessions: dict[str, ViewerSession] = {}
        self.latest_ticks: dict[str, PriceTick] = {}
        self._broadcast_count = 0
        self._tick_count = 0
        self._removed_count = 0

    async def connect(self, session: ViewerSession) -> None:
        """
        Register a session and replay current state to it.

        The full snapshot and every cached price tick are queued before the
        session becomes visible to broadcasts, so it never sees an
        incremental update first.
        """
        session.start(on_failure=self._on_session_failure)
        session.enqueue(self._encode(self.snapshot_provider().to_message()))
        for tick in self.latest_ticks.values():
            session.enqueue(self._encode(tick.to_message()))

        self.sessions[session.session_id] = session
        self.logger.info(
            "Viewer connected",
            session_id=session.session_id,
            viewers=len(self.sessions),
        )

    async def disconnect(self, session: ViewerSession) -> None:
        """Remove a session and close it."""
        if self.sessions.pop(session.session_id, None) is not None:
            self.logger.info(
                "Viewer disconnected",
                session_id=session.session_id,
                viewers=len(self.sessions),
            )
        await session.close()

    def broadcast_state(self, snapshot: Optional[StateSnapshot] = None) -> int:
        """
        Queue a full snapshot on every session.

        Args:
            snapshot: Snapshot to send, defaults to the provider's current one

        Returns:
            Number of sessions the snapshot was queued on
        """
        snapshot = snapshot or self.snapshot_provider()
        self._broadcast_count += 1
        return self._fan_out(self._encode(snapshot.to_message()))

    def broadcast_price_tick(self, tick: PriceTick) -> int:
        """Cache a tick and queue it on every session."""
        self.latest_ticks[tick.symbol] = tick
        self._tick_count += 1
        return self._fan_out(self._encode(tick.to_message()))

    async def probe_sessions(self) -> list[str]:
        """
        Run one liveness round.

        Sessions that did not acknowledge the previous probe are closed and
        removed; every remaining session is marked pending and probed.

        Returns:
            IDs of the sessions removed this round
        """
        removed = []
        probe = self._encode({"type": "ping", "sentAt": wall_clock_ms()})

        for session in list(self.sessions.values()):
            if not session.is_alive:
                self.logger.warning("Viewer missed liveness probe", session_id=session.session_id)
                removed.append(session.session_id)
                self._removed_count += 1
                await self.disconnect(session)
                continue

            session.is_alive = False
            session.enqueue(probe)

        return removed

    async def run_heartbeat(self, interval_seconds: float = DEFAULT_HEARTBEAT_SECONDS) -> None:
        """Probe sessions on a fixed interval until cancelled."""
        self.logger.info("Heartbeat started", interval_seconds=interval_seconds)
        while True:
            await asyncio.sleep(interval_seconds)
            await self.probe_sessions()

    async def close_all(self) -> None:
        """Close every session, used on shutdown."""
        for session in list(self.sessions.values()):
            await self.disconnect(session)

    def get_stats(self) -> dict[str, Any]:
        """Get broadcast statistics."""
        return {
            "viewers": len(self.sessions),
            "broadcasts": self._broadcast_count,
            "price_ticks": self._tick_count,
            "removed_sessions": self._removed_count,
            "cached_ticks": len(self.latest_ticks),
        }

    def _fan_out(self, payload: str) -> int:
        queued = 0
        for session in list(self.sessions.values()):
            result = session.enqueue(payload)
            if result.status is DeliveryStatus.QUEUED:
                queued += 1
        return queued

    async def _on_session_failure(self, session: ViewerSession, error: ViewerConnectionError) -> None:
        self._removed_count += 1
        self.logger.warning(
            "Removing failed viewer",
            session_id=session.session_id,
            error=str(error),
        )
        await self.disconnect(session)

    @staticmethod
    def _encode(message: dict[str, Any]) -> str:
        return json.dumps(message)
