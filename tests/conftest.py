"""Pytest configuration and shared fixtures."""

import asyncio
import json
from typing import Any, Callable, Optional

import pytest

from callboard_app.delivery.base import ViewerTransport
from callboard_app.registry import SymbolRegistry
from callboard_app.state.engine import TransitionEngine
from callboard_app.state.store import SignalStateStore


class FakeClock:
    """Deterministic millisecond clock advancing by a fixed step per read."""

    def __init__(self, start: int = 1_700_000_000_000, step: int = 1000):
        self.now = start
        self.step = step

    def __call__(self) -> int:
        current = self.now
        self.now += self.step
        return current


class RecordingTransport(ViewerTransport):
    """In-memory viewer transport that records every frame sent."""

    def __init__(self, fail: bool = False, name: str = "test-peer"):
        self.fail = fail
        self.name = name
        self.sent: list[dict[str, Any]] = []
        self.closed_with: Optional[int] = None

    async def send_text(self, data: str) -> None:
        if self.fail:
            raise ConnectionResetError("peer went away")
        self.sent.append(json.loads(data))

    async def close(self, code: int = 1000) -> None:
        self.closed_with = code

    @property
    def peer(self) -> str:
        return self.name

    def messages_of(self, message_type: str) -> list[dict[str, Any]]:
        return [message for message in self.sent if message.get("type") == message_type]


async def settle(rounds: int = 20) -> None:
    """Let writer tasks drain their queues."""
    for _ in range(rounds):
        await asyncio.sleep(0)


@pytest.fixture
def registry() -> SymbolRegistry:
    """Small three-symbol registry."""
    return SymbolRegistry.create(["AAA", "BBB"], ["CCC"])


@pytest.fixture
def store(registry: SymbolRegistry) -> SignalStateStore:
    return SignalStateStore(registry)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def engine(store: SignalStateStore, clock: FakeClock) -> TransitionEngine:
    return TransitionEngine(store, clock=clock)


@pytest.fixture
def transport_factory() -> Callable[..., RecordingTransport]:
    return RecordingTransport


@pytest.fixture
def settle_tasks() -> Callable[..., Any]:
    return settle
