"""
HTTP and WebSocket surface of the signal board.

Webhook handlers validate payloads, hand typed commands to the runtime and
map the transition outcome onto a status code. Viewers connect on /ws and
receive the full snapshot first, then every subsequent update.
"""

import asyncio
import json
from contextlib import asynccontextmanager, suppress
from dataclasses import dataclass
from typing import Any, Optional

import structlog
from fastapi import FastAPI, Request, WebSocket, WebSocketDisconnect
from fastapi.responses import JSONResponse, PlainTextResponse

from .. import __version__
from ..config.defaults import AppConfig, get_default_config
from ..delivery.base import ViewerTransport
from ..delivery.broadcaster import Broadcaster
from ..delivery.session import ViewerSession
from ..errors import IngressError
from ..ingress.validators import IngressValidator
from ..persistence.state_gateway import StateGateway
from ..registry import SymbolRegistry
from ..state.engine import TransitionEngine
from ..state.models import TransitionOutcome, TransitionResult
from ..state.runtime import SignalRuntime
from ..state.store import SignalStateStore

logger = structlog.get_logger(__name__)

SIGNAL_ACCEPTED = "Webhook received!"
RANGE_ACCEPTED = "Range received!"
PRICE_ACCEPTED = "Price received!"
SIGNAL_IGNORED = "Signal ignored"


@dataclass
class Services:
    """Wired application components shared by every request."""
    config: AppConfig
    registry: SymbolRegistry
    store: SignalStateStore
    engine: TransitionEngine
    broadcaster: Broadcaster
    runtime: SignalRuntime
    validator: IngressValidator
    gateway: Optional[StateGateway] = None


def build_services(config: AppConfig) -> Services:
    """Construct and wire every component from configuration."""
    registry = SymbolRegistry.create(
        config.registry.display_group_a,
        config.registry.display_group_b,
    )
    store = SignalStateStore(registry)
    engine = TransitionEngine(store)
    broadcaster = Broadcaster(store.snapshot)

    gateway = None
    if config.persistence.enabled:
        gateway = StateGateway(config.persistence.db_path, config.persistence.ttl_days)

    runtime = SignalRuntime(store, engine, broadcaster, gateway)
    return Services(
        config=config,
        registry=registry,
        store=store,
        engine=engine,
        broadcaster=broadcaster,
        runtime=runtime,
        validator=IngressValidator(registry),
        gateway=gateway,
    )


class WebSocketTransport(ViewerTransport):
    """Viewer transport over a Starlette WebSocket."""

    def __init__(self, websocket: WebSocket):
        self.websocket = websocket

    async def send_text(self, data: str) -> None:
        await self.websocket.send_text(data)

    async def close(self, code: int = 1000) -> None:
        await self.websocket.close(code=code)

    @property
    def peer(self) -> str:
        client = self.websocket.client
        return f"{client.host}:{client.port}" if client else "unknown"


def handle_viewer_message(session: ViewerSession, message: str) -> None:
    """Process one inbound viewer frame; only probe acknowledgements matter."""
    if message == "pong":
        session.mark_alive()
        return

    try:
        data = json.loads(message)
    except json.JSONDecodeError:
        logger.debug("Ignoring non-JSON viewer message", session_id=session.session_id)
        return

    if isinstance(data, dict) and data.get("type") == "pong":
        session.mark_alive()


def _text(message: str, status_code: int) -> PlainTextResponse:
    return PlainTextResponse(message, status_code=status_code)


def _outcome_response(result: TransitionResult, accepted: str) -> PlainTextResponse:
    if result.outcome is TransitionOutcome.UPDATED:
        return _text(accepted, 200)
    if result.outcome is TransitionOutcome.IGNORED:
        return _text(SIGNAL_IGNORED, 202)
    return _text(f"Event rejected: {result.reason}", 400)


async def _read_json(request: Request) -> Any:
    try:
        return await request.json()
    except ValueError:
        return None


def create_app(config: Optional[AppConfig] = None, services: Optional[Services] = None) -> FastAPI:
    """
    Build the FastAPI application.

    Args:
        config: Application configuration, defaults when omitted
        services: Pre-wired components, built from ``config`` when omitted
    """
    config = config or get_default_config()
    services = services or build_services(config)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        # Startup
        restored = services.runtime.reload()
        heartbeat = asyncio.create_task(
            services.broadcaster.run_heartbeat(config.server.heartbeat_interval_seconds),
            name="viewer-heartbeat",
        )
        logger.info(
            "Signal board started",
            symbols=len(services.registry),
            restored=restored,
            persistence=services.gateway is not None,
        )

        yield

        # Shutdown
        heartbeat.cancel()
        with suppress(asyncio.CancelledError):
            await heartbeat
        await services.broadcaster.close_all()
        logger.info("Signal board stopped", **services.runtime.get_stats())

    app = FastAPI(
        title="Callboard",
        description="Live signal-state board for a fixed symbol universe",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.services = services

    @app.post("/webhook", response_class=PlainTextResponse)
    async def receive_signal(request: Request) -> PlainTextResponse:
        payload = await _read_json(request)
        try:
            command = services.validator.parse_signal(payload)
        except IngressError as e:
            logger.warning("Rejected signal event", error=str(e), error_type=type(e).__name__)
            return _text(str(e), 400)

        result = await services.runtime.process_signal(
            command.symbol, command.family, command.polarity, command.price, command.time
        )
        return _outcome_response(result, SIGNAL_ACCEPTED)

    @app.post("/range", response_class=PlainTextResponse)
    async def receive_range(request: Request) -> PlainTextResponse:
        payload = await _read_json(request)
        try:
            command = services.validator.parse_range(payload)
        except IngressError as e:
            logger.warning("Rejected range event", error=str(e), error_type=type(e).__name__)
            return _text(str(e), 400)

        result = await services.runtime.process_range(
            command.symbol, command.window, command.high, command.low, command.time
        )
        return _outcome_response(result, RANGE_ACCEPTED)

    @app.post("/price", response_class=PlainTextResponse)
    async def receive_price(request: Request) -> PlainTextResponse:
        payload = await _read_json(request)
        try:
            tick = services.validator.parse_price_tick(payload)
        except IngressError as e:
            logger.warning("Rejected price tick", error=str(e), error_type=type(e).__name__)
            return _text(str(e), 400)

        services.runtime.process_price_tick(tick)
        return _text(PRICE_ACCEPTED, 200)

    @app.get("/state")
    async def current_state() -> JSONResponse:
        return JSONResponse(services.store.snapshot().to_message())

    @app.get("/health")
    async def health() -> JSONResponse:
        persistence: dict[str, Any] = {"enabled": services.gateway is not None}
        if services.gateway is not None:
            persistence.update(await asyncio.to_thread(services.gateway.get_stats))

        return JSONResponse({
            "status": "ok",
            "version": __version__,
            "runtime": services.runtime.get_stats(),
            "viewers": services.broadcaster.get_stats(),
            "persistence": persistence,
        })

    @app.websocket("/ws")
    async def viewer_socket(websocket: WebSocket) -> None:
        await websocket.accept()
        session = ViewerSession(WebSocketTransport(websocket))
        await services.broadcaster.connect(session)

        try:
            while True:
                message = await websocket.receive_text()
                handle_viewer_message(session, message)
        except WebSocketDisconnect:
            pass
        finally:
            await services.broadcaster.disconnect(session)

    return app
