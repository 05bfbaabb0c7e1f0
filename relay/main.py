"""FastAPI app: the WebSocket session relay."""

import asyncio
import contextlib
import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, WebSocket, WebSocketDisconnect
from fastapi.middleware.cors import CORSMiddleware
from pydantic import ValidationError

from relay.config import RelaySettings, load_settings
from relay.protocol import Message, MessageType, make_message
from relay.sessions import RelayError, SessionNotFound, SessionRegistry

logger = logging.getLogger(__name__)


async def _receive(websocket: WebSocket, code: Optional[str]) -> Optional[Message]:
    """Next envelope from the socket, or None if it was malformed (logged and dropped)."""
    frame = await websocket.receive()
    if frame["type"] == "websocket.disconnect":
        raise WebSocketDisconnect(frame.get("code", 1000), frame.get("reason"))
    raw = frame.get("text")
    if raw is None:
        logger.warning("Dropping non-text frame in session %s", code)
        return None
    try:
        return Message.model_validate_json(raw)
    except ValidationError as exc:
        logger.warning("Dropping malformed message in session %s: %s", code, exc.errors()[0]["msg"])
        return None


async def _host_loop(registry: SessionRegistry, websocket: WebSocket, code: Optional[str]) -> None:
    await registry.connect_host(code, websocket)
    try:
        while True:
            message = await _receive(websocket, code)
            if message is not None:
                await registry.route_host_message(code, message)
    except WebSocketDisconnect as exc:
        logger.debug("Host socket of session %s closed (%s)", code, exc.code)
    finally:
        await registry.disconnect_host(code, websocket)


async def _player_loop(registry: SessionRegistry, websocket: WebSocket, code: Optional[str]) -> None:
    try:
        registry.open_player_session(code, websocket)
    except SessionNotFound as exc:
        await websocket.send_json(make_message(MessageType.ERROR, {"message": str(exc)}).to_wire())
        raise

    player_id: Optional[str] = None
    try:
        while True:
            message = await _receive(websocket, code)
            if message is not None:
                player_id = await registry.handle_player_message(code, websocket, player_id, message)
    except WebSocketDisconnect as exc:
        logger.debug("Player socket %s in session %s closed (%s)", player_id, code, exc.code)
    finally:
        await registry.disconnect_player(code, player_id, websocket)


def create_app(settings: Optional[RelaySettings] = None) -> FastAPI:
    """Build the relay app. The registry lives in app.state for the app's lifetime."""
    settings = settings or load_settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        registry = SessionRegistry()
        app.state.registry = registry
        sweeper = asyncio.create_task(registry.run_sweeper(settings.sweep_interval))
        logger.info("Relay ready; sweeping stale sessions every %.0fs", settings.sweep_interval)
        try:
            yield
        finally:
            sweeper.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await sweeper

    app = FastAPI(title="Mafia Relay", version="0.1.0", lifespan=lifespan)
    app.state.settings = settings

    app.add_middleware(
        CORSMiddleware,
        allow_origins=list(settings.cors_allow_origins),
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.get("/health")
    def health():
        """Liveness probe with the number of open sessions."""
        return {"status": "ok", "sessions": len(app.state.registry)}

    @app.websocket("/ws")
    async def relay_socket(websocket: WebSocket, session: Optional[str] = None, host: Optional[str] = None):
        """
        One socket per device. ?session=<code> is required; ?host=true marks
        the host device, which creates the session on first connect.
        """
        registry: SessionRegistry = websocket.app.state.registry
        await websocket.accept()
        try:
            if (host or "").lower() == "true":
                await _host_loop(registry, websocket, session)
            else:
                await _player_loop(registry, websocket, session)
        except RelayError as exc:
            logger.warning("Closing connection to session %s: %s", session, exc)
            await websocket.close(code=exc.close_code, reason=str(exc))

    return app


app = create_app()
