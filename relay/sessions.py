"""Session broker: session code -> host and player connections.

The broker only routes. It never looks inside game messages except for the
join handshake and the host's role bindings, which it keeps so a player who
drops and comes back can be told who they are in the match.

All registry changes happen before the first await of a handler, so with a
single event loop no locking is needed.
"""

import asyncio
import logging
import random
import string
import time
from dataclasses import dataclass, field
from typing import Any, Iterable, Optional, Protocol

from pydantic import ValidationError

from relay.protocol import (
    AssignGameRolePayload,
    JoinGamePayload,
    Message,
    MessageType,
    make_message,
)

logger = logging.getLogger(__name__)

SESSION_CODE_LENGTH = 6
SESSION_CODE_ALPHABET = string.ascii_uppercase + string.digits


class Connection(Protocol):
    """What the broker needs from a socket (a Starlette WebSocket satisfies it)."""

    async def send_json(self, data: Any) -> None: ...

    async def close(self, code: int = 1000, reason: Optional[str] = None) -> None: ...


class RelayError(Exception):
    """Connection-level failure; the connection is closed with close_code."""

    close_code = 1008


class SessionRequired(RelayError):
    close_code = 4001

    def __init__(self, message: str = "Session ID required") -> None:
        super().__init__(message)


class SessionNotFound(RelayError):
    close_code = 4004

    def __init__(self, message: str = "Session not found. Check the session code and try again.") -> None:
        super().__init__(message)


@dataclass(eq=False)
class PlayerRecord:
    """One player device in a session. Kept across disconnects."""

    player_id: str  # persistent, generated by the client
    name: str
    connection: Optional[Connection] = None
    connected: bool = True
    game_player_id: Optional[str] = None
    game_role: Optional[str] = None


@dataclass(eq=False)
class Session:
    code: str
    host: Optional[Connection] = None
    players: dict[str, PlayerRecord] = field(default_factory=dict)
    # player sockets attached but not yet joined, keyed by id()
    waiting: dict[int, Connection] = field(default_factory=dict)
    game_started: bool = False
    created_at: float = field(default_factory=time.time)

    def connected_players(self) -> list[PlayerRecord]:
        return [p for p in self.players.values() if p.connected and p.connection is not None]


def generate_session_code(existing: Iterable[str] = (), rng: Optional[random.Random] = None) -> str:
    """Random 6-character uppercase alphanumeric code not in existing."""
    rng = rng or random.SystemRandom()
    taken = set(existing)
    while True:
        code = "".join(rng.choice(SESSION_CODE_ALPHABET) for _ in range(SESSION_CODE_LENGTH))
        if code not in taken:
            return code


class SessionRegistry:
    """All relay sessions of this process. Constructed once and handed to the socket handlers."""

    def __init__(self) -> None:
        self._sessions: dict[str, Session] = {}

    def __len__(self) -> int:
        return len(self._sessions)

    def __contains__(self, code: str) -> bool:
        return code in self._sessions

    def get(self, code: str) -> Optional[Session]:
        return self._sessions.get(code)

    def codes(self) -> list[str]:
        return list(self._sessions)

    def open_player_session(self, code: Optional[str], connection: Optional[Connection] = None) -> Session:
        """
        Session a player connection may attach to. A connection passed here
        keeps the session from being swept until it joins or disconnects.
        """
        if not code:
            raise SessionRequired()
        session = self._sessions.get(code)
        if session is None:
            raise SessionNotFound()
        if connection is not None:
            session.waiting[id(connection)] = connection
        return session

    # --- host side -------------------------------------------------------

    async def connect_host(self, code: Optional[str], connection: Connection) -> Session:
        """Create the session on first host connection; a reconnecting host replaces the old socket."""
        if not code:
            raise SessionRequired()
        session = self._sessions.get(code)
        if session is None:
            session = Session(code=code)
            self._sessions[code] = session
            logger.info("New session created: %s", code)
        else:
            logger.info("Host reconnecting to session %s", code)
        session.host = connection

        await self._send(connection, make_message(MessageType.HOST_CONNECTED, {"sessionId": code}))
        return session

    async def disconnect_host(self, code: str, connection: Connection) -> None:
        session = self._sessions.get(code)
        if session is None or session.host is not connection:
            return
        session.host = None
        logger.info("Host disconnected from session %s", code)
        for record in session.connected_players():
            await self._send(record.connection, make_message(MessageType.HOST_DISCONNECTED))

    async def route_host_message(self, code: str, message: Message) -> None:
        """Unicast when targetPlayerId is set, otherwise broadcast to connected players."""
        session = self._sessions.get(code)
        if session is None:
            return

        if message.type == MessageType.ASSIGN_GAME_ROLE:
            try:
                binding = AssignGameRolePayload.model_validate(message.payload)
            except ValidationError as exc:
                logger.warning("Malformed assign_game_role in session %s: %s", code, exc)
                return
            record = session.players.get(binding.target_player_id)
            if record is None:
                logger.warning("assign_game_role for unknown player %s in session %s", binding.target_player_id, code)
                return
            record.game_player_id = binding.game_player_id
            record.game_role = binding.game_role
            session.game_started = True
            logger.info("Assigned %s (%s) to %s", binding.game_role, binding.game_player_id, record.name)
            message = message.model_copy(update={"target_player_id": binding.target_player_id})

        outgoing = message.restamped()
        if outgoing.target_player_id:
            record = session.players.get(outgoing.target_player_id)
            if record is None or not record.connected or record.connection is None:
                logger.debug("Dropping %s for unavailable player %s", outgoing.type, outgoing.target_player_id)
                return
            await self._send(record.connection, outgoing)
            return

        for record in session.connected_players():
            await self._send(record.connection, outgoing)

    # --- player side -----------------------------------------------------

    async def handle_player_message(
        self,
        code: str,
        connection: Connection,
        player_id: Optional[str],
        message: Message,
    ) -> Optional[str]:
        """
        Handle one message from a player socket. Returns the persistent player
        id bound to the socket, which join_game sets.
        """
        if message.type == MessageType.JOIN_GAME:
            try:
                payload = JoinGamePayload.model_validate(message.payload)
            except ValidationError as exc:
                logger.warning("Malformed join_game in session %s: %s", code, exc)
                return player_id
            record = await self.join_player(code, connection, payload)
            return record.player_id

        if player_id is None:
            logger.warning("Dropping %s from a player that has not joined session %s", message.type, code)
            return None
        await self.route_player_message(code, player_id, message)
        return player_id

    async def join_player(self, code: str, connection: Connection, payload: JoinGamePayload) -> PlayerRecord:
        """First join creates the record; the same persistent id again is a reconnection."""
        session = self.open_player_session(code)
        session.waiting.pop(id(connection), None)
        record = session.players.get(payload.player_id)

        if record is None:
            record = PlayerRecord(
                player_id=payload.player_id,
                name=payload.player_name,
                connection=connection,
            )
            session.players[record.player_id] = record
            logger.info(
                "New player joined: %s (%s) in session %s; %d player(s)",
                record.name,
                record.player_id,
                code,
                len(session.players),
            )
            await self._send_to_host(
                session,
                make_message(
                    MessageType.PLAYER_JOINED,
                    {"playerId": record.player_id, "playerName": record.name},
                    player_id=record.player_id,
                ),
            )
            return record

        record.connection = connection
        record.connected = True
        logger.info("Player reconnected: %s (%s) in session %s", record.name, record.player_id, code)
        await self._send_to_host(
            session,
            make_message(
                MessageType.PLAYER_RECONNECTED,
                {
                    "playerId": record.player_id,
                    "playerName": record.name,
                    "gamePlayerId": record.game_player_id,
                    "gameRole": record.game_role,
                },
                player_id=record.player_id,
            ),
        )
        if session.game_started and record.game_player_id:
            await self._send(
                connection,
                make_message(
                    MessageType.REJOIN_GAME,
                    {
                        "gamePlayerId": record.game_player_id,
                        "gameRole": record.game_role,
                        "gameStarted": True,
                    },
                ),
            )
        return record

    async def disconnect_player(self, code: str, player_id: Optional[str], connection: Connection) -> None:
        """Mark the record disconnected (never removed) and tell the host."""
        session = self._sessions.get(code)
        if session is None:
            return
        session.waiting.pop(id(connection), None)
        if player_id is None:
            return
        record = session.players.get(player_id)
        # a newer socket may already have taken over this record
        if record is None or record.connection is not connection:
            return
        record.connection = None
        record.connected = False
        logger.info("Player disconnected: %s (%s) - keeping in session %s for reconnection", record.name, player_id, code)
        await self._send_to_host(
            session,
            make_message(
                MessageType.PLAYER_DISCONNECTED,
                {"playerId": player_id, "playerName": record.name, "canReconnect": True},
                player_id=player_id,
            ),
        )

    async def route_player_message(self, code: str, player_id: str, message: Message) -> None:
        """Players only ever talk to the host, tagged with their persistent id."""
        session = self._sessions.get(code)
        if session is None or session.host is None:
            logger.debug("No host in session %s; dropping %s from %s", code, message.type, player_id)
            return
        await self._send(session.host, message.restamped(player_id=player_id, target_player_id=None))

    # --- housekeeping ----------------------------------------------------

    def sweep(self) -> list[str]:
        """Delete hostless sessions that hold neither player records nor sockets waiting to join."""
        stale = [code for code, s in self._sessions.items() if s.host is None and not s.players and not s.waiting]
        for code in stale:
            del self._sessions[code]
            logger.info("Cleaning up stale session: %s", code)
        return stale

    async def run_sweeper(self, interval: float) -> None:
        while True:
            await asyncio.sleep(interval)
            self.sweep()

    async def _send_to_host(self, session: Session, message: Message) -> None:
        if session.host is None:
            logger.debug("No host in session %s for %s", session.code, message.type)
            return
        await self._send(session.host, message)

    async def _send(self, connection: Connection, message: Message) -> None:
        try:
            await connection.send_json(message.to_wire())
        except Exception as exc:
            logger.warning("Send of %s failed: %s", message.type, exc)
