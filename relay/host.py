"""Host-side coordinator: relay messages in, GameEngine calls out.

Runs on the host device next to the authoritative GameEngine. It keeps the
lobby of connected devices, maps device ids to in-match player ids and
turns player submissions into engine transitions. Only the host ever sees
the full state; players get per-viewer views.
"""

import logging
from dataclasses import dataclass
from typing import Awaitable, Callable, Optional

from pydantic import ValidationError

from game.controller import GameEngine
from game.errors import GameError, InvalidPhaseError, UnknownPlayerError
from game.rules import AssignmentMode, GameMode, Phase, Role
from game.state import CustomRoleConfig, NightResult, NightTurn, VoteResult
from relay.models import game_state_for_viewer
from relay.protocol import (
    Message,
    MessageType,
    SubmitActionPayload,
    SubmitVotePayload,
    make_message,
)

logger = logging.getLogger(__name__)

REVENGE_ACTION = "revenge"

SendFn = Callable[[Message], Awaitable[None]]


@dataclass
class LobbyPlayer:
    device_id: str
    name: str
    connected: bool = True
    game_player_id: Optional[str] = None


class HostCoordinator:
    """
    Bridge between the relay and one GameEngine.

    send is awaited for every outgoing message; it is the host socket's
    writer in production and a list append in tests.
    """

    def __init__(self, send: SendFn, engine: Optional[GameEngine] = None) -> None:
        self._send = send
        self.engine = engine or GameEngine()
        self.engine.on_night_turn = self._on_night_turn
        self.engine.on_night_resolved = self._on_night_resolved
        self.lobby: dict[str, LobbyPlayer] = {}  # device id -> lobby entry, in join order

    # --- lookups ---------------------------------------------------------

    def connected_players(self) -> list[LobbyPlayer]:
        return [p for p in self.lobby.values() if p.connected]

    def device_for(self, game_player_id: str) -> Optional[str]:
        for entry in self.lobby.values():
            if entry.game_player_id == game_player_id:
                return entry.device_id
        return None

    def _game_player_id(self, device_id: Optional[str]) -> str:
        entry = self.lobby.get(device_id) if device_id else None
        if entry is None or entry.game_player_id is None:
            raise UnknownPlayerError("This device is not playing in the current match")
        return entry.game_player_id

    def _target_list(self, player_ids) -> list[dict]:
        out = []
        for player_id in player_ids:
            player = self.engine.state.get_player(player_id)
            if player is not None:
                out.append({"id": player.id, "name": player.name})
        return out

    # --- inbound ---------------------------------------------------------

    async def handle(self, message: Message) -> None:
        """Handle one message the relay delivered to the host."""
        if message.type in (MessageType.PLAYER_JOINED, MessageType.PLAYER_RECONNECTED):
            await self._on_player_connected(message)
        elif message.type == MessageType.PLAYER_DISCONNECTED:
            entry = self.lobby.get(message.payload.get("playerId") or message.player_id or "")
            if entry is not None:
                entry.connected = False
                logger.info("%s disconnected", entry.name)
        elif message.type == MessageType.SUBMIT_VOTE:
            await self._on_submit_vote(message)
        elif message.type == MessageType.SUBMIT_ACTION:
            await self._on_submit_action(message)
        else:
            logger.debug("Host ignoring %s", message.type)

    async def _on_player_connected(self, message: Message) -> None:
        device_id = message.payload.get("playerId") or message.player_id
        if not device_id:
            logger.warning("%s without a player id", message.type)
            return
        name = message.payload.get("playerName") or device_id
        entry = self.lobby.get(device_id)
        if entry is None:
            entry = LobbyPlayer(device_id=device_id, name=name)
            self.lobby[device_id] = entry
            logger.info("%s joined the lobby (%d connected)", name, len(self.connected_players()))
        else:
            entry.connected = True
            logger.info("%s is back", entry.name)
        game_player_id = message.payload.get("gamePlayerId")
        if game_player_id and entry.game_player_id is None:
            entry.game_player_id = game_player_id

        if self.engine.state.phase not in (Phase.MODE_SELECT, Phase.SETUP):
            await self.send_state(entry)

    async def _on_submit_vote(self, message: Message) -> None:
        device_id = message.player_id
        try:
            payload = SubmitVotePayload.model_validate(message.payload)
            self.engine.cast_vote(self._game_player_id(device_id), payload.target_id)
        except (GameError, ValidationError) as exc:
            await self._send_error(device_id, exc)
            return
        await self._send(
            make_message(
                MessageType.VOTE_RECEIVED,
                {"success": True, "targetId": payload.target_id},
                target_player_id=device_id,
            )
        )

    async def _on_submit_action(self, message: Message) -> None:
        device_id = message.player_id
        try:
            payload = SubmitActionPayload.model_validate(message.payload)
            game_player_id = self._game_player_id(device_id)
            if payload.action_type == REVENGE_ACTION:
                await self._take_revenge(game_player_id, payload.target_id)
            else:
                await self.engine.submit_night_action(game_player_id, payload.target_id, payload.night_action_type())
        except (GameError, ValueError) as exc:
            # ValueError covers pydantic's ValidationError and unknown action types
            await self._send_error(device_id, exc)
            return
        await self._send(
            make_message(
                MessageType.ACTION_RECEIVED,
                {"success": True, "actionType": payload.action_type},
                target_player_id=device_id,
            )
        )

    async def _take_revenge(self, game_player_id: str, target_id: Optional[str]) -> None:
        if self.engine.state.kamikaze_pending != game_player_id:
            raise InvalidPhaseError("No revenge is owed by this player")
        self.engine.kamikaze_revenge(target_id)
        await self.broadcast_state()

    async def _send_error(self, device_id: Optional[str], exc: Exception) -> None:
        logger.info("Rejected submission from %s: %s", device_id, exc)
        if not device_id:
            return
        await self._send(make_message(MessageType.ERROR, {"message": str(exc)}, target_player_id=device_id))

    # --- host-driven flow ------------------------------------------------

    async def start_match(
        self,
        assignment_mode: AssignmentMode = AssignmentMode.RECOMMENDED,
        custom_config: Optional[CustomRoleConfig] = None,
        seed: Optional[int] = None,
    ) -> None:
        """Deal roles to the connected lobby, bind every device and open Day 1."""
        if self.engine.state.phase == Phase.MODE_SELECT:
            self.engine.select_mode(GameMode.LOCAL_MULTIPLAYER)
        seated = self.connected_players()
        self.engine.initialize([p.name for p in seated], assignment_mode, custom_config, seed)

        # players come back in seat order
        for entry, player in zip(seated, self.engine.state.players):
            entry.game_player_id = player.id
            await self._send(
                make_message(
                    MessageType.ASSIGN_GAME_ROLE,
                    {
                        "targetPlayerId": entry.device_id,
                        "gamePlayerId": player.id,
                        "gameRole": player.role.value,
                    },
                )
            )

        self.engine.start()
        logger.info("Match started with %d players", len(seated))
        await self.broadcast_phase()

    async def request_votes(self) -> None:
        """Ask every living, connected player for their vote."""
        state = self.engine.state
        if state.phase != Phase.DAY:
            raise InvalidPhaseError(f"Voting happens during the day, not {state.phase.value}")
        alive_ids = [p.id for p in state.get_alive_players()]
        for entry in self.connected_players():
            if entry.game_player_id not in alive_ids:
                continue
            targets = [pid for pid in alive_ids if pid != entry.game_player_id]
            await self._send(
                make_message(
                    MessageType.REQUEST_VOTE,
                    {"dayCount": state.day_count, "validTargets": self._target_list(targets)},
                    target_player_id=entry.device_id,
                )
            )

    async def close_voting(self) -> VoteResult:
        """Resolve today's vote, publish it and, for a Kamikaze, ask for the revenge pick."""
        result = self.engine.resolve_vote()
        await self.broadcast_state()

        kamikaze_id = self.engine.state.kamikaze_pending
        if kamikaze_id is not None:
            targets = [p.id for p in self.engine.state.get_alive_players() if p.id != kamikaze_id]
            await self._send_to_game_player(
                kamikaze_id,
                MessageType.REQUEST_ACTION,
                {
                    "role": Role.KAMIKAZE.value,
                    "actionType": REVENGE_ACTION,
                    "validTargets": self._target_list(targets),
                },
            )
        return result

    async def begin_night(self) -> None:
        """Day -> Night, then walk the night turns."""
        self.engine.advance_phase()
        await self.broadcast_phase()
        if self.engine.state.phase == Phase.NIGHT:
            await self.engine.begin_night()

    async def skip_night_turn(self) -> None:
        await self.engine.skip_night_turn()

    # --- engine callbacks ------------------------------------------------

    async def _on_night_turn(self, turn: NightTurn) -> None:
        await self._send_to_game_player(
            turn.actor_id,
            MessageType.REQUEST_ACTION,
            {
                "role": turn.slot.value,
                "actionType": turn.action_type.value,
                "validTargets": self._target_list(turn.valid_target_ids),
                "timeout": self.engine.night_action_timeout,
            },
        )

    async def _on_night_resolved(self, result: Optional[NightResult]) -> None:
        await self.broadcast_phase()
        if result is None or result.investigation is None:
            return
        investigation = result.investigation
        target = self.engine.state.get_player(investigation.target_id)
        await self._send_to_game_player(
            investigation.detective_id,
            MessageType.INVESTIGATION_RESULT,
            {
                "targetId": investigation.target_id,
                "targetName": target.name if target else investigation.target_id,
                "isMafia": investigation.is_mafia,
            },
        )

    # --- outbound state --------------------------------------------------

    async def _send_to_game_player(self, game_player_id: str, message_type: MessageType, payload: dict) -> None:
        """Unicast to the device bound to an in-match player; never falls back to a broadcast."""
        device_id = self.device_for(game_player_id)
        if device_id is None:
            logger.warning("No device bound to %s; dropping %s", game_player_id, message_type.value)
            return
        await self._send(make_message(message_type, payload, target_player_id=device_id))

    async def broadcast_phase(self) -> None:
        state = self.engine.state
        await self._send(
            make_message(
                MessageType.PHASE_CHANGE,
                {"phase": state.phase.value, "dayCount": state.day_count, "winner": state.winner.value},
            )
        )
        await self.broadcast_state()

    async def broadcast_state(self) -> None:
        for entry in self.connected_players():
            await self.send_state(entry)

    async def send_state(self, entry: LobbyPlayer) -> None:
        view = game_state_for_viewer(self.engine.state, entry.game_player_id)
        await self._send(
            make_message(
                MessageType.GAME_STATE_UPDATE,
                view.model_dump(mode="json"),
                target_player_id=entry.device_id,
            )
        )
