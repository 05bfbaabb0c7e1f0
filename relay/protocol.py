"""Wire protocol: JSON message envelope and payload models."""

import time
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from game.rules import NightActionType

# Validation constants (no magic numbers in validation)
MAX_PLAYER_NAME_LENGTH = 50
MAX_PLAYER_ID_LENGTH = 128
MAX_MESSAGE_TYPE_LENGTH = 64


class MessageType(str, Enum):
    JOIN_GAME = "join_game"
    PLAYER_JOINED = "player_joined"
    PLAYER_RECONNECTED = "player_reconnected"
    PLAYER_DISCONNECTED = "player_disconnected"
    GAME_STATE_UPDATE = "game_state_update"
    PHASE_CHANGE = "phase_change"
    REQUEST_ACTION = "request_action"
    SUBMIT_ACTION = "submit_action"
    ACTION_RECEIVED = "action_received"
    REQUEST_VOTE = "request_vote"
    SUBMIT_VOTE = "submit_vote"
    VOTE_RECEIVED = "vote_received"
    ASSIGN_GAME_ROLE = "assign_game_role"
    REJOIN_GAME = "rejoin_game"
    ERROR = "error"
    HOST_CONNECTED = "host_connected"
    HOST_DISCONNECTED = "host_disconnected"
    INVESTIGATION_RESULT = "investigation_result"


def now_ms() -> int:
    """Timestamp in milliseconds since the epoch."""
    return int(time.time() * 1000)


class Message(BaseModel):
    """
    Envelope for everything on the socket. type is open: the relay routes any
    type the host and players agree on and only interprets the MessageType ones.
    """

    model_config = ConfigDict(populate_by_name=True)

    type: str = Field(..., min_length=1, max_length=MAX_MESSAGE_TYPE_LENGTH)
    payload: dict[str, Any] = Field(default_factory=dict)
    player_id: Optional[str] = Field(default=None, alias="playerId", description="Sender, set by the relay on player messages")
    target_player_id: Optional[str] = Field(
        default=None,
        alias="targetPlayerId",
        description="Host messages only: deliver to this player instead of broadcasting",
    )
    timestamp: int = Field(default_factory=now_ms)

    @field_validator("type", mode="before")
    @classmethod
    def plain_type(cls, v: Any) -> Any:
        if isinstance(v, MessageType):
            return v.value
        return v

    def to_wire(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)

    def restamped(self, **changes: Any) -> "Message":
        """Copy with a fresh timestamp, as the relay does on every hop."""
        return self.model_copy(update={"timestamp": now_ms(), **changes})


class JoinGamePayload(BaseModel):
    """First message from a player device; the id is generated and kept by the client."""

    model_config = ConfigDict(populate_by_name=True)

    player_id: str = Field(..., alias="playerId", min_length=1, max_length=MAX_PLAYER_ID_LENGTH)
    player_name: str = Field(..., alias="playerName", min_length=1, max_length=MAX_PLAYER_NAME_LENGTH)


class AssignGameRolePayload(BaseModel):
    """Host -> relay: bind a device to an in-match player."""

    model_config = ConfigDict(populate_by_name=True)

    target_player_id: str = Field(..., alias="targetPlayerId")
    game_player_id: str = Field(..., alias="gamePlayerId")
    game_role: str = Field(..., alias="gameRole")


class SubmitActionPayload(BaseModel):
    """Player -> host: night action, or the Kamikaze's revenge pick (action_type 'revenge')."""

    model_config = ConfigDict(populate_by_name=True)

    action_type: str = Field(..., alias="actionType")
    target_id: Optional[str] = Field(default=None, alias="targetId")

    def night_action_type(self) -> NightActionType:
        return NightActionType(self.action_type)


class SubmitVotePayload(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    target_id: str = Field(..., alias="targetId")


def make_message(
    message_type: MessageType,
    payload: Optional[dict[str, Any]] = None,
    target_player_id: Optional[str] = None,
    player_id: Optional[str] = None,
) -> Message:
    return Message(
        type=message_type,
        payload=payload or {},
        target_player_id=target_player_id,
        player_id=player_id,
    )
