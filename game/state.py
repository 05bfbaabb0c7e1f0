"""Game state types for the Mafia party game."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional

from game.rules import (
    AssignmentMode,
    GameMode,
    NightActionType,
    Phase,
    PlayerStatus,
    Role,
    Winner,
)


@dataclass(frozen=True)
class Player:
    """A player in the game. Replaced, never mutated, by engine transitions."""

    id: str
    name: str
    role: Role
    status: PlayerStatus = PlayerStatus.ALIVE
    publicly_revealed: bool = False
    silenced: bool = False
    roleblocked: bool = False

    @property
    def alive(self) -> bool:
        return self.status == PlayerStatus.ALIVE


class EventKind(str, Enum):
    """Type of game event."""

    GAME_START = "game_start"
    PHASE_CHANGE = "phase_change"
    VOTE_RESULT = "vote_result"
    ELIMINATED = "eliminated"
    NIGHT_KILL = "night_kill"
    NIGHT_PROTECT = "night_protect"
    SILENCED = "silenced"
    KAMIKAZE_REVENGE = "kamikaze_revenge"
    GAME_OVER = "game_over"


@dataclass
class Event:
    """A single public game event for history."""

    kind: EventKind
    day_count: int
    phase: Phase
    message: str
    player_id: Optional[str] = None
    extra: Optional[dict] = None


@dataclass(frozen=True)
class NightAction:
    """One submitted night action, stored in the slot of the acting role."""

    actor_id: str
    target_id: str
    action_type: NightActionType


@dataclass(frozen=True)
class CustomRoleConfig:
    """Host-picked roles for custom assignment mode."""

    selected_roles: tuple[Role, ...]
    total_players: int


@dataclass(frozen=True)
class VoteResult:
    """Outcome of a day vote tally."""

    eliminated_player: Optional[Player]
    is_tie: bool
    vote_count: dict[str, int]


@dataclass(frozen=True)
class Investigation:
    """Detective result; handed to the caller, never stored in GameState."""

    detective_id: str
    target_id: str
    is_mafia: bool


@dataclass(frozen=True)
class NightResult:
    """What happened when a night was resolved."""

    killed_id: Optional[str] = None
    saved_id: Optional[str] = None
    silenced_id: Optional[str] = None
    roleblocked_id: Optional[str] = None
    blocked_slots: tuple[Role, ...] = ()
    investigation: Optional[Investigation] = None


@dataclass(frozen=True)
class NightTurn:
    """One awaited role slot in the night sequence."""

    slot: Role
    actor_id: str
    action_type: NightActionType
    valid_target_ids: tuple[str, ...]


@dataclass
class GameState:
    """Full authoritative game state, owned by the host."""

    phase: Phase = Phase.MODE_SELECT
    game_mode: Optional[GameMode] = None
    assignment_mode: Optional[AssignmentMode] = None
    day_count: int = 1
    players: list[Player] = field(default_factory=list)
    votes: dict[str, str] = field(default_factory=dict)  # voter id -> target id
    pending_night_actions: dict[Role, NightAction] = field(default_factory=dict)
    winner: Winner = Winner.NONE
    current_player_index: int = 0  # pass-the-device cursor over living players
    kamikaze_pending: Optional[str] = None  # voted-out kamikaze who still owes a revenge pick
    vote_resolved: bool = False
    events: list[Event] = field(default_factory=list)

    def get_alive_players(self) -> list[Player]:
        """Return list of alive players."""
        return [p for p in self.players if p.alive]

    def get_player(self, player_id: str) -> Optional[Player]:
        """Return player by id or None."""
        for p in self.players:
            if p.id == player_id:
                return p
        return None

    def get_players_by_role(self, role: Role) -> list[Player]:
        """Return alive players with the given role."""
        return [p for p in self.players if p.alive and p.role == role]

    def current_player(self) -> Optional[Player]:
        """Living player the device should be handed to, or None."""
        alive = self.get_alive_players()
        if not alive:
            return None
        return alive[self.current_player_index % len(alive)]
