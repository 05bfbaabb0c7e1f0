"""Pydantic views of GameState as sent to player devices."""

from pydantic import BaseModel, Field

from game.rules import Phase
from game.state import GameState


class PlayerView(BaseModel):
    """Player as shown to one viewer: role only when it is theirs or has been revealed."""

    id: str
    name: str
    status: str
    alive: bool
    role: str | None = Field(default=None, description="Viewer's own role, or any publicly revealed role")
    publicly_revealed: bool = False
    silenced: bool = False


class EventView(BaseModel):
    kind: str
    day_count: int
    phase: str
    message: str
    player_id: str | None = None
    extra: dict | None = None


class GameStateView(BaseModel):
    """Payload of game_state_update."""

    phase: str
    game_mode: str | None = None
    day_count: int
    players: list[PlayerView]
    votes: dict[str, str] = Field(default_factory=dict, description="voter id -> target id; Day only")
    winner: str
    current_player_index: int = 0
    kamikaze_pending: str | None = None
    vote_resolved: bool = False
    events: list[EventView] = Field(default_factory=list)
    viewer_id: str | None = None


def game_state_for_viewer(state: GameState, viewer_id: str | None) -> GameStateView:
    """Build the view of state one player may see. viewer_id None gives the public view."""
    players = [
        PlayerView(
            id=p.id,
            name=p.name,
            status=p.status.value,
            alive=p.alive,
            role=p.role.value if (p.id == viewer_id or p.publicly_revealed) else None,
            publicly_revealed=p.publicly_revealed,
            silenced=p.silenced,
        )
        for p in state.players
    ]
    events = [
        EventView(
            kind=e.kind.value,
            day_count=e.day_count,
            phase=e.phase.value,
            message=e.message,
            player_id=e.player_id,
            extra=e.extra,
        )
        for e in state.events
    ]
    return GameStateView(
        phase=state.phase.value,
        game_mode=state.game_mode.value if state.game_mode else None,
        day_count=state.day_count,
        players=players,
        votes=dict(state.votes) if state.phase == Phase.DAY else {},
        winner=state.winner.value,
        current_player_index=state.current_player_index,
        kamikaze_pending=state.kamikaze_pending,
        vote_resolved=state.vote_resolved,
        events=events,
        viewer_id=viewer_id,
    )
