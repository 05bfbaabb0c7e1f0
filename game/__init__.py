"""Game engine for the Mafia party game."""

from game.assignment import assign_roles, custom_roles, recommended_roles
from game.controller import GameEngine
from game.engine import (
    Action,
    AdvancePhase,
    CastVote,
    InitializeGame,
    KamikazeRevenge,
    NextPlayer,
    ResetGame,
    ResolveVote,
    SelectMode,
    StartGame,
    SubmitNightAction,
    Transition,
    advance_phase,
    cast_vote,
    check_win_condition,
    initialize_game,
    kamikaze_revenge,
    next_player,
    plan_night_turns,
    reduce,
    reset_game,
    resolve_vote,
    select_mafia_killer,
    select_mode,
    start_game,
    submit_night_action,
    tally_votes,
)
from game.errors import (
    GameError,
    GameOverError,
    IneligiblePlayerError,
    InvalidCustomConfig,
    InvalidPhaseError,
    InvalidPlayerCount,
    InvalidPlayerNames,
    InvalidTargetError,
    UnknownPlayerError,
)
from game.rules import AssignmentMode, GameMode, NightActionType, Phase, PlayerStatus, Role, Team, Winner
from game.state import (
    CustomRoleConfig,
    Event,
    GameState,
    Investigation,
    NightAction,
    NightResult,
    NightTurn,
    Player,
    VoteResult,
)

__all__ = [
    "assign_roles",
    "custom_roles",
    "recommended_roles",
    "GameEngine",
    "Action",
    "AdvancePhase",
    "CastVote",
    "InitializeGame",
    "KamikazeRevenge",
    "NextPlayer",
    "ResetGame",
    "ResolveVote",
    "SelectMode",
    "StartGame",
    "SubmitNightAction",
    "Transition",
    "advance_phase",
    "cast_vote",
    "check_win_condition",
    "initialize_game",
    "kamikaze_revenge",
    "next_player",
    "plan_night_turns",
    "reduce",
    "reset_game",
    "resolve_vote",
    "select_mafia_killer",
    "select_mode",
    "start_game",
    "submit_night_action",
    "tally_votes",
    "GameError",
    "GameOverError",
    "IneligiblePlayerError",
    "InvalidCustomConfig",
    "InvalidPhaseError",
    "InvalidPlayerCount",
    "InvalidPlayerNames",
    "InvalidTargetError",
    "UnknownPlayerError",
    "AssignmentMode",
    "GameMode",
    "NightActionType",
    "Phase",
    "PlayerStatus",
    "Role",
    "Team",
    "Winner",
    "CustomRoleConfig",
    "Event",
    "GameState",
    "Investigation",
    "NightAction",
    "NightResult",
    "NightTurn",
    "Player",
    "VoteResult",
]
