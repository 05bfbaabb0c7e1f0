"""Game engine: pure state transitions, no I/O.

Every transition takes the full prior GameState, deep-copies it and returns a
new one. Validation happens before anything is changed, so a rejected call
leaves the caller's snapshot exactly as it was.
"""

import copy
import random
from collections import Counter
from dataclasses import dataclass, replace
from typing import NamedTuple, Optional, Union

from game.assignment import assign_roles
from game.errors import (
    GameOverError,
    IneligiblePlayerError,
    InvalidPhaseError,
    InvalidPlayerCount,
    InvalidTargetError,
    UnknownPlayerError,
)
from game.roles import appears_as_mafia, can_target, get_role_config, is_mafia_team, is_town_team, valid_night_targets
from game.rules import (
    AssignmentMode,
    GameMode,
    NIGHT_ACTION_ORDER,
    NightActionType,
    Phase,
    PlayerStatus,
    Role,
    Winner,
)
from game.state import (
    CustomRoleConfig,
    Event,
    EventKind,
    GameState,
    Investigation,
    NightAction,
    NightResult,
    NightTurn,
    Player,
    VoteResult,
)


def _emit(state: GameState, event: Event) -> None:
    """Append event to state (mutates state)."""
    state.events.append(event)


def _require_phase(state: GameState, *phases: Phase) -> None:
    if state.phase == Phase.GAME_OVER:
        raise GameOverError(f"Game is over ({state.winner.value} won); reset to play again")
    if state.phase not in phases:
        allowed = ", ".join(p.value for p in phases)
        raise InvalidPhaseError(f"Not allowed in phase {state.phase.value} (expected {allowed})")


def _require_player(state: GameState, player_id: str) -> Player:
    player = state.get_player(player_id)
    if player is None:
        raise UnknownPlayerError(f"Unknown player {player_id!r}")
    return player


def _replace_player(state: GameState, player_id: str, **changes) -> None:
    """Swap in an updated copy of one player (mutates state)."""
    state.players = [replace(p, **changes) if p.id == player_id else p for p in state.players]


def _eliminate(state: GameState, player_id: str) -> None:
    _replace_player(state, player_id, status=PlayerStatus.ELIMINATED, publicly_revealed=True)


def _end_game(state: GameState, winner: Winner) -> None:
    state.phase = Phase.GAME_OVER
    state.winner = winner
    state.votes = {}
    state.pending_night_actions = {}
    state.kamikaze_pending = None
    state.players = [replace(p, publicly_revealed=True) for p in state.players]
    _emit(
        state,
        Event(
            kind=EventKind.GAME_OVER,
            day_count=state.day_count,
            phase=Phase.GAME_OVER,
            message=f"{winner.value} wins.",
            extra={"winner": winner.value},
        ),
    )


def _finish_if_won(state: GameState) -> Winner:
    """Evaluate the win condition and force GameOver if it fired (mutates state)."""
    winner = check_win_condition(state.players)
    if winner != Winner.NONE:
        _end_game(state, winner)
    return winner


def _phase_change(state: GameState, message: str) -> None:
    _emit(
        state,
        Event(
            kind=EventKind.PHASE_CHANGE,
            day_count=state.day_count,
            phase=state.phase,
            message=message,
        ),
    )


# --- tally and win condition -------------------------------------------------


def tally_votes(votes: dict[str, str], players: list[Player]) -> VoteResult:
    """
    Count votes per target. A strict maximum is eliminated; two or more
    targets sharing the top count is a tie and nobody goes.
    """
    vote_count = dict(Counter(votes.values()))
    if not vote_count:
        return VoteResult(eliminated_player=None, is_tie=False, vote_count={})

    max_votes = max(vote_count.values())
    top = [target_id for target_id, count in vote_count.items() if count == max_votes]
    if len(top) > 1:
        return VoteResult(eliminated_player=None, is_tie=True, vote_count=vote_count)

    eliminated = next((p for p in players if p.id == top[0]), None)
    return VoteResult(eliminated_player=eliminated, is_tie=False, vote_count=vote_count)


def check_win_condition(players: list[Player]) -> Winner:
    """Winner over living players; Winner.NONE while the game goes on. Never raises."""
    alive = [p for p in players if p.alive]
    if len(alive) == 1 and alive[0].role == Role.JOKER:
        return Winner.JOKER

    mafia_alive = sum(1 for p in alive if is_mafia_team(p.role))
    town_alive = sum(1 for p in alive if is_town_team(p.role))
    if mafia_alive == 0:
        return Winner.TOWN
    if mafia_alive >= town_alive:
        return Winner.MAFIA
    return Winner.NONE


# --- night planning ----------------------------------------------------------


def select_mafia_killer(players: list[Player], day_count: int) -> Optional[Player]:
    """The mafia member who picks tonight's kill: Godfather first, else regular mafia in rotation."""
    alive = [p for p in players if p.alive]
    for p in alive:
        if p.role == Role.GODFATHER:
            return p
    regular = [p for p in alive if p.role == Role.MAFIA]
    if not regular:
        return None
    return regular[(day_count - 1) % len(regular)]


def plan_night_turns(state: GameState) -> list[NightTurn]:
    """Ordered night turns for roles with a living actor and at least one legal target."""
    killer = select_mafia_killer(state.players, state.day_count)
    turns: list[NightTurn] = []
    for role in NIGHT_ACTION_ORDER:
        if is_mafia_team(role):
            actor = killer if killer is not None and killer.role == role else None
        else:
            candidates = state.get_players_by_role(role)
            actor = candidates[0] if candidates else None
        if actor is None:
            continue
        targets = tuple(p.id for p in valid_night_targets(actor, state.players))
        if not targets:
            continue
        turns.append(
            NightTurn(
                slot=role,
                actor_id=actor.id,
                action_type=get_role_config(role).night_action,
                valid_target_ids=targets,
            )
        )
    return turns


def _resolve_night(state: GameState) -> NightResult:
    """Apply the night's actions in fixed order (mutates state)."""
    actions = dict(state.pending_night_actions)

    # 1. roleblock: the blocked player's own action does not happen
    roleblocked_id: Optional[str] = None
    blocked_slots: tuple[Role, ...] = ()
    hooker = actions.get(Role.HOOKER)
    if hooker:
        roleblocked_id = hooker.target_id
        _replace_player(state, roleblocked_id, roleblocked=True)
        blocked_slots = tuple(slot for slot, a in actions.items() if a.actor_id == roleblocked_id)
        for slot in blocked_slots:
            del actions[slot]

    # 2. silence for the coming day
    silenced_id: Optional[str] = None
    silencer = actions.get(Role.SILENCER)
    if silencer:
        silenced_id = silencer.target_id
        _replace_player(state, silenced_id, silenced=True)
        target = state.get_player(silenced_id)
        _emit(
            state,
            Event(
                kind=EventKind.SILENCED,
                day_count=state.day_count,
                phase=Phase.NIGHT,
                message=f"{target.name if target else silenced_id} has been silenced for the day.",
                player_id=silenced_id,
            ),
        )

    # 3. kill unless the doctor protected the same player
    killed_id: Optional[str] = None
    saved_id: Optional[str] = None
    kill = actions.get(Role.GODFATHER) or actions.get(Role.MAFIA)
    doctor = actions.get(Role.DOCTOR)
    if kill:
        if doctor and doctor.target_id == kill.target_id:
            saved_id = kill.target_id
            _emit(
                state,
                Event(
                    kind=EventKind.NIGHT_PROTECT,
                    day_count=state.day_count,
                    phase=Phase.NIGHT,
                    message="The Doctor protected the Mafia's target; no one died.",
                ),
            )
        else:
            victim = state.get_player(kill.target_id)
            if victim is not None and victim.alive:
                killed_id = victim.id
                _eliminate(state, killed_id)
                _emit(
                    state,
                    Event(
                        kind=EventKind.NIGHT_KILL,
                        day_count=state.day_count,
                        phase=Phase.NIGHT,
                        message=f"{victim.name} was eliminated during the night.",
                        player_id=killed_id,
                        extra={"role": victim.role.value},
                    ),
                )

    # 4. investigation goes back to the caller only
    investigation: Optional[Investigation] = None
    detective = actions.get(Role.DETECTIVE)
    if detective:
        target = state.get_player(detective.target_id)
        if target is not None:
            investigation = Investigation(
                detective_id=detective.actor_id,
                target_id=target.id,
                is_mafia=appears_as_mafia(target.role),
            )

    return NightResult(
        killed_id=killed_id,
        saved_id=saved_id,
        silenced_id=silenced_id,
        roleblocked_id=roleblocked_id,
        blocked_slots=blocked_slots,
        investigation=investigation,
    )


# --- transitions -------------------------------------------------------------


def select_mode(state: GameState, mode: GameMode) -> GameState:
    """ModeSelect -> Setup."""
    _require_phase(state, Phase.MODE_SELECT)
    state = copy.deepcopy(state)
    state.game_mode = GameMode(mode)
    state.phase = Phase.SETUP
    return state


def initialize_game(
    state: GameState,
    player_names: list[str],
    assignment_mode: AssignmentMode = AssignmentMode.RECOMMENDED,
    custom_config: Optional[CustomRoleConfig] = None,
    seed: Optional[int] = None,
) -> GameState:
    """Deal roles and reset match data. Stays in Setup; may be called again to re-deal."""
    _require_phase(state, Phase.SETUP)
    players = assign_roles(player_names, assignment_mode, custom_config, rng=random.Random(seed))
    return GameState(
        phase=Phase.SETUP,
        game_mode=state.game_mode,
        assignment_mode=AssignmentMode(assignment_mode),
        players=players,
    )


def start_game(state: GameState) -> GameState:
    """Setup -> Day."""
    _require_phase(state, Phase.SETUP)
    if not state.players:
        raise InvalidPlayerCount("Initialize the game with player names before starting")
    state = copy.deepcopy(state)
    state.phase = Phase.DAY
    _emit(
        state,
        Event(
            kind=EventKind.GAME_START,
            day_count=state.day_count,
            phase=Phase.DAY,
            message=f"Game started with {len(state.players)} players.",
        ),
    )
    _phase_change(state, f"Day {state.day_count}.")
    _finish_if_won(state)
    return state


def cast_vote(state: GameState, voter_id: str, target_id: str) -> GameState:
    """Record a day vote; a later vote from the same voter replaces the earlier one."""
    _require_phase(state, Phase.DAY)
    if state.vote_resolved:
        raise InvalidPhaseError("Today's vote has already been resolved")
    voter = _require_player(state, voter_id)
    if not voter.alive:
        raise IneligiblePlayerError(f"{voter.name} has been eliminated and cannot vote")
    _require_player(state, target_id)
    state = copy.deepcopy(state)
    state.votes[voter_id] = target_id
    return state


def submit_night_action(
    state: GameState,
    player_id: str,
    target_id: str,
    action_type: NightActionType,
) -> GameState:
    """Store a night action in the slot of the acting role; resubmitting overwrites."""
    _require_phase(state, Phase.NIGHT)
    actor = _require_player(state, player_id)
    if not actor.alive:
        raise IneligiblePlayerError(f"{actor.name} has been eliminated")
    action_type = NightActionType(action_type)
    expected = get_role_config(actor.role).night_action
    if expected == NightActionType.NONE or expected != action_type:
        raise IneligiblePlayerError(f"{actor.role.value} cannot perform {action_type.value}")
    target = _require_player(state, target_id)
    if not can_target(actor, target):
        raise InvalidTargetError(f"{actor.role.value} cannot target {target.name}")
    state = copy.deepcopy(state)
    state.pending_night_actions[actor.role] = NightAction(
        actor_id=actor.id,
        target_id=target.id,
        action_type=action_type,
    )
    return state


def advance_phase(state: GameState) -> tuple[GameState, Optional[NightResult]]:
    """
    Day -> Night, or Night -> Day with night resolution.
    Returns the new state and, for Night -> Day, what happened overnight.
    """
    _require_phase(state, Phase.DAY, Phase.NIGHT)
    if state.kamikaze_pending is not None:
        raise InvalidPhaseError("The Kamikaze must take revenge (or skip) first")

    state = copy.deepcopy(state)
    result: Optional[NightResult] = None
    if state.phase == Phase.DAY:
        state.players = [replace(p, silenced=False, roleblocked=False) for p in state.players]
        state.phase = Phase.NIGHT
        _phase_change(state, f"Night {state.day_count}.")
    else:
        result = _resolve_night(state)
        state.pending_night_actions = {}
        state.day_count += 1
        state.phase = Phase.DAY
        _phase_change(state, f"Day {state.day_count}.")

    state.votes = {}
    state.vote_resolved = False
    state.current_player_index = 0
    _finish_if_won(state)
    return state, result


def resolve_vote(state: GameState) -> tuple[GameState, VoteResult]:
    """Tally today's votes and eliminate the strict-maximum target. Once per day."""
    _require_phase(state, Phase.DAY)
    if state.vote_resolved:
        raise InvalidPhaseError("Today's vote has already been resolved")
    state = copy.deepcopy(state)
    result = tally_votes(state.votes, state.players)
    state.vote_resolved = True
    _emit(
        state,
        Event(
            kind=EventKind.VOTE_RESULT,
            day_count=state.day_count,
            phase=Phase.DAY,
            message="The vote is tied; no one is eliminated." if result.is_tie else "The votes are in.",
            extra={"vote_count": dict(result.vote_count), "is_tie": result.is_tie},
        ),
    )

    eliminated = result.eliminated_player
    if eliminated is None or not eliminated.alive:
        return state, result

    _eliminate(state, eliminated.id)
    _emit(
        state,
        Event(
            kind=EventKind.ELIMINATED,
            day_count=state.day_count,
            phase=Phase.DAY,
            message=f"{eliminated.name} was eliminated by vote.",
            player_id=eliminated.id,
            extra={"role": eliminated.role.value},
        ),
    )
    if eliminated.role == Role.JOKER:
        _end_game(state, Winner.JOKER)
    elif eliminated.role == Role.KAMIKAZE:
        state.kamikaze_pending = eliminated.id
    else:
        _finish_if_won(state)
    return state, result


def kamikaze_revenge(state: GameState, target_id: Optional[str] = None) -> GameState:
    """Eliminate one more living player after a Kamikaze is voted out. None skips."""
    _require_phase(state, Phase.DAY)
    if state.kamikaze_pending is None:
        raise InvalidPhaseError("No Kamikaze revenge is pending")
    kamikaze_id = state.kamikaze_pending
    if target_id is not None:
        target = _require_player(state, target_id)
        if not target.alive or target.id == kamikaze_id:
            raise InvalidTargetError(f"{target.name} cannot be the Kamikaze's target")

    state = copy.deepcopy(state)
    state.kamikaze_pending = None
    if target_id is not None:
        _eliminate(state, target_id)
        _emit(
            state,
            Event(
                kind=EventKind.KAMIKAZE_REVENGE,
                day_count=state.day_count,
                phase=Phase.DAY,
                message=f"The Kamikaze took {target.name} down with them.",
                player_id=target_id,
                extra={"role": target.role.value},
            ),
        )
    _finish_if_won(state)
    return state


def next_player(state: GameState) -> GameState:
    """Move the pass-the-device cursor to the next living player. Cosmetic only."""
    state = copy.deepcopy(state)
    alive_count = len(state.get_alive_players())
    state.current_player_index = (state.current_player_index + 1) % alive_count if alive_count else 0
    return state


def reset_game(state: GameState) -> GameState:
    """Back to mode selection; all match data is discarded."""
    return GameState()


# --- actions -----------------------------------------------------------------


@dataclass(frozen=True)
class SelectMode:
    mode: GameMode


@dataclass(frozen=True)
class InitializeGame:
    player_names: tuple[str, ...]
    assignment_mode: AssignmentMode = AssignmentMode.RECOMMENDED
    custom_config: Optional[CustomRoleConfig] = None
    seed: Optional[int] = None


@dataclass(frozen=True)
class StartGame:
    pass


@dataclass(frozen=True)
class CastVote:
    voter_id: str
    target_id: str


@dataclass(frozen=True)
class SubmitNightAction:
    player_id: str
    target_id: str
    action_type: NightActionType


@dataclass(frozen=True)
class AdvancePhase:
    pass


@dataclass(frozen=True)
class ResolveVote:
    pass


@dataclass(frozen=True)
class KamikazeRevenge:
    target_id: Optional[str] = None


@dataclass(frozen=True)
class NextPlayer:
    pass


@dataclass(frozen=True)
class ResetGame:
    pass


Action = Union[
    SelectMode,
    InitializeGame,
    StartGame,
    CastVote,
    SubmitNightAction,
    AdvancePhase,
    ResolveVote,
    KamikazeRevenge,
    NextPlayer,
    ResetGame,
]


class Transition(NamedTuple):
    """New state plus what the caller needs to know (NightResult, VoteResult or None)."""

    state: GameState
    outcome: Optional[Union[NightResult, VoteResult]] = None


def reduce(state: GameState, action: Action) -> Transition:
    """Apply one action to state. Pure: the input state is never modified."""
    if isinstance(action, SelectMode):
        return Transition(select_mode(state, action.mode))
    if isinstance(action, InitializeGame):
        return Transition(
            initialize_game(
                state,
                list(action.player_names),
                action.assignment_mode,
                action.custom_config,
                action.seed,
            )
        )
    if isinstance(action, StartGame):
        return Transition(start_game(state))
    if isinstance(action, CastVote):
        return Transition(cast_vote(state, action.voter_id, action.target_id))
    if isinstance(action, SubmitNightAction):
        return Transition(submit_night_action(state, action.player_id, action.target_id, action.action_type))
    if isinstance(action, AdvancePhase):
        return Transition(*advance_phase(state))
    if isinstance(action, ResolveVote):
        return Transition(*resolve_vote(state))
    if isinstance(action, KamikazeRevenge):
        return Transition(kamikaze_revenge(state, action.target_id))
    if isinstance(action, NextPlayer):
        return Transition(next_player(state))
    if isinstance(action, ResetGame):
        return Transition(reset_game(state))
    raise TypeError(f"Unknown action {action!r}")
