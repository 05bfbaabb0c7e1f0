"""GameEngine: the host's owner of the authoritative GameState.

Wraps the pure transitions in game.engine, swapping in each new snapshot
whole, and runs the night turn sequence with one cancelable timer per
awaited role slot.
"""

import asyncio
import logging
from typing import Awaitable, Callable, Optional

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
    plan_night_turns,
    reduce,
)
from game.errors import InvalidPhaseError
from game.rules import (
    AssignmentMode,
    GameMode,
    NIGHT_ACTION_TIMEOUT_SECONDS,
    NightActionType,
    Phase,
    Role,
)
from game.state import CustomRoleConfig, GameState, NightResult, NightTurn, VoteResult

logger = logging.getLogger(__name__)

NightTurnCallback = Callable[[NightTurn], Awaitable[None]]
NightResolvedCallback = Callable[[Optional[NightResult]], Awaitable[None]]


class GameEngine:
    """
    Authoritative match state for one host.

    on_night_turn is awaited whenever a new role slot is awaited;
    on_night_resolved is awaited after the night sequence has moved the game
    to the next Day (or GameOver).
    """

    def __init__(
        self,
        night_action_timeout: float = NIGHT_ACTION_TIMEOUT_SECONDS,
        on_night_turn: Optional[NightTurnCallback] = None,
        on_night_resolved: Optional[NightResolvedCallback] = None,
    ) -> None:
        self.state = GameState()
        self.night_action_timeout = night_action_timeout
        self.on_night_turn = on_night_turn
        self.on_night_resolved = on_night_resolved
        self._night_queue: list[NightTurn] = []
        self._current_turn: Optional[NightTurn] = None
        self._timers: dict[Role, asyncio.Task] = {}

    @property
    def current_night_turn(self) -> Optional[NightTurn]:
        return self._current_turn

    def dispatch(self, action: Action):
        """Apply action and replace the state in one step. Returns the transition outcome."""
        previous = self.state.phase
        transition = reduce(self.state, action)
        self.state = transition.state

        if self.state.phase != previous:
            logger.info("Phase %s -> %s (day %d)", previous.value, self.state.phase.value, self.state.day_count)
            if self.state.phase == Phase.GAME_OVER:
                logger.info("Game over: %s wins", self.state.winner.value)
        if self.state.phase != Phase.NIGHT:
            self.cancel_night_turns()
        return transition.outcome

    # Convenience wrappers, one per transition.

    def select_mode(self, mode: GameMode) -> None:
        self.dispatch(SelectMode(mode))

    def initialize(
        self,
        player_names: list[str],
        assignment_mode: AssignmentMode = AssignmentMode.RECOMMENDED,
        custom_config: Optional[CustomRoleConfig] = None,
        seed: Optional[int] = None,
    ) -> None:
        self.dispatch(InitializeGame(tuple(player_names), assignment_mode, custom_config, seed))

    def start(self) -> None:
        self.dispatch(StartGame())

    def cast_vote(self, voter_id: str, target_id: str) -> None:
        self.dispatch(CastVote(voter_id, target_id))

    def resolve_vote(self) -> VoteResult:
        return self.dispatch(ResolveVote())

    def kamikaze_revenge(self, target_id: Optional[str] = None) -> None:
        self.dispatch(KamikazeRevenge(target_id))

    def advance_phase(self) -> Optional[NightResult]:
        return self.dispatch(AdvancePhase())

    def next_player(self) -> None:
        self.dispatch(NextPlayer())

    def reset(self) -> None:
        self.dispatch(ResetGame())

    # Night turn sequence.

    async def submit_night_action(
        self,
        player_id: str,
        target_id: str,
        action_type: NightActionType,
    ) -> None:
        """
        Record a night action. While a turn sequence runs only the awaited
        actor may submit; doing so cancels that slot's timer and moves on.
        """
        turn = self._current_turn
        if turn is not None and turn.actor_id != player_id:
            raise InvalidPhaseError(f"Waiting for the {turn.slot.value}'s action")
        self.dispatch(SubmitNightAction(player_id, target_id, action_type))
        if turn is not None:
            self._cancel_timer(turn.slot)
            await self._next_night_turn()

    async def begin_night(self) -> None:
        """Start awaiting night actions role by role."""
        if self.state.phase != Phase.NIGHT:
            raise InvalidPhaseError(f"Night turns cannot start in phase {self.state.phase.value}")
        self.cancel_night_turns()
        self._night_queue = plan_night_turns(self.state)
        logger.info("Night %d: %d role(s) to act", self.state.day_count, len(self._night_queue))
        await self._next_night_turn()

    async def skip_night_turn(self) -> None:
        """Skip the awaited slot, exactly as a timeout would."""
        turn = self._current_turn
        if turn is None:
            raise InvalidPhaseError("No night action is being awaited")
        self._cancel_timer(turn.slot)
        logger.info("Skipping %s turn", turn.slot.value)
        await self._next_night_turn()

    def cancel_night_turns(self) -> None:
        for task in self._timers.values():
            task.cancel()
        self._timers.clear()
        self._night_queue = []
        self._current_turn = None

    def _cancel_timer(self, slot: Role) -> None:
        task = self._timers.pop(slot, None)
        if task is not None:
            task.cancel()

    async def _next_night_turn(self) -> None:
        self._current_turn = None
        if self.state.phase != Phase.NIGHT:
            return
        if not self._night_queue:
            result = self.dispatch(AdvancePhase())
            if self.on_night_resolved is not None:
                await self.on_night_resolved(result)
            return

        turn = self._night_queue.pop(0)
        self._current_turn = turn
        timer = asyncio.create_task(self._expire(turn))
        timer.add_done_callback(self._log_timer_failure)
        self._timers[turn.slot] = timer
        logger.info("Awaiting %s action from %s", turn.slot.value, turn.actor_id)
        if self.on_night_turn is not None:
            await self.on_night_turn(turn)

    async def _expire(self, turn: NightTurn) -> None:
        await asyncio.sleep(self.night_action_timeout)
        if self._current_turn is not turn:
            return
        self._timers.pop(turn.slot, None)
        logger.info("No %s action within %.0fs; skipping", turn.slot.value, self.night_action_timeout)
        await self._next_night_turn()

    @staticmethod
    def _log_timer_failure(task: "asyncio.Task[None]") -> None:
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.warning("Night turn timer failed: %s", exc, exc_info=exc)
