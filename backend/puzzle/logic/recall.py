"""
Goalscorer recall: name every scorer of a match before the clock runs out.

Own goals are revealed from the start and never count. One correct guess
reveals every goal by that scorer. The game is won only when every scorer is
found with time still on the clock; running out of time or giving up loses.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from puzzle.logic.enums import GuessOutcome, SessionStatus
from puzzle.logic.events import GiveUp, RestoreRecall, StartGame, SubmitGuess, Tick, TimeUp
from puzzle.logic.matching import match, normalize
from puzzle.logic.scoring import calculate_recall_score
from puzzle.logic.state import RecallGoal, RecallState
from puzzle.logic.state_utils import apply_common_event, begin_play, with_outcome

if TYPE_CHECKING:
    from collections.abc import Callable

    from puzzle.logic.content import RecallContent

TIMER_DURATION = 60


def create_recall_state(
    content: RecallContent,
    time_limit: int = TIMER_DURATION,
    *,
    time_bonus: bool = False,
) -> RecallState:
    """Build the idle state: goals ordered by minute, own goals pre-revealed."""
    ordered = sorted(content.goals, key=lambda goal: goal.minute)
    goals = tuple(
        RecallGoal(
            id=f"goal-{index}",
            scorer=goal.scorer,
            normalized_scorer=normalize(goal.scorer),
            minute=goal.minute,
            team=goal.team,
            is_own_goal=goal.is_own_goal,
            found=goal.is_own_goal,
        )
        for index, goal in enumerate(ordered)
    )
    scorers = tuple(dict.fromkeys(goal.normalized_scorer for goal in goals if not goal.is_own_goal))
    return RecallState(goals=goals, scorers=scorers, time_remaining=time_limit, time_bonus=time_bonus)


def _finish(state: RecallState, *, gave_up: bool = False) -> RecallState:
    all_found = len(state.found_scorers) >= state.total_scorers
    score = calculate_recall_score(
        len(state.found_scorers),
        state.total_scorers,
        all_found,
        state.time_remaining,
        time_bonus=state.time_bonus,
        gave_up=gave_up,
    )
    return state.model_copy(
        update={
            "status": SessionStatus.WON if score.won else SessionStatus.LOST,
            "score": score,
        },
    )


def _reveal(state: RecallState, scorers: frozenset[str]) -> RecallState:
    goals = tuple(
        goal.model_copy(update={"found": True}) if goal.normalized_scorer in scorers else goal for goal in state.goals
    )
    return state.model_copy(update={"goals": goals, "found_scorers": state.found_scorers | scorers})


def start(state: RecallState, event: StartGame) -> RecallState:
    if state.status != SessionStatus.IDLE:
        return state
    state = begin_play(state, event.started_at)
    if state.total_scorers == 0:
        return _finish(state)
    return state


def submit_guess(state: RecallState, event: SubmitGuess) -> RecallState:
    """
    Resolve a guess against the scorers.

    Unfound scorers are checked first so a guess close to both a found and an
    unfound name still scores.
    """
    if not state.is_playing or not event.text.strip():
        return state

    for scorer in state.scorers:
        if scorer not in state.found_scorers and match(event.text, scorer).is_match:
            state = with_outcome(_reveal(state, frozenset({scorer})), GuessOutcome.CORRECT)
            if state.found_count >= state.total_scorers:
                return _finish(state)
            return state

    if any(match(event.text, scorer).is_match for scorer in state.found_scorers):
        return with_outcome(state, GuessOutcome.DUPLICATE)
    return with_outcome(state, GuessOutcome.INCORRECT)


def tick(state: RecallState, _event: Tick) -> RecallState:
    if not state.is_playing:
        return state
    state = state.model_copy(update={"time_remaining": max(0, state.time_remaining - 1)})
    if state.time_remaining == 0:
        return _finish(state)
    return state


def time_up(state: RecallState, _event: TimeUp) -> RecallState:
    if not state.is_playing:
        return state
    return _finish(state.model_copy(update={"time_remaining": 0}))


def give_up(state: RecallState, _event: GiveUp) -> RecallState:
    if not state.is_playing:
        return state
    return _finish(state, gave_up=True)


def restore(state: RecallState, event: RestoreRecall) -> RecallState:
    """Rehydrate an idle session from saved progress. Unknown scorer names are dropped."""
    if state.status != SessionStatus.IDLE:
        return state
    known = event.found_scorers & frozenset(state.scorers)
    state = _reveal(state, known)
    return state.model_copy(
        update={
            "status": SessionStatus.PLAYING,
            "attempt_id": event.attempt_id,
            "started_at": event.started_at,
            "time_remaining": max(0, event.time_remaining),
        },
    )


_HANDLERS: dict[type, Callable[[RecallState, Any], RecallState]] = {
    StartGame: start,
    SubmitGuess: submit_guess,
    Tick: tick,
    TimeUp: time_up,
    GiveUp: give_up,
    RestoreRecall: restore,
}


def transition(state: RecallState, event: object) -> RecallState:
    common = apply_common_event(state, event)
    if common is not None:
        return common
    handler = _HANDLERS.get(type(event))
    if handler is None:
        raise TypeError(f"unsupported recall event: {type(event).__name__}")
    return handler(state, event)
