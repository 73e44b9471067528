"""
The chain: connect a start player to an end player through shared clubs.

Link checks happen outside this module (they need the remote validator); the
session feeds their outcome back in as LinkAccepted or LinkRejected. While a
check is in flight the state is marked validating and further submissions are
refused.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from puzzle.logic.enums import GuessOutcome, SessionStatus
from puzzle.logic.events import (
    BeginValidation,
    GiveUp,
    LinkAccepted,
    LinkRejected,
    RestoreChain,
    StartGame,
    UndoLastLink,
)
from puzzle.logic.scoring import calculate_chain_score
from puzzle.logic.state import ChainLink, ChainState
from puzzle.logic.state_utils import apply_common_event, begin_play, with_outcome

if TYPE_CHECKING:
    from collections.abc import Callable

    from puzzle.logic.content import ChainContent


def create_chain_state(content: ChainContent) -> ChainState:
    return ChainState(
        chain=(ChainLink(player=content.start_player),),
        end_player=content.end_player,
        par=content.par,
    )


def _finish(state: ChainState, *, completed: bool) -> ChainState:
    return state.model_copy(
        update={
            "status": SessionStatus.COMPLETE if completed else SessionStatus.GAVE_UP,
            "is_validating": False,
            "score": calculate_chain_score(state.steps_taken, state.par, completed),
        },
    )


def start(state: ChainState, event: StartGame) -> ChainState:
    if state.status != SessionStatus.IDLE:
        return state
    return begin_play(state, event.started_at)


def begin_validation(state: ChainState, _event: BeginValidation) -> ChainState:
    if not state.is_playing or state.is_validating:
        return state
    return with_outcome(state.model_copy(update={"is_validating": True}), None)


def link_rejected(state: ChainState, event: LinkRejected) -> ChainState:
    if not state.is_playing:
        return state
    return with_outcome(state.model_copy(update={"is_validating": False}), event.outcome, event.flagged_index)


def link_accepted(state: ChainState, event: LinkAccepted) -> ChainState:
    """Append the user's link (and the auto-completed end link). Only user links count as steps."""
    if not state.is_playing:
        return state
    chain = (*state.chain, event.link)
    if event.final_link is not None:
        chain = (*chain, event.final_link)
    state = state.model_copy(
        update={
            "chain": chain,
            "steps_taken": state.steps_taken + 1,
            "is_validating": False,
        },
    )
    state = with_outcome(state, GuessOutcome.CORRECT, len(chain) - 1)
    if event.reaches_end or event.final_link is not None:
        return _finish(state, completed=True)
    return state


def undo_last_link(state: ChainState, _event: UndoLastLink) -> ChainState:
    if not state.is_playing or state.is_validating or len(state.chain) <= 1:
        return state
    return with_outcome(
        state.model_copy(update={"chain": state.chain[:-1], "steps_taken": state.steps_taken - 1}),
        None,
    )


def give_up(state: ChainState, _event: GiveUp) -> ChainState:
    if not state.is_playing:
        return state
    return _finish(state, completed=False)


def restore(state: ChainState, event: RestoreChain) -> ChainState:
    if state.status != SessionStatus.IDLE or not event.chain:
        return state
    return state.model_copy(
        update={
            "chain": event.chain,
            "steps_taken": len(event.chain) - 1,
            "status": SessionStatus.PLAYING,
            "attempt_id": event.attempt_id,
            "started_at": event.started_at,
        },
    )


_HANDLERS: dict[type, Callable[[ChainState, Any], ChainState]] = {
    StartGame: start,
    BeginValidation: begin_validation,
    LinkAccepted: link_accepted,
    LinkRejected: link_rejected,
    UndoLastLink: undo_last_link,
    GiveUp: give_up,
    RestoreChain: restore,
}


def transition(state: ChainState, event: object) -> ChainState:
    common = apply_common_event(state, event)
    if common is not None:
        return common
    handler = _HANDLERS.get(type(event))
    if handler is None:
        raise TypeError(f"unsupported chain event: {type(event).__name__}")
    return handler(state, event)
