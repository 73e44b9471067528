"""
Starting XI: name the hidden players of a lineup, one selected slot at a time.

A guess is resolved against the selected slot first, then against slots that
are already revealed (duplicate), then against the other open slots (right
player, wrong slot). The game completes when every hidden slot is found.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from puzzle.logic.enums import GuessOutcome, SessionStatus
from puzzle.logic.events import DeselectSlot, GiveUp, RestoreLineup, SelectSlot, StartGame, SubmitGuess
from puzzle.logic.matching import AnswerCandidate, find_match, matches_candidate
from puzzle.logic.scoring import calculate_lineup_score
from puzzle.logic.state import LineupSlot, LineupState
from puzzle.logic.state_utils import apply_common_event, begin_play, with_outcome

if TYPE_CHECKING:
    from collections.abc import Callable

    from puzzle.logic.content import LineupContent

SURNAME_PREFIXES = frozenset({"van", "de", "da", "di", "del", "von", "la", "el", "dos", "das", "ben", "al", "le"})


def display_surname(full_name: str) -> str:
    """Surname shown on a revealed slot, keeping particles such as "van" attached."""
    parts = full_name.split()
    if len(parts) <= 1:
        return full_name.strip()
    if len(parts) >= 3 and parts[-2].lower() in SURNAME_PREFIXES:
        return f"{parts[-2]} {parts[-1]}"
    return parts[-1]


def create_lineup_state(content: LineupContent) -> LineupState:
    slots = tuple(
        LineupSlot(
            position_key=player.position_key,
            full_name=player.player_name,
            display_name=display_surname(player.player_name),
            is_hidden=player.is_hidden,
            override_x=player.override_x,
            override_y=player.override_y,
        )
        for player in content.players
    )
    return LineupState(slots=slots)


def _complete(state: LineupState, *, gave_up: bool = False) -> LineupState:
    score = calculate_lineup_score(state.found_count, state.total_hidden, gave_up=gave_up)
    return state.model_copy(
        update={
            "status": SessionStatus.GAVE_UP if gave_up else SessionStatus.COMPLETE,
            "selected_slot": None,
            "score": score,
        },
    )


def _mark_found(state: LineupState, indexes: frozenset[int]) -> LineupState:
    slots = tuple(
        slot.model_copy(update={"is_found": True}) if i in indexes and slot.is_hidden else slot
        for i, slot in enumerate(state.slots)
    )
    return state.model_copy(update={"slots": slots})


def start(state: LineupState, event: StartGame) -> LineupState:
    if state.status != SessionStatus.IDLE:
        return state
    state = begin_play(state, event.started_at)
    if state.total_hidden == 0:
        return _complete(state)
    return state


def select_slot(state: LineupState, event: SelectSlot) -> LineupState:
    if not state.is_playing or not 0 <= event.index < len(state.slots):
        return state
    if not state.slots[event.index].is_open:
        return state
    return state.model_copy(update={"selected_slot": event.index})


def deselect_slot(state: LineupState, _event: DeselectSlot) -> LineupState:
    if state.selected_slot is None:
        return state
    return state.model_copy(update={"selected_slot": None})


def submit_guess(state: LineupState, event: SubmitGuess) -> LineupState:
    if not state.is_playing or state.selected_slot is None or not event.text.strip():
        return state

    selected = state.selected_slot
    candidates = [AnswerCandidate(slot.full_name) for slot in state.slots]
    if matches_candidate(event.text, candidates[selected]):
        state = _mark_found(state, frozenset({selected}))
        state = with_outcome(state.model_copy(update={"selected_slot": None}), GuessOutcome.CORRECT, selected)
        if state.found_count >= state.total_hidden:
            return _complete(state)
        return state

    open_slots = {i for i, slot in enumerate(state.slots) if slot.is_open}
    revealed = find_match(event.text, candidates, skip=open_slots | {selected})
    if revealed is not None:
        return with_outcome(state, GuessOutcome.DUPLICATE, revealed)

    closed_slots = set(range(len(state.slots))) - open_slots
    elsewhere = find_match(event.text, candidates, skip=closed_slots | {selected})
    if elsewhere is not None:
        return with_outcome(state, GuessOutcome.WRONG_SLOT, elsewhere)

    return with_outcome(state, GuessOutcome.INCORRECT, selected)


def give_up(state: LineupState, _event: GiveUp) -> LineupState:
    if not state.is_playing:
        return state
    return _complete(state, gave_up=True)


def restore(state: LineupState, event: RestoreLineup) -> LineupState:
    if state.status != SessionStatus.IDLE:
        return state
    state = _mark_found(state, event.found_slots)
    return state.model_copy(
        update={
            "status": SessionStatus.PLAYING,
            "attempt_id": event.attempt_id,
            "started_at": event.started_at,
        },
    )


_HANDLERS: dict[type, Callable[[LineupState, Any], LineupState]] = {
    StartGame: start,
    SelectSlot: select_slot,
    DeselectSlot: deselect_slot,
    SubmitGuess: submit_guess,
    GiveUp: give_up,
    RestoreLineup: restore,
}


def transition(state: LineupState, event: object) -> LineupState:
    common = apply_common_event(state, event)
    if common is not None:
        return common
    handler = _HANDLERS.get(type(event))
    if handler is None:
        raise TypeError(f"unsupported lineup event: {type(event).__name__}")
    return handler(state, event)
