"""
Immutable state update utilities shared by every puzzle mode.

These helpers never mutate the input state; they return new frozen models
with the requested changes applied, or the input unchanged when the update
does not apply.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, TypeVar

from puzzle.logic.enums import SessionStatus
from puzzle.logic.events import AssignAttemptId, ClearFeedback, MarkAttemptSaved
from puzzle.logic.state import SessionState

if TYPE_CHECKING:
    from datetime import datetime

    from puzzle.logic.enums import GuessOutcome

S = TypeVar("S", bound=SessionState)


def with_outcome(state: S, outcome: GuessOutcome | None, flagged_index: int | None = None) -> S:
    return state.model_copy(update={"last_guess_outcome": outcome, "flagged_index": flagged_index})


def clear_feedback(state: S) -> S:
    if state.last_guess_outcome is None and state.flagged_index is None:
        return state
    return with_outcome(state, None)


def assign_attempt_id(state: S, attempt_id: str) -> S:
    """Set the attempt id once; later assignments are ignored."""
    if state.attempt_id is not None:
        return state
    return state.model_copy(update={"attempt_id": attempt_id})


def mark_attempt_saved(state: S) -> S:
    if state.attempt_saved or not state.status.is_terminal:
        return state
    return state.model_copy(update={"attempt_saved": True})


def begin_play(state: S, started_at: datetime) -> S:
    """Move an idle session to playing, keeping any existing start time."""
    return state.model_copy(
        update={
            "status": SessionStatus.PLAYING,
            "started_at": state.started_at or started_at,
        },
    )


def apply_common_event(state: S, event: object) -> S | None:
    """Handle events every mode treats the same. Returns None for other events."""
    if isinstance(event, ClearFeedback):
        return clear_feedback(state)
    if isinstance(event, AssignAttemptId):
        return assign_attempt_id(state, event.attempt_id)
    if isinstance(event, MarkAttemptSaved):
        return mark_attempt_saved(state)
    return None
