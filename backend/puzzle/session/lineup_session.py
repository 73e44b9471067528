"""Starting XI session."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, ClassVar

from pydantic import Field

from puzzle.logic import lineup
from puzzle.logic.enums import GameMode, SessionStatus
from puzzle.logic.events import DeselectSlot, RestoreLineup, SelectSlot, SubmitGuess
from puzzle.logic.exceptions import ProgressMetadataError
from puzzle.logic.scoring import lineup_score_display
from puzzle.session.base import ProgressMetadata, PuzzleSession

if TYPE_CHECKING:
    from puzzle.logic.content import LineupContent
    from puzzle.logic.enums import GuessOutcome
    from puzzle.logic.state import LineupState
    from shared.dal.attempt_repository import AttemptRepository
    from shared.dal.models import AttemptRecord

FEEDBACK_SECONDS = 0.6


class LineupProgress(ProgressMetadata):
    found_slots: list[int] = Field(default_factory=list)


class LineupSession(PuzzleSession["LineupState", LineupProgress]):
    game_mode: ClassVar[GameMode] = GameMode.STARTING_XI
    metadata_model: ClassVar[type[ProgressMetadata]] = LineupProgress

    def __init__(
        self,
        puzzle_id: str,
        content: LineupContent,
        repository: AttemptRepository,
        **kwargs: Any,
    ) -> None:
        self._content = content
        super().__init__(puzzle_id, repository, **kwargs)

    def select_slot(self, index: int) -> None:
        self._dispatch(SelectSlot(index))

    def deselect_slot(self) -> None:
        self._dispatch(DeselectSlot())

    def submit_guess(self, text: str) -> None:
        self._dispatch(SubmitGuess(text), feedback=True)

    def _initial_state(self) -> LineupState:
        return lineup.create_lineup_state(self._content)

    def _transition(self, state: LineupState, event: object) -> LineupState:
        return lineup.transition(state, event)

    def _restore_event(self, metadata: LineupProgress, record: AttemptRecord) -> RestoreLineup:
        slots = self._state.slots
        for index in metadata.found_slots:
            if not 0 <= index < len(slots) or not slots[index].is_hidden:
                raise ProgressMetadataError(attempt_id=record.id, reason=f"slot {index} is not a hidden slot")
        return RestoreLineup(
            found_slots=frozenset(metadata.found_slots),
            attempt_id=record.id,
            started_at=metadata.started_at or record.started_at,
        )

    def _progress_metadata(self, state: LineupState) -> dict[str, Any]:
        return {
            "found_slots": list(state.found_slots),
            "started_at": state.started_at.isoformat() if state.started_at else None,
        }

    def _final_metadata(self, state: LineupState) -> dict[str, Any]:
        return {
            **self._progress_metadata(state),
            "found_count": state.found_count,
            "total_hidden": state.total_hidden,
            "gave_up": state.status == SessionStatus.GAVE_UP,
        }

    def _final_score(self, state: LineupState) -> tuple[int, str]:
        if state.score is None:
            return state.found_count, f"{state.found_count}/{state.total_hidden}"
        return state.score.points, lineup_score_display(state.score)

    def _feedback_delay(self, _outcome: GuessOutcome) -> float:
        return FEEDBACK_SECONDS
