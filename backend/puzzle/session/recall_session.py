"""Goalscorer recall session: the pure recall rules driven by a live countdown."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, ClassVar

from pydantic import ConfigDict, Field

from puzzle.logic import recall
from puzzle.logic.enums import GameMode, GuessOutcome
from puzzle.logic.events import RestoreRecall, SubmitGuess, Tick, TimeUp
from puzzle.logic.scoring import recall_score_display
from puzzle.logic.timer import CountdownTimer
from puzzle.session.base import ProgressMetadata, PuzzleSession

if TYPE_CHECKING:
    from puzzle.logic.content import RecallContent
    from puzzle.logic.state import RecallState
    from shared.dal.attempt_repository import AttemptRepository
    from shared.dal.models import AttemptRecord

CORRECT_FEEDBACK_SECONDS = 1.0
MISS_FEEDBACK_SECONDS = 0.5


class RecallProgress(ProgressMetadata):
    model_config = ConfigDict(frozen=True, extra="allow")

    found_scorers: list[str] = Field(default_factory=list)
    time_remaining: int = Field(ge=0)


class RecallSession(PuzzleSession["RecallState", RecallProgress]):
    game_mode: ClassVar[GameMode] = GameMode.GOALSCORER_RECALL
    metadata_model: ClassVar[type[ProgressMetadata]] = RecallProgress

    def __init__(
        self,
        puzzle_id: str,
        content: RecallContent,
        repository: AttemptRepository,
        *,
        time_limit: int = recall.TIMER_DURATION,
        time_bonus: bool = False,
        tick_interval: float = 1.0,
        **kwargs: Any,
    ) -> None:
        self._content = content
        self._time_limit = time_limit
        self._time_bonus = time_bonus
        self._timer = CountdownTimer(
            time_limit,
            on_tick=self._on_tick,
            on_finish=self._on_time_up,
            tick_interval=tick_interval,
        )
        super().__init__(puzzle_id, repository, **kwargs)

    @property
    def timer(self) -> CountdownTimer:
        return self._timer

    def start(self) -> None:
        super().start()
        if self._state.is_playing:
            self._timer.start()

    def resume(self) -> None:
        """Restart the countdown re-seeded by a restore."""
        if self._state.is_playing and not self._timer.is_running:
            self._timer.start()

    def submit_guess(self, text: str) -> None:
        self._dispatch(SubmitGuess(text), feedback=True)

    def _on_tick(self, _remaining: int) -> None:
        self._dispatch(Tick())

    def _on_time_up(self) -> None:
        self._dispatch(TimeUp())

    def _initial_state(self) -> RecallState:
        return recall.create_recall_state(self._content, self._time_limit, time_bonus=self._time_bonus)

    def _transition(self, state: RecallState, event: object) -> RecallState:
        return recall.transition(state, event)

    def _restore_event(self, metadata: RecallProgress, record: AttemptRecord) -> RestoreRecall:
        return RestoreRecall(
            found_scorers=frozenset(metadata.found_scorers),
            attempt_id=record.id,
            started_at=metadata.started_at or record.started_at,
            time_remaining=min(metadata.time_remaining, self._time_limit),
        )

    def _on_restored(self) -> None:
        self._timer.set_to(self._state.time_remaining)

    def _on_terminal(self) -> None:
        self._timer.stop()

    def _on_reset(self) -> None:
        self._timer.reset()

    def _on_teardown(self) -> None:
        self._timer.cancel()

    def _progress_metadata(self, state: RecallState) -> dict[str, Any]:
        return {
            "found_scorers": sorted(state.found_scorers),
            "time_remaining": state.time_remaining,
            "started_at": state.started_at.isoformat() if state.started_at else None,
        }

    def _final_metadata(self, state: RecallState) -> dict[str, Any]:
        score = state.score
        return {
            **self._progress_metadata(state),
            "scorers_found": state.found_count,
            "total_scorers": state.total_scorers,
            "time_bonus": score.time_bonus if score else 0,
            "won": bool(score and score.won),
        }

    def _final_score(self, state: RecallState) -> tuple[int, str]:
        if state.score is None:
            return 0, f"{state.found_count}/{state.total_scorers}"
        return state.score.points, recall_score_display(state.score)

    def _feedback_delay(self, outcome: GuessOutcome) -> float:
        if outcome == GuessOutcome.CORRECT:
            return CORRECT_FEEDBACK_SECONDS
        return MISS_FEEDBACK_SECONDS
