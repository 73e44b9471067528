"""
Shared machinery for stateful puzzle sessions.

A session owns the authoritative state of one play-through. Commands apply an
event through the mode's pure transition function, then the session reacts to
what changed: it writes progress when something new was found, writes the
final attempt exactly once when a terminal state is reached, and schedules the
transient guess outcome to be cleared. Commands never raise for operational
failures and are ignored once the session has been torn down.
"""

from __future__ import annotations

import asyncio
import uuid
from abc import ABC, abstractmethod
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any, ClassVar, Generic, TypeVar

import structlog
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from puzzle.logic.enums import AppLifecycle, SessionStatus
from puzzle.logic.events import AssignAttemptId, ClearFeedback, GiveUp, MarkAttemptSaved, StartGame
from puzzle.logic.exceptions import ProgressMetadataError
from puzzle.logic.state import SessionState
from puzzle.session.progress import ProgressController
from shared.logging import bind_session_context, clear_session_context

if TYPE_CHECKING:
    from collections.abc import Callable

    from puzzle.logic.enums import GameMode, GuessOutcome
    from shared.dal.attempt_repository import AttemptRepository
    from shared.dal.models import AttemptRecord
    from shared.sync.service import AttemptSyncService

logger = structlog.get_logger()

S = TypeVar("S", bound=SessionState)
M = TypeVar("M", bound="ProgressMetadata")


def utc_now() -> datetime:
    return datetime.now(UTC)


def new_attempt_id() -> str:
    return str(uuid.uuid4())


class ProgressMetadata(BaseModel):
    """Fields every mode stores alongside its own progress snapshot."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    started_at: datetime | None = None
    version: int = Field(default=0, ge=0)


class PuzzleSession(ABC, Generic[S, M]):
    game_mode: ClassVar[GameMode]
    metadata_model: ClassVar[type[ProgressMetadata]]

    def __init__(
        self,
        puzzle_id: str,
        repository: AttemptRepository,
        *,
        sync_service: AttemptSyncService | None = None,
        clock: Callable[[], datetime] = utc_now,
        attempt_id_factory: Callable[[], str] = new_attempt_id,
    ) -> None:
        self._puzzle_id = puzzle_id
        self._sync_service = sync_service
        self._clock = clock
        self._attempt_id_factory = attempt_id_factory
        self._progress = ProgressController(
            repository,
            puzzle_id,
            self.game_mode,
            on_final_saved=sync_service.request_sync if sync_service is not None else None,
        )
        self._log = logger.bind(puzzle_id=puzzle_id, game_mode=self.game_mode)
        self._feedback_handle: asyncio.TimerHandle | None = None
        self._torn_down = False
        self._state: S = self._initial_state()

    @property
    def puzzle_id(self) -> str:
        return self._puzzle_id

    @property
    def state(self) -> S:
        return self._state

    @property
    def progress(self) -> ProgressController:
        return self._progress

    @property
    def is_torn_down(self) -> bool:
        return self._torn_down

    # -- mode hooks ---------------------------------------------------------

    @abstractmethod
    def _initial_state(self) -> S: ...

    @abstractmethod
    def _transition(self, state: S, event: object) -> S: ...

    @abstractmethod
    def _restore_event(self, metadata: M, record: AttemptRecord) -> object:
        """Build the restore event, raising ProgressMetadataError when the snapshot does not fit this puzzle."""

    @abstractmethod
    def _progress_metadata(self, state: S) -> dict[str, Any]: ...

    @abstractmethod
    def _final_metadata(self, state: S) -> dict[str, Any]: ...

    @abstractmethod
    def _final_score(self, state: S) -> tuple[int, str]:
        """Points and display string for the terminal write."""

    @abstractmethod
    def _feedback_delay(self, outcome: GuessOutcome) -> float: ...

    def _on_restored(self) -> None:  # noqa: B027
        pass

    def _on_terminal(self) -> None:  # noqa: B027
        pass

    def _on_reset(self) -> None:  # noqa: B027
        pass

    def _on_teardown(self) -> None:  # noqa: B027
        pass

    # -- commands -----------------------------------------------------------

    async def mount(self) -> bool:
        """Resume the latest unfinished attempt for this puzzle, if any.

        Returns True when progress was restored. Malformed snapshots are
        skipped entirely and the session stays idle.
        """
        if self._torn_down or self._state.status != SessionStatus.IDLE:
            return False
        bind_session_context(puzzle_id=self._puzzle_id, game_mode=self.game_mode)
        record = await self._progress.load()
        if record is None or self._torn_down or self._state.status != SessionStatus.IDLE:
            return False
        try:
            metadata = self.metadata_model.model_validate_json(record.metadata or "")
            event = self._restore_event(metadata, record)  # type: ignore[arg-type]
        except (ValidationError, ProgressMetadataError) as exc:
            self._log.warning("skipping unrestorable attempt", attempt_id=record.id, error=str(exc))
            return False
        self._progress.seed_version(metadata.version)
        self._state = self._transition(self._state, event)
        self._log = self._log.bind(attempt_id=record.id)
        bind_session_context(puzzle_id=self._puzzle_id, game_mode=self.game_mode, attempt_id=record.id)
        self._log.info("progress restored", found=self._state.found_count)
        self._on_restored()
        return True

    def start(self) -> None:
        self._dispatch(StartGame(started_at=self._clock()))

    def give_up(self) -> None:
        self._dispatch(GiveUp())

    def reset(self) -> None:
        """Throw away the current play-through and return to a fresh idle state."""
        if self._torn_down:
            return
        self._on_reset()
        self._cancel_feedback()
        self._progress.reset()
        self._log = logger.bind(puzzle_id=self._puzzle_id, game_mode=self.game_mode)
        self._state = self._initial_state()

    def on_app_state_change(self, app_state: AppLifecycle) -> None:
        if self._torn_down:
            return
        if app_state == AppLifecycle.BACKGROUND:
            self._flush_progress()
        elif app_state == AppLifecycle.ACTIVE and self._sync_service is not None:
            self._sync_service.on_foreground()

    def teardown(self) -> None:
        """Discard the session: flush in-progress work and stop every pending callback."""
        if self._torn_down:
            return
        self._flush_progress()
        self._torn_down = True
        self._cancel_feedback()
        self._on_teardown()
        clear_session_context()

    # -- internals ----------------------------------------------------------

    def _dispatch(self, event: object, *, feedback: bool = False) -> S:
        if self._torn_down:
            return self._state
        previous = self._state
        self._state = self._transition(previous, event)
        self._after_transition(previous, self._state)
        if feedback and self._state.last_guess_outcome is not None:
            self._schedule_feedback_clear(self._state.last_guess_outcome)
        return self._state

    def _after_transition(self, previous: S, current: S) -> None:
        if current.is_playing and current.found_count > previous.found_count:
            self._save_progress()
        if current.status.is_terminal and not previous.status.is_terminal:
            self._log.info("session finished", status=current.status, found=current.found_count)
            self._on_terminal()
            self._save_final()

    def _ensure_attempt_id(self) -> str:
        if self._state.attempt_id is None:
            self._state = self._transition(self._state, AssignAttemptId(self._attempt_id_factory()))
            self._log = self._log.bind(attempt_id=self._state.attempt_id)
        return self._state.attempt_id  # type: ignore[return-value]

    def _save_progress(self) -> None:
        attempt_id = self._ensure_attempt_id()
        self._progress.save_progress(
            attempt_id=attempt_id,
            started_at=self._state.started_at,
            metadata=self._progress_metadata(self._state),
        )

    def _save_final(self) -> None:
        if self._state.attempt_saved:
            return
        attempt_id = self._ensure_attempt_id()
        self._state = self._transition(self._state, MarkAttemptSaved())
        points, display = self._final_score(self._state)
        self._progress.save_final(
            attempt_id=attempt_id,
            started_at=self._state.started_at,
            completed_at=self._clock(),
            score=points,
            score_display=display,
            metadata=self._final_metadata(self._state),
        )

    def _flush_progress(self) -> None:
        if self._state.is_playing and self._state.has_progress:
            self._save_progress()

    def _schedule_feedback_clear(self, outcome: GuessOutcome) -> None:
        self._cancel_feedback()
        loop = asyncio.get_running_loop()
        self._feedback_handle = loop.call_later(self._feedback_delay(outcome), self._clear_feedback)

    def _clear_feedback(self) -> None:
        self._feedback_handle = None
        if not self._torn_down:
            self._state = self._transition(self._state, ClearFeedback())

    def _cancel_feedback(self) -> None:
        if self._feedback_handle is not None:
            self._feedback_handle.cancel()
            self._feedback_handle = None
