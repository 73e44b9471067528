"""
Immutable session state models for every puzzle mode.

All models are frozen; transitions return new instances built with model_copy.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import datetime

from pydantic import BaseModel, ConfigDict

from puzzle.logic.content import ChainPlayer
from puzzle.logic.enums import GuessOutcome, SessionStatus, TeamSide
from puzzle.logic.scoring import ChainScore, LineupScore, RecallScore


class SessionState(BaseModel, ABC):
    """Fields every mode shares."""

    model_config = ConfigDict(frozen=True)

    status: SessionStatus = SessionStatus.IDLE
    attempt_id: str | None = None
    started_at: datetime | None = None
    last_guess_outcome: GuessOutcome | None = None
    flagged_index: int | None = None  # slot or chain index the last outcome refers to
    attempt_saved: bool = False

    @property
    def is_playing(self) -> bool:
        return self.status == SessionStatus.PLAYING

    @property
    @abstractmethod
    def found_count(self) -> int:
        """Items the player has found so far."""

    @property
    def has_progress(self) -> bool:
        return self.found_count > 0


class RecallGoal(BaseModel, frozen=True):
    id: str
    scorer: str
    normalized_scorer: str
    minute: int
    team: TeamSide
    is_own_goal: bool = False
    found: bool = False


class RecallState(SessionState):
    goals: tuple[RecallGoal, ...] = ()
    scorers: tuple[str, ...] = ()  # unique normalized scorer names, own goals excluded
    found_scorers: frozenset[str] = frozenset()
    time_remaining: int = 60
    time_bonus: bool = False
    score: RecallScore | None = None

    @property
    def found_count(self) -> int:
        return len(self.found_scorers)

    @property
    def total_scorers(self) -> int:
        return len(self.scorers)


class LineupSlot(BaseModel, frozen=True):
    position_key: str
    full_name: str
    display_name: str
    is_hidden: bool
    is_found: bool = False
    override_x: float | None = None
    override_y: float | None = None

    @property
    def is_open(self) -> bool:
        """Hidden and not yet guessed."""
        return self.is_hidden and not self.is_found


class LineupState(SessionState):
    slots: tuple[LineupSlot, ...] = ()
    selected_slot: int | None = None
    score: LineupScore | None = None

    @property
    def found_count(self) -> int:
        return sum(1 for slot in self.slots if slot.is_hidden and slot.is_found)

    @property
    def total_hidden(self) -> int:
        return sum(1 for slot in self.slots if slot.is_hidden)

    @property
    def found_slots(self) -> tuple[int, ...]:
        return tuple(i for i, slot in enumerate(self.slots) if slot.is_hidden and slot.is_found)


class ChainLink(BaseModel, frozen=True):
    player: ChainPlayer
    shared_club_name: str = ""
    shared_club_id: str | None = None
    overlap_start: int = 0
    overlap_end: int = 0


class ChainState(SessionState):
    chain: tuple[ChainLink, ...] = ()  # starts with the start player
    end_player: ChainPlayer
    par: int
    steps_taken: int = 0
    is_validating: bool = False
    score: ChainScore | None = None

    @property
    def found_count(self) -> int:
        return len(self.chain) - 1

    @property
    def last_player(self) -> ChainPlayer:
        return self.chain[-1].player

    def contains_player(self, qid: str) -> bool:
        return any(link.player.qid == qid for link in self.chain)
