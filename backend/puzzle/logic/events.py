"""
Events accepted by the pure session transition functions.

Each mode module exposes transition(state, event) -> state. Events common to
all modes are listed first; mode-specific events follow.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from datetime import datetime

    from puzzle.logic.enums import GuessOutcome
    from puzzle.logic.state import ChainLink

# ---------------------------------------------------------------------------
# Common
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class StartGame:
    started_at: datetime


@dataclass(frozen=True)
class GiveUp:
    pass


@dataclass(frozen=True)
class ClearFeedback:
    """Drop the transient guess outcome once the UI has shown it."""


@dataclass(frozen=True)
class AssignAttemptId:
    attempt_id: str


@dataclass(frozen=True)
class MarkAttemptSaved:
    """The terminal write has been issued; no further terminal writes allowed."""


@dataclass(frozen=True)
class SubmitGuess:
    text: str


# ---------------------------------------------------------------------------
# Goalscorer recall
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Tick:
    pass


@dataclass(frozen=True)
class TimeUp:
    """The countdown finished without a final tick (e.g. resumed with no time left)."""


@dataclass(frozen=True)
class RestoreRecall:
    found_scorers: frozenset[str]
    attempt_id: str
    started_at: datetime | None
    time_remaining: int


# ---------------------------------------------------------------------------
# Starting XI
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class SelectSlot:
    index: int


@dataclass(frozen=True)
class DeselectSlot:
    pass


@dataclass(frozen=True)
class RestoreLineup:
    found_slots: frozenset[int]
    attempt_id: str
    started_at: datetime | None


# ---------------------------------------------------------------------------
# The chain
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class BeginValidation:
    pass


@dataclass(frozen=True)
class LinkRejected:
    outcome: GuessOutcome
    flagged_index: int | None = None


@dataclass(frozen=True)
class LinkAccepted:
    """A user-chosen link, plus the end-player link when it was auto-completed."""

    link: ChainLink
    final_link: ChainLink | None = None
    reaches_end: bool = False


@dataclass(frozen=True)
class UndoLastLink:
    pass


@dataclass(frozen=True)
class RestoreChain:
    chain: tuple[ChainLink, ...]
    attempt_id: str
    started_at: datetime | None
