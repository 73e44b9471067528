"""
String enum definitions for puzzle session concepts.
"""

from enum import StrEnum


class GameMode(StrEnum):
    GOALSCORER_RECALL = "goalscorer_recall"
    STARTING_XI = "starting_xi"
    THE_CHAIN = "the_chain"


class SessionStatus(StrEnum):
    """Lifecycle of a puzzle session. Each mode uses a subset of the terminal states."""

    IDLE = "idle"
    PLAYING = "playing"
    WON = "won"
    LOST = "lost"
    GAVE_UP = "gave_up"
    COMPLETE = "complete"

    @property
    def is_terminal(self) -> bool:
        return self not in (SessionStatus.IDLE, SessionStatus.PLAYING)


class GuessOutcome(StrEnum):
    """Transient classification of the most recent guess, for UI feedback only."""

    CORRECT = "correct"
    INCORRECT = "incorrect"
    DUPLICATE = "duplicate"
    WRONG_SLOT = "wrong_slot"


class AppLifecycle(StrEnum):
    """Host application state signals the sessions react to."""

    ACTIVE = "active"
    BACKGROUND = "background"
    INACTIVE = "inactive"


class TeamSide(StrEnum):
    HOME = "home"
    AWAY = "away"


class ChainScoreLabel(StrEnum):
    EAGLE = "Eagle"
    BIRDIE = "Birdie"
    PAR = "Par"
    BOGEY = "Bogey"
    DOUBLE_BOGEY = "Double Bogey"
    TRIPLE_BOGEY_PLUS = "Triple Bogey+"
    DID_NOT_FINISH = "Did Not Finish"
