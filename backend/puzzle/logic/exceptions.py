"""Typed domain exceptions for puzzle content and session restore.

Public session commands never raise these for operational failures; they are
raised while preparing a session (content parsing, mode selection) and caught
inside the resume path (metadata restore).
"""


class PuzzleError(Exception):
    """Base exception for puzzle engine errors."""


class PuzzleContentError(PuzzleError):
    """Puzzle content is missing required fields or has the wrong shape."""


class UnsupportedGameModeError(PuzzleError):
    """No session implementation exists for the requested game mode."""


class ProgressMetadataError(PuzzleError):
    """Stored attempt metadata cannot be turned back into session progress.

    Attributes:
        attempt_id: The stored attempt that failed to restore.
        reason: Human-readable explanation.

    """

    def __init__(self, *, attempt_id: str, reason: str) -> None:
        self.attempt_id = attempt_id
        self.reason = reason
        super().__init__(f"cannot restore attempt {attempt_id}: {reason}")
