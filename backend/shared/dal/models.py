"""Persistence models for the data access layer."""

from datetime import datetime

from pydantic import BaseModel


class AttemptRecord(BaseModel, frozen=True):
    """One play-through of a daily puzzle, as stored locally and synced upstream."""

    id: str  # attempt id, minted on the first write of a session
    puzzle_id: str
    completed: bool = False
    score: int | None = None  # None while in progress
    score_display: str | None = None  # human-readable summary, e.g. "3/5" or "5pts (E)"
    metadata: str | None = None  # mode-defined JSON blob
    started_at: datetime | None = None
    completed_at: datetime | None = None
    synced: bool = False
