"""Puzzle engine configuration via environment variables."""

from __future__ import annotations

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings


class EngineSettings(BaseSettings):
    model_config = {"env_prefix": "PUZZLE_"}

    db_path: str = Field(default="backend/data/puzzles.db", min_length=1)
    log_dir: str = Field(default="backend/logs/puzzles", min_length=1)

    recall_timer_seconds: int = Field(default=60, ge=1)
    # Score recall games as scorers found plus a bonus for seconds left on the clock.
    recall_time_bonus: bool = False

    link_validation_url: str | None = None
    link_validation_timeout_seconds: float = Field(default=10.0, gt=0)

    sync_url: str | None = None
    sync_timeout_seconds: float = Field(default=10.0, gt=0)
    sync_backoff_base_seconds: float = Field(default=5.0, gt=0)
    sync_backoff_max_seconds: float = Field(default=300.0, gt=0)

    api_key: str | None = None

    @model_validator(mode="after")
    def _check_backoff_bounds(self) -> EngineSettings:
        if self.sync_backoff_max_seconds < self.sync_backoff_base_seconds:
            raise ValueError("sync_backoff_max_seconds must be >= sync_backoff_base_seconds")
        return self
