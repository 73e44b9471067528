"""
Progressive save and resume of puzzle attempts.

Writes are fire-and-forget: each one runs in its own task so the session never
waits on storage, and a failed write is logged and dropped. Every write carries
a monotonically increasing version in its metadata so the repository can
refuse to replace newer progress with an older snapshot that finished late.
"""

from __future__ import annotations

import asyncio
import json
from typing import TYPE_CHECKING, Any

import structlog

from shared.dal.models import AttemptRecord
from shared.logging import bind_session_context

if TYPE_CHECKING:
    from collections.abc import Callable
    from datetime import datetime

    from puzzle.logic.enums import GameMode
    from shared.dal.attempt_repository import AttemptRepository

logger = structlog.get_logger()


class ProgressController:
    def __init__(
        self,
        repository: AttemptRepository,
        puzzle_id: str,
        game_mode: GameMode,
        *,
        on_final_saved: Callable[[], object] | None = None,
    ) -> None:
        self._repository = repository
        self._puzzle_id = puzzle_id
        self._game_mode = game_mode
        self._on_final_saved = on_final_saved
        self._version = 0
        self._tasks: set[asyncio.Task[None]] = set()

    @property
    def version(self) -> int:
        """Version stamped on the most recently issued write."""
        return self._version

    @property
    def pending_writes(self) -> int:
        return len(self._tasks)

    async def load(self) -> AttemptRecord | None:
        """Return the latest unfinished attempt for this puzzle, or None.

        Completed attempts are never resumed. Read failures are logged and
        treated as "nothing saved".
        """
        try:
            record = await self._repository.get_attempt_by_puzzle_id(self._puzzle_id)
        except Exception:
            logger.exception("failed to load saved attempt", puzzle_id=self._puzzle_id)
            return None
        if record is None:
            return None
        if record.completed:
            logger.debug("latest attempt already completed, not resuming", attempt_id=record.id)
            return None
        return record

    def seed_version(self, version: int) -> None:
        """Continue numbering after the version of a restored attempt."""
        self._version = max(self._version, version)

    def reset(self) -> None:
        self._version = 0

    def save_progress(
        self,
        *,
        attempt_id: str,
        started_at: datetime | None,
        metadata: dict[str, Any],
    ) -> asyncio.Task[None]:
        record = AttemptRecord(
            id=attempt_id,
            puzzle_id=self._puzzle_id,
            completed=False,
            metadata=self._stamp(metadata),
            started_at=started_at,
        )
        return self._issue(record, final=False)

    def save_final(
        self,
        *,
        attempt_id: str,
        started_at: datetime | None,
        completed_at: datetime,
        score: int,
        score_display: str,
        metadata: dict[str, Any],
    ) -> asyncio.Task[None]:
        record = AttemptRecord(
            id=attempt_id,
            puzzle_id=self._puzzle_id,
            completed=True,
            score=score,
            score_display=score_display,
            metadata=self._stamp(metadata),
            started_at=started_at,
            completed_at=completed_at,
        )
        return self._issue(record, final=True)

    async def drain(self) -> None:
        """Wait for every issued write to settle."""
        while self._tasks:
            issued = list(self._tasks)
            await asyncio.gather(*issued, return_exceptions=True)
            self._tasks.difference_update(issued)

    def _stamp(self, metadata: dict[str, Any]) -> str:
        self._version += 1
        return json.dumps({**metadata, "version": self._version})

    def _issue(self, record: AttemptRecord, *, final: bool) -> asyncio.Task[None]:
        task = asyncio.create_task(self._write(record, final=final))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def _write(self, record: AttemptRecord, *, final: bool) -> None:
        bind_session_context(puzzle_id=self._puzzle_id, game_mode=self._game_mode, attempt_id=record.id)
        try:
            await self._repository.save_attempt(record)
        except Exception:
            logger.exception("failed to save attempt", completed=record.completed)
            return
        logger.debug("attempt saved", completed=record.completed)
        if final and self._on_final_saved is not None:
            try:
                self._on_final_saved()
            except Exception:
                logger.exception("post-save sync trigger failed")
