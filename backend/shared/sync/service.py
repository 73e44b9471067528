"""Background push of locally stored attempts to the remote store.

Each unsynced attempt is pushed individually; one failure does not stop the
rest. A run with failures schedules a retry with exponential backoff, and an
app returning to the foreground only triggers a run once that backoff window
has elapsed.
"""

from __future__ import annotations

import asyncio
import time
from typing import TYPE_CHECKING

import structlog
from pydantic import BaseModel

if TYPE_CHECKING:
    from collections.abc import Callable

    from shared.dal.attempt_repository import AttemptRepository
    from shared.remote.attempts import RemoteAttemptStore

logger = structlog.get_logger()


class SyncResult(BaseModel, frozen=True):
    success: bool
    synced_count: int = 0
    failed_count: int = 0
    error: str | None = None


class AttemptSyncService:
    def __init__(
        self,
        repository: AttemptRepository,
        remote: RemoteAttemptStore,
        user_id: str,
        *,
        backoff_base_seconds: float = 5.0,
        backoff_max_seconds: float = 300.0,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._repository = repository
        self._remote = remote
        self._user_id = user_id
        self._backoff_base = backoff_base_seconds
        self._backoff_max = backoff_max_seconds
        self._clock = clock
        self._consecutive_failures = 0
        self._retry_at: float | None = None
        self._retry_handle: asyncio.TimerHandle | None = None
        self._task: asyncio.Task[SyncResult] | None = None

    @property
    def consecutive_failures(self) -> int:
        return self._consecutive_failures

    @property
    def retry_at(self) -> float | None:
        """Clock reading before which foreground nudges are ignored, or None."""
        return self._retry_at

    def backoff_delay(self) -> float:
        if self._consecutive_failures == 0:
            return 0.0
        return min(self._backoff_max, self._backoff_base * 2 ** (self._consecutive_failures - 1))

    async def sync(self) -> SyncResult:
        """Push every unsynced attempt and mark the successful ones synced."""
        try:
            attempts = await self._repository.get_unsynced_attempts()
        except Exception:
            logger.exception("failed to read unsynced attempts")
            result = SyncResult(success=False, error="failed to read unsynced attempts")
            self._record_outcome(result)
            return result

        synced = 0
        failed = 0
        for attempt in attempts:
            try:
                await self._remote.upsert_attempt(attempt, self._user_id)
                if not await self._repository.mark_attempt_synced(attempt):
                    logger.info("attempt changed while syncing, leaving it for the next run", attempt_id=attempt.id)
            except Exception:
                logger.exception("attempt sync failed", attempt_id=attempt.id, puzzle_id=attempt.puzzle_id)
                failed += 1
            else:
                synced += 1

        if failed:
            result = SyncResult(
                success=False,
                synced_count=synced,
                failed_count=failed,
                error=f"{failed} attempt(s) failed to sync",
            )
        else:
            result = SyncResult(success=True, synced_count=synced)
        logger.info("attempt sync finished", synced=synced, failed=failed)
        self._record_outcome(result)
        return result

    def request_sync(self) -> asyncio.Task[SyncResult]:
        """Start a background sync, or return the one already running."""
        if self._task is not None and not self._task.done():
            return self._task
        self._task = asyncio.create_task(self.sync())
        return self._task

    def on_foreground(self) -> asyncio.Task[SyncResult] | None:
        """Retry pending uploads when the app becomes active, unless still backing off."""
        if self._retry_at is not None and self._clock() < self._retry_at:
            logger.debug("sync backoff active, skipping foreground sync", failures=self._consecutive_failures)
            return None
        return self.request_sync()

    def close(self) -> None:
        """Cancel any scheduled retry and the running sync."""
        self._cancel_retry()
        if self._task is not None and not self._task.done():
            self._task.cancel()
        self._task = None

    def _record_outcome(self, result: SyncResult) -> None:
        self._cancel_retry()
        if result.success:
            self._consecutive_failures = 0
            self._retry_at = None
            return
        self._consecutive_failures += 1
        delay = self.backoff_delay()
        self._retry_at = self._clock() + delay
        self._retry_handle = asyncio.get_running_loop().call_later(delay, self._retry)
        logger.warning("sync retry scheduled", delay_seconds=delay, failures=self._consecutive_failures)

    def _retry(self) -> None:
        self._retry_handle = None
        self.request_sync()

    def _cancel_retry(self) -> None:
        if self._retry_handle is not None:
            self._retry_handle.cancel()
            self._retry_handle = None
