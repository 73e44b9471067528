"""
Cooperative countdown timer driven by an asyncio task.

Ticks once per interval, decrementing by exactly one and reporting the new
value to on_tick. Reaching zero stops the countdown and fires on_finish once.
The value is never recomputed from wall-clock time; set_to re-seeds it from a
persisted value before an explicit restart.
"""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING

import structlog

if TYPE_CHECKING:
    from collections.abc import Callable

logger = structlog.get_logger()


class CountdownTimer:
    def __init__(
        self,
        initial_seconds: int,
        on_tick: Callable[[int], None] | None = None,
        on_finish: Callable[[], None] | None = None,
        tick_interval: float = 1.0,
    ) -> None:
        self._initial_seconds = initial_seconds
        self._time_remaining = initial_seconds
        self._on_tick = on_tick
        self._on_finish = on_finish
        self._tick_interval = tick_interval
        self._active_task: asyncio.Task[None] | None = None
        self._finish_fired = False
        self._closed = False

    @property
    def initial_seconds(self) -> int:
        return self._initial_seconds

    @property
    def time_remaining(self) -> int:
        return self._time_remaining

    @property
    def is_running(self) -> bool:
        return self._active_task is not None and not self._active_task.done()

    def start(self) -> None:
        """Start ticking. No-op while already running or after cancel()."""
        if self._closed or self.is_running:
            return
        if self._time_remaining <= 0:
            self._finish()
            return
        self._active_task = asyncio.create_task(self._run())

    def stop(self) -> None:
        """Halt ticking, keeping the current value."""
        if self._active_task is not None and not self._active_task.done():
            self._active_task.cancel()
        self._active_task = None

    def reset(self) -> None:
        self.stop()
        self._time_remaining = self._initial_seconds
        self._finish_fired = False

    def set_to(self, seconds: int) -> None:
        """Stop and overwrite the current value (used when resuming a saved session)."""
        self.stop()
        self._time_remaining = max(0, seconds)
        self._finish_fired = False

    def cancel(self) -> None:
        """Teardown: stop ticking and refuse any later start()."""
        self._closed = True
        self.stop()

    async def _run(self) -> None:
        try:
            while self._time_remaining > 0:
                await asyncio.sleep(self._tick_interval)
                self._time_remaining = max(0, self._time_remaining - 1)
                self._notify_tick()
            self._active_task = None
            self._finish()
        except asyncio.CancelledError:
            pass

    def _notify_tick(self) -> None:
        if self._on_tick is None:
            return
        try:
            self._on_tick(self._time_remaining)
        except Exception:
            logger.exception("timer tick callback failed", time_remaining=self._time_remaining)

    def _finish(self) -> None:
        if self._finish_fired:
            return
        self._finish_fired = True
        if self._on_finish is None:
            return
        try:
            self._on_finish()
        except Exception:
            logger.exception("timer finish callback failed")
