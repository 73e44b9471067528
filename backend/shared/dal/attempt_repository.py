"""Abstract interface for puzzle attempt persistence."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from shared.dal.models import AttemptRecord


class AttemptRepository(ABC):
    """Abstract interface for puzzle attempt persistence.

    save_attempt is an upsert keyed by attempt id. Implementations must never
    replace a completed attempt with an in-progress one.
    """

    @abstractmethod
    async def save_attempt(self, attempt: AttemptRecord) -> None: ...

    @abstractmethod
    async def get_attempt(self, attempt_id: str) -> AttemptRecord | None: ...

    @abstractmethod
    async def get_attempt_by_puzzle_id(self, puzzle_id: str) -> AttemptRecord | None:
        """Return the most recently started attempt for a puzzle."""

    @abstractmethod
    async def get_unsynced_attempts(self) -> list[AttemptRecord]: ...

    @abstractmethod
    async def mark_attempt_synced(self, attempt: AttemptRecord) -> bool:
        """Flag a pushed attempt as synced if the stored row still matches it."""

    @abstractmethod
    async def delete_attempts_by_puzzle_id(self, puzzle_id: str) -> int: ...
