"""Remote attempt store used by the background sync service."""

from __future__ import annotations

import json
from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

from shared.remote.rpc import DEFAULT_RPC_TIMEOUT_SECONDS, call_rpc

if TYPE_CHECKING:
    from shared.dal.models import AttemptRecord

SAFE_UPSERT_ATTEMPT_RPC = "safe_upsert_attempt"


class RemoteAttemptStore(ABC):
    """Upstream copy of a user's attempts.

    upsert_attempt must keep a completed remote attempt when handed stale
    in-progress data for the same puzzle.
    """

    @abstractmethod
    async def upsert_attempt(self, attempt: AttemptRecord, user_id: str) -> None: ...


def build_upsert_payload(attempt: AttemptRecord, user_id: str) -> dict[str, object]:
    """Map a local attempt onto the p_-prefixed arguments of the upsert function."""
    return {
        "p_id": attempt.id,
        "p_puzzle_id": attempt.puzzle_id,
        "p_user_id": user_id,
        "p_completed": attempt.completed,
        "p_score": attempt.score,
        "p_score_display": attempt.score_display,
        "p_metadata": json.loads(attempt.metadata) if attempt.metadata else None,
        "p_started_at": attempt.started_at.isoformat() if attempt.started_at else None,
        "p_completed_at": attempt.completed_at.isoformat() if attempt.completed_at else None,
    }


class HttpRemoteAttemptStore(RemoteAttemptStore):
    def __init__(
        self,
        base_url: str,
        *,
        api_key: str | None = None,
        timeout: float = DEFAULT_RPC_TIMEOUT_SECONDS,
    ) -> None:
        self._base_url = base_url
        self._api_key = api_key
        self._timeout = timeout

    async def upsert_attempt(self, attempt: AttemptRecord, user_id: str) -> None:
        await call_rpc(
            self._base_url,
            SAFE_UPSERT_ATTEMPT_RPC,
            build_upsert_payload(attempt, user_id),
            api_key=self._api_key,
            timeout=self._timeout,
        )
