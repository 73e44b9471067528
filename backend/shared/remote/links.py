"""Player link validation gateway.

A link exists when two players shared a club during overlapping years. The
remote function may answer with a single object or a one-element list.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

import structlog
from pydantic import BaseModel

from shared.remote.rpc import DEFAULT_RPC_TIMEOUT_SECONDS, call_rpc

logger = structlog.get_logger()

CHECK_PLAYERS_LINKED_RPC = "check_players_linked"


class LinkCheckResult(BaseModel, frozen=True):
    is_linked: bool = False
    shared_club_name: str | None = None
    shared_club_id: str | None = None
    overlap_start: int | None = None
    overlap_end: int | None = None


NOT_LINKED = LinkCheckResult()


class LinkValidator(ABC):
    """Answers whether two players (by external id) are linked."""

    @abstractmethod
    async def check_linked(self, player_a_id: str, player_b_id: str) -> LinkCheckResult: ...


def parse_link_response(data: object) -> LinkCheckResult:
    """Normalize an RPC payload (object, one-element list, empty list or null)."""
    if isinstance(data, list):
        data = data[0] if data else None
    if data is None:
        return NOT_LINKED
    return LinkCheckResult.model_validate(data)


class HttpLinkValidator(LinkValidator):
    """Calls the remote check_players_linked function over HTTP."""

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

    async def check_linked(self, player_a_id: str, player_b_id: str) -> LinkCheckResult:
        data = await call_rpc(
            self._base_url,
            CHECK_PLAYERS_LINKED_RPC,
            {"player_a_qid": player_a_id, "player_b_qid": player_b_id},
            api_key=self._api_key,
            timeout=self._timeout,
        )
        result = parse_link_response(data)
        logger.debug("link checked", player_a=player_a_id, player_b=player_b_id, is_linked=result.is_linked)
        return result
