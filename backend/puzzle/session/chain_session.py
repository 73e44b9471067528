"""
The chain session: runs remote link checks around the pure chain rules.

Only one submission is validated at a time, and all of its checks share one
deadline. A primary check that fails or runs out of time rejects the player as
incorrect. Each reset, give-up or teardown starts a new submission generation,
so results from an earlier generation are dropped.
"""

from __future__ import annotations

import asyncio
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any, ClassVar

from pydantic import BaseModel, ConfigDict, Field

from puzzle.logic import chain
from puzzle.logic.content import ChainPlayer
from puzzle.logic.enums import GameMode, GuessOutcome, SessionStatus
from puzzle.logic.events import BeginValidation, LinkAccepted, LinkRejected, RestoreChain, UndoLastLink
from puzzle.logic.exceptions import ProgressMetadataError
from puzzle.logic.scoring import format_chain_score
from puzzle.logic.state import ChainLink
from puzzle.session.base import ProgressMetadata, PuzzleSession

if TYPE_CHECKING:
    from puzzle.logic.content import ChainContent
    from puzzle.logic.state import ChainState
    from shared.dal.attempt_repository import AttemptRepository
    from shared.dal.models import AttemptRecord
    from shared.remote.links import LinkCheckResult, LinkValidator

REJECTED_FEEDBACK_SECONDS = 2.5
ACCEPTED_FEEDBACK_SECONDS = 0.7
UNKNOWN_CLUB = "Unknown Club"
DEFAULT_VALIDATION_TIMEOUT_SECONDS = 10.0


class StoredLink(BaseModel):
    model_config = ConfigDict(frozen=True, extra="ignore")

    player: ChainPlayer
    shared_club_name: str = ""
    shared_club_id: str | None = None
    overlap_start: int = 0
    overlap_end: int = 0


class ChainProgress(ProgressMetadata):
    chain: list[StoredLink] = Field(min_length=1)
    steps_taken: int | None = Field(default=None, ge=0)
    par: int | None = None


class ChainSession(PuzzleSession["ChainState", ChainProgress]):
    game_mode: ClassVar[GameMode] = GameMode.THE_CHAIN
    metadata_model: ClassVar[type[ProgressMetadata]] = ChainProgress

    def __init__(
        self,
        puzzle_id: str,
        content: ChainContent,
        repository: AttemptRepository,
        link_validator: LinkValidator,
        *,
        validation_timeout: float = DEFAULT_VALIDATION_TIMEOUT_SECONDS,
        **kwargs: Any,
    ) -> None:
        self._content = content
        self._link_validator = link_validator
        self._validation_timeout = validation_timeout
        self._generation = 0
        super().__init__(puzzle_id, repository, **kwargs)

    async def submit_player(self, player: ChainPlayer) -> None:
        """Try to extend the chain with player.

        Every link check made for one submission shares a single deadline of
        ``validation_timeout`` seconds.
        """
        state = self._state
        if self._torn_down or not state.is_playing or state.is_validating:
            return
        if state.contains_player(player.qid):
            self._dispatch(LinkRejected(GuessOutcome.DUPLICATE), feedback=True)
            return

        self._dispatch(BeginValidation())
        generation = self._generation
        deadline = asyncio.get_running_loop().time() + self._validation_timeout
        result = await self._check(state.last_player, player, deadline)
        if self._abandoned(generation):
            return
        if result is None:
            self._dispatch(LinkRejected(GuessOutcome.INCORRECT), feedback=True)
            return
        if not result.is_linked:
            flagged = await self._find_earlier_link(player, deadline, generation)
            if self._abandoned(generation):
                return
            if flagged is None:
                self._dispatch(LinkRejected(GuessOutcome.INCORRECT), feedback=True)
            else:
                self._dispatch(LinkRejected(GuessOutcome.WRONG_SLOT, flagged), feedback=True)
            return

        link = self._make_link(player, result)
        if player.qid == self._content.end_player.qid:
            self._log.info("chain completed", steps=self._state.steps_taken + 1)
            self._dispatch(LinkAccepted(link, reaches_end=True), feedback=True)
            return

        end_player = self._content.end_player
        final = await self._check(player, end_player, deadline)
        if self._abandoned(generation):
            return
        final_link = self._make_link(end_player, final) if final is not None and final.is_linked else None
        if final_link is not None:
            self._log.info("chain auto-completed", steps=self._state.steps_taken + 1)
        self._dispatch(LinkAccepted(link, final_link=final_link), feedback=True)

    def undo_last(self) -> None:
        self._dispatch(UndoLastLink())

    def give_up(self) -> None:
        self._generation += 1
        super().give_up()

    def _on_reset(self) -> None:
        self._generation += 1

    def _on_teardown(self) -> None:
        self._generation += 1

    def _abandoned(self, generation: int) -> bool:
        """The in-flight check no longer applies (torn down, gave up or reset meanwhile)."""
        return self._torn_down or generation != self._generation or not self._state.is_validating

    async def _check(self, player_a: ChainPlayer, player_b: ChainPlayer, deadline: float) -> LinkCheckResult | None:
        """Ask the validator about one pair. None means the answer is unknown."""
        try:
            async with asyncio.timeout_at(deadline):
                return await self._link_validator.check_linked(player_a.qid, player_b.qid)
        except TimeoutError:
            self._log.warning("link check timed out", player_a=player_a.qid, player_b=player_b.qid)
        except Exception:
            self._log.exception("link check failed", player_a=player_a.qid, player_b=player_b.qid)
        return None

    async def _find_earlier_link(self, player: ChainPlayer, deadline: float, generation: int) -> int | None:
        """Index of the latest earlier chain player that player links to, if any."""
        chain_links = self._state.chain
        for index in range(len(chain_links) - 2, -1, -1):
            result = await self._check(chain_links[index].player, player, deadline)
            if result is None or self._abandoned(generation):
                return None
            if result.is_linked:
                return index
        return None

    @staticmethod
    def _make_link(player: ChainPlayer, result: LinkCheckResult) -> ChainLink:
        year = datetime.now(UTC).year
        return ChainLink(
            player=player,
            shared_club_name=result.shared_club_name or UNKNOWN_CLUB,
            shared_club_id=result.shared_club_id,
            overlap_start=result.overlap_start or 0,
            overlap_end=result.overlap_end or year,
        )

    def _initial_state(self) -> ChainState:
        return chain.create_chain_state(self._content)

    def _transition(self, state: ChainState, event: object) -> ChainState:
        return chain.transition(state, event)

    def _restore_event(self, metadata: ChainProgress, record: AttemptRecord) -> RestoreChain:
        links = metadata.chain
        if links[0].player.qid != self._content.start_player.qid:
            raise ProgressMetadataError(attempt_id=record.id, reason="chain does not begin with the start player")
        qids = [link.player.qid for link in links]
        if len(set(qids)) != len(qids):
            raise ProgressMetadataError(attempt_id=record.id, reason="chain repeats a player")
        if self._content.end_player.qid in qids:
            raise ProgressMetadataError(attempt_id=record.id, reason="unfinished chain already contains the end player")
        return RestoreChain(
            chain=tuple(ChainLink.model_validate(link.model_dump()) for link in links),
            attempt_id=record.id,
            started_at=metadata.started_at or record.started_at,
        )

    def _progress_metadata(self, state: ChainState) -> dict[str, Any]:
        return {
            "chain": [link.model_dump(mode="json") for link in state.chain],
            "steps_taken": state.steps_taken,
            "par": state.par,
            "started_at": state.started_at.isoformat() if state.started_at else None,
        }

    def _final_metadata(self, state: ChainState) -> dict[str, Any]:
        return {**self._progress_metadata(state), "gave_up": state.status == SessionStatus.GAVE_UP}

    def _final_score(self, state: ChainState) -> tuple[int, str]:
        if state.score is None:
            return 0, "DNF"
        return state.score.points, format_chain_score(state.score)

    def _feedback_delay(self, outcome: GuessOutcome) -> float:
        if outcome == GuessOutcome.CORRECT:
            return ACCEPTED_FEEDBACK_SECONDS
        return REJECTED_FEEDBACK_SECONDS
