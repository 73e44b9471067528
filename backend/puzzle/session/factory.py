"""Build the right session for a puzzle and resume any saved progress."""

from __future__ import annotations

from typing import TYPE_CHECKING

import structlog

from puzzle.logic.content import parse_content
from puzzle.logic.enums import GameMode
from puzzle.logic.exceptions import UnsupportedGameModeError
from puzzle.session.chain_session import ChainSession
from puzzle.session.lineup_session import LineupSession
from puzzle.session.recall_session import RecallSession
from shared.remote.links import HttpLinkValidator

if TYPE_CHECKING:
    from puzzle.logic.content import ChainContent, LineupContent, Puzzle, RecallContent
    from puzzle.session.base import PuzzleSession
    from shared.dal.attempt_repository import AttemptRepository
    from shared.remote.links import LinkValidator
    from shared.settings import EngineSettings
    from shared.sync.service import AttemptSyncService

logger = structlog.get_logger()


def resolve_game_mode(puzzle: Puzzle) -> GameMode:
    try:
        return GameMode(puzzle.game_mode)
    except ValueError:
        raise UnsupportedGameModeError(f"unsupported game mode {puzzle.game_mode!r}") from None


def _link_validator_from_settings(settings: EngineSettings) -> LinkValidator:
    if settings.link_validation_url is None:
        raise ValueError("the chain needs a link validator or PUZZLE_LINK_VALIDATION_URL")
    return HttpLinkValidator(
        settings.link_validation_url,
        api_key=settings.api_key,
        timeout=settings.link_validation_timeout_seconds,
    )


def build_session(
    puzzle: Puzzle,
    repository: AttemptRepository,
    settings: EngineSettings,
    link_validator: LinkValidator | None = None,
    sync_service: AttemptSyncService | None = None,
) -> PuzzleSession:
    """Create an idle session for puzzle without touching storage.

    Raises UnsupportedGameModeError for modes without a session and
    PuzzleContentError when the content does not fit the mode.
    """
    mode = resolve_game_mode(puzzle)
    content = parse_content(mode, puzzle.content)

    if mode == GameMode.GOALSCORER_RECALL:
        recall_content: RecallContent = content  # type: ignore[assignment]
        return RecallSession(
            puzzle.id,
            recall_content,
            repository,
            time_limit=settings.recall_timer_seconds,
            time_bonus=settings.recall_time_bonus,
            sync_service=sync_service,
        )
    if mode == GameMode.STARTING_XI:
        lineup_content: LineupContent = content  # type: ignore[assignment]
        return LineupSession(puzzle.id, lineup_content, repository, sync_service=sync_service)

    chain_content: ChainContent = content  # type: ignore[assignment]
    return ChainSession(
        puzzle.id,
        chain_content,
        repository,
        link_validator or _link_validator_from_settings(settings),
        validation_timeout=settings.link_validation_timeout_seconds,
        sync_service=sync_service,
    )


async def open_session(
    puzzle: Puzzle,
    repository: AttemptRepository,
    settings: EngineSettings,
    link_validator: LinkValidator | None = None,
    sync_service: AttemptSyncService | None = None,
) -> PuzzleSession:
    """Create the session for puzzle and restore the latest unfinished attempt."""
    session = build_session(puzzle, repository, settings, link_validator, sync_service)
    restored = await session.mount()
    logger.info("session opened", puzzle_id=puzzle.id, game_mode=puzzle.game_mode, restored=restored)
    return session
