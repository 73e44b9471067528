"""
Wiring for a puzzle client: logging, local attempt store, gateways and sync.

create_engine() builds everything from EngineSettings; the engine then opens
one session per puzzle and owns the shared resources until close().
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import structlog

from puzzle.session.factory import open_session
from shared.db import Database, SqliteAttemptRepository
from shared.logging import setup_logging
from shared.remote.attempts import HttpRemoteAttemptStore
from shared.remote.links import HttpLinkValidator
from shared.settings import EngineSettings
from shared.sync import AttemptSyncService

if TYPE_CHECKING:
    from puzzle.logic.content import Puzzle
    from puzzle.session.base import PuzzleSession
    from shared.remote.links import LinkValidator

logger = structlog.get_logger()


class PuzzleEngine:
    def __init__(
        self,
        settings: EngineSettings,
        database: Database,
        *,
        link_validator: LinkValidator | None = None,
        sync_service: AttemptSyncService | None = None,
    ) -> None:
        self.settings = settings
        self.database = database
        self.repository = SqliteAttemptRepository(database)
        self.link_validator = link_validator
        self.sync_service = sync_service

    async def open(self, puzzle: Puzzle) -> PuzzleSession:
        return await open_session(
            puzzle,
            self.repository,
            self.settings,
            self.link_validator,
            self.sync_service,
        )

    def close(self) -> None:
        if self.sync_service is not None:
            self.sync_service.close()
        self.database.close()


def create_engine(settings: EngineSettings | None = None, *, user_id: str | None = None) -> PuzzleEngine:
    """Build an engine from settings. Sync is enabled only with both a sync URL and a user id."""
    settings = settings or EngineSettings()
    setup_logging(log_dir=settings.log_dir)

    database = Database(settings.db_path)
    database.connect()

    link_validator = None
    if settings.link_validation_url is not None:
        link_validator = HttpLinkValidator(
            settings.link_validation_url,
            api_key=settings.api_key,
            timeout=settings.link_validation_timeout_seconds,
        )

    engine = PuzzleEngine(settings, database, link_validator=link_validator)
    if settings.sync_url is not None and user_id is not None:
        remote = HttpRemoteAttemptStore(settings.sync_url, api_key=settings.api_key, timeout=settings.sync_timeout_seconds)
        engine.sync_service = AttemptSyncService(
            engine.repository,
            remote,
            user_id,
            backoff_base_seconds=settings.sync_backoff_base_seconds,
            backoff_max_seconds=settings.sync_backoff_max_seconds,
        )

    logger.info(
        "puzzle engine ready",
        db_path=settings.db_path,
        link_validation=link_validator is not None,
        sync=engine.sync_service is not None,
    )
    return engine
