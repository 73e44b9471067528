"""SQLite-backed attempt repository."""

from __future__ import annotations

import asyncio
import sqlite3
from typing import TYPE_CHECKING

import structlog

from shared.dal.attempt_repository import AttemptRepository
from shared.dal.models import AttemptRecord

if TYPE_CHECKING:
    from shared.db.connection import Database

logger = structlog.get_logger()

_COLUMNS = "id, puzzle_id, completed, score, score_display, metadata, started_at, completed_at, synced"


def _metadata_version(column: str) -> str:
    return f"COALESCE(CASE WHEN json_valid({column}) THEN json_extract({column}, '$.version') END, 0)"


# Completed rows are final. An in-progress row only yields to a write whose
# metadata version is at least as new, so late-arriving stale progress loses.
_UPSERT_SQL = (
    f"INSERT INTO attempts ({_COLUMNS}) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?) "
    "ON CONFLICT(id) DO UPDATE SET "
    "puzzle_id = excluded.puzzle_id, "
    "completed = excluded.completed, "
    "score = excluded.score, "
    "score_display = excluded.score_display, "
    "metadata = excluded.metadata, "
    "started_at = COALESCE(attempts.started_at, excluded.started_at), "
    "completed_at = excluded.completed_at, "
    "synced = excluded.synced "
    "WHERE attempts.completed = 0 "
    f"AND {_metadata_version('excluded.metadata')} >= {_metadata_version('attempts.metadata')}"
)


def _to_record(row: sqlite3.Row) -> AttemptRecord:
    return AttemptRecord.model_validate(
        {
            **dict(row),
            "completed": bool(row["completed"]),
            "synced": bool(row["synced"]),
        },
    )


class SqliteAttemptRepository(AttemptRepository):
    """SQLite implementation of AttemptRepository.

    Writes are serialized through a lock so fire-and-forget saves land in the
    order they were issued.
    """

    def __init__(self, db: Database) -> None:
        self._db = db
        self._lock = asyncio.Lock()

    async def save_attempt(self, attempt: AttemptRecord) -> None:
        """Upsert an attempt. Logs and ignores writes rejected by the completion/version guard."""
        async with self._lock:
            cursor = self._db.connection.execute(
                _UPSERT_SQL,
                (
                    attempt.id,
                    attempt.puzzle_id,
                    int(attempt.completed),
                    attempt.score,
                    attempt.score_display,
                    attempt.metadata,
                    attempt.started_at.isoformat() if attempt.started_at else None,
                    attempt.completed_at.isoformat() if attempt.completed_at else None,
                    int(attempt.synced),
                ),
            )
            self._db.connection.commit()
            if cursor.rowcount == 0:
                logger.info("attempt write superseded, keeping stored row", attempt_id=attempt.id)

    async def get_attempt(self, attempt_id: str) -> AttemptRecord | None:
        row = self._db.connection.execute(
            f"SELECT {_COLUMNS} FROM attempts WHERE id = ?",
            (attempt_id,),
        ).fetchone()
        return None if row is None else _to_record(row)

    async def get_attempt_by_puzzle_id(self, puzzle_id: str) -> AttemptRecord | None:
        """Return the most recently started attempt for a puzzle."""
        row = self._db.connection.execute(
            f"SELECT {_COLUMNS} FROM attempts WHERE puzzle_id = ? ORDER BY started_at DESC, rowid DESC LIMIT 1",
            (puzzle_id,),
        ).fetchone()
        return None if row is None else _to_record(row)

    async def get_unsynced_attempts(self) -> list[AttemptRecord]:
        """Attempts (in progress or completed) not yet pushed upstream."""
        rows = self._db.connection.execute(
            f"SELECT {_COLUMNS} FROM attempts WHERE synced = 0 ORDER BY started_at",
        ).fetchall()
        return [_to_record(row) for row in rows]

    async def mark_attempt_synced(self, attempt: AttemptRecord) -> bool:
        """Flag the pushed attempt as synced unless the row has changed since it was read.

        Returns False when the row is gone or a newer write replaced it; that
        write stays unsynced for the next run.
        """
        async with self._lock:
            cursor = self._db.connection.execute(
                "UPDATE attempts SET synced = 1 WHERE id = ? AND metadata IS ? AND completed = ?",
                (attempt.id, attempt.metadata, int(attempt.completed)),
            )
            self._db.connection.commit()
            if cursor.rowcount == 0:
                logger.warning("attempt missing or changed before it could be marked synced", attempt_id=attempt.id)
                return False
            return True

    async def delete_attempts_by_puzzle_id(self, puzzle_id: str) -> int:
        """Delete every attempt for a puzzle and return how many rows were removed."""
        async with self._lock:
            cursor = self._db.connection.execute(
                "DELETE FROM attempts WHERE puzzle_id = ?",
                (puzzle_id,),
            )
            self._db.connection.commit()
            return cursor.rowcount
