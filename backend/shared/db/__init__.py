"""SQLite database layer: connection management and repository implementations."""

from shared.db.attempt_repository import SqliteAttemptRepository
from shared.db.connection import Database

__all__ = [
    "Database",
    "SqliteAttemptRepository",
]
