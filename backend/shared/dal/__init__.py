"""Data access layer: repository interfaces and shared persistence models."""

from shared.dal.attempt_repository import AttemptRepository
from shared.dal.models import AttemptRecord

__all__ = [
    "AttemptRecord",
    "AttemptRepository",
]
