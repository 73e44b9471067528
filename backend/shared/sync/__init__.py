"""Background synchronization of local attempts to the remote store."""

from shared.sync.service import AttemptSyncService, SyncResult

__all__ = [
    "AttemptSyncService",
    "SyncResult",
]
