"""Synchronization of the storage directory across machines.

Two implementations exist: EmptySyncer when no remote is configured, and
GitSyncer which drives the ``git`` binary.
"""

from pathlib import Path

from busy.sync.base import Syncer
from busy.sync.config import EmptySyncerConfig, GitSyncerConfig, SyncerConfig
from busy.sync.empty import EmptySyncer
from busy.sync.git import GitSyncer


def create_syncer(config: EmptySyncerConfig | GitSyncerConfig, storage_dir: str | Path) -> Syncer:
    """Build the syncer described by ``config`` for ``storage_dir``."""
    if isinstance(config, GitSyncerConfig):
        return GitSyncer(
            storage_dir,
            remote=config.remote,
            branch=config.branch,
            key_file=config.key_file,
        )
    return EmptySyncer()


__all__ = [
    "Syncer",
    "EmptySyncer",
    "GitSyncer",
    "SyncerConfig",
    "EmptySyncerConfig",
    "GitSyncerConfig",
    "create_syncer",
]
