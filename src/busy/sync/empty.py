"""Syncer used when no remote is configured."""

from busy.sync.base import Syncer


class EmptySyncer(Syncer):
    """Syncer whose operations succeed without touching anything."""

    def commit(self, message: str) -> str:
        return f"cmd: 'commit', msg: {message}"

    def sync(self) -> str:
        return "cmd: 'sync'"

    def push_force(self) -> str:
        return "cmd: 'push_force'"

    def pull_force(self) -> str:
        return "cmd: 'pull_force'"
