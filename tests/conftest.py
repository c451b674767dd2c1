"""Shared fixtures for busy tests."""

from datetime import datetime, timedelta, timezone

import pytest

from busy.config import BusyConfig
from busy.core.busy import Busy
from busy.errors import ExternalCommandError
from busy.sync.base import Syncer


class FakeClock:
    """Clock that only moves when told to."""

    def __init__(self, start: datetime) -> None:
        self.current = start

    def __call__(self) -> datetime:
        return self.current

    def advance(self, **kwargs) -> None:
        self.current += timedelta(**kwargs)


class RecordingSyncer(Syncer):
    """Syncer that records calls and can be told to fail."""

    def __init__(self) -> None:
        self.commits: list[str] = []
        self.calls: list[str] = []
        self.fail_commit = False
        self.fail_sync = False

    def commit(self, message: str) -> str:
        if self.fail_commit:
            raise ExternalCommandError(["git", "commit"], 1, "nothing to commit")
        self.commits.append(message)
        return "ok"

    def sync(self) -> str:
        self.calls.append("sync")
        if self.fail_sync:
            raise ExternalCommandError(["git", "pull"], 1, "diverged")
        return "synced"

    def push_force(self) -> str:
        self.calls.append("push_force")
        return "pushed"

    def pull_force(self) -> str:
        self.calls.append("pull_force")
        return "pulled"


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock(datetime(2024, 3, 6, 9, 0, tzinfo=timezone.utc))


@pytest.fixture
def syncer() -> RecordingSyncer:
    return RecordingSyncer()


@pytest.fixture
def storage_dir(tmp_path):
    return tmp_path / "store"


@pytest.fixture
def busy(storage_dir, syncer, clock) -> Busy:
    return Busy(BusyConfig(storage_dir=storage_dir), syncer=syncer, clock=clock)
