"""Tests for the syncers."""

import json
import shutil
import subprocess
from datetime import timedelta
from unittest.mock import patch

import pytest

from busy.config import BusyConfig
from busy.core.busy import Busy
from busy.core.types import Project, Task
from busy.errors import ExternalCommandError
from busy.storage import JsonStorage
from busy.sync import EmptySyncer, GitSyncer, create_syncer
from busy.sync.config import EmptySyncerConfig, GitSyncerConfig
from busy.sync.git import run_git

REMOTE = "git@example.com:me/busy-db.git"


class FakeGit:
    """Stands in for subprocess.run and records every git invocation."""

    def __init__(self) -> None:
        self.calls: list[list[str]] = []
        self.envs: list[dict | None] = []
        self.failures: dict[tuple[str, ...], str] = {}

    def fail(self, *args: str, output: str = "fatal: error") -> None:
        self.failures[args] = output

    def __call__(self, command, cwd=None, env=None, **kwargs):
        self.calls.append(command)
        self.envs.append(env)
        args = tuple(command[1:])
        for prefix, output in self.failures.items():
            if args[: len(prefix)] == prefix:
                return subprocess.CompletedProcess(command, 1, stdout="", stderr=output)
        return subprocess.CompletedProcess(command, 0, stdout=f"ok {args[0]}\n", stderr="")

    def subcommands(self) -> list[list[str]]:
        return [call[1:] for call in self.calls]


@pytest.fixture
def fake_git():
    fake = FakeGit()
    with patch("busy.sync.git.subprocess.run", side_effect=fake):
        yield fake


class TestEmptySyncer:
    """Tests for EmptySyncer."""

    def test_operations_describe_themselves(self):
        """The no-op syncer echoes each operation."""
        syncer = EmptySyncer()

        assert syncer.commit("hello") == "cmd: 'commit', msg: hello"
        assert syncer.sync() == "cmd: 'sync'"
        assert syncer.push_force() == "cmd: 'push_force'"
        assert syncer.pull_force() == "cmd: 'pull_force'"


class TestRunGit:
    """Tests for the git runner."""

    def test_returns_stdout(self, tmp_path, fake_git):
        """Successful commands return their output."""
        assert run_git(tmp_path, "status") == "ok status\n"
        assert fake_git.calls == [["git", "status"]]
        assert fake_git.envs == [None]

    def test_non_zero_exit_raises_with_output(self, tmp_path, fake_git):
        """A failing command raises with its output."""
        fake_git.fail("push", output="rejected")

        with pytest.raises(ExternalCommandError) as exc_info:
            run_git(tmp_path, "push")

        assert exc_info.value.returncode == 1
        assert exc_info.value.output == "rejected"

    def test_key_file_sets_ssh_command(self, tmp_path, fake_git):
        """A key file is passed through GIT_SSH_COMMAND."""
        key = tmp_path / "id_busy"
        run_git(tmp_path, "pull", key_file=key)

        assert fake_git.envs[0]["GIT_SSH_COMMAND"] == f"ssh -i {key}"

    def test_missing_binary(self, tmp_path):
        """A missing git binary is an external command error."""
        with patch("busy.sync.git.subprocess.run", side_effect=FileNotFoundError("git")):
            with pytest.raises(ExternalCommandError) as exc_info:
                run_git(tmp_path, "status")

        assert exc_info.value.returncode == 127


class TestGitSyncerInit:
    """Tests for repository preparation."""

    def test_fresh_directory_is_initialized(self, tmp_path, fake_git):
        """A fresh directory is initialized and pulled from the remote."""
        GitSyncer(tmp_path / "store", remote=REMOTE)

        assert fake_git.subcommands() == [
            ["init", "-b", "main"],
            ["remote", "set-url", "origin", REMOTE],
            ["pull", "origin", "main"],
        ]
        assert (tmp_path / "store").is_dir()

    def test_missing_remote_falls_back_to_add(self, tmp_path, fake_git):
        """The remote is added when it can't be updated."""
        fake_git.fail("remote", "set-url", output="error: No such remote 'origin'")

        GitSyncer(tmp_path, remote=REMOTE, branch="data")

        assert fake_git.subcommands() == [
            ["init", "-b", "data"],
            ["remote", "set-url", "origin", REMOTE],
            ["remote", "add", "origin", REMOTE],
            ["pull", "origin", "data"],
        ]

    def test_existing_repository_only_updates_remote(self, tmp_path, fake_git):
        """An existing repository isn't initialized again."""
        (tmp_path / ".git").mkdir()

        GitSyncer(tmp_path, remote=REMOTE)

        assert fake_git.subcommands() == [["remote", "set-url", "origin", REMOTE]]

    def test_initial_pull_failure_is_not_raised(self, tmp_path, fake_git):
        """An empty remote doesn't stop the syncer from opening."""
        fake_git.fail("pull", output="couldn't find remote ref main")

        syncer = GitSyncer(tmp_path, remote=REMOTE)

        assert syncer.branch == "main"
        assert fake_git.subcommands()[-1] == ["pull", "origin", "main"]


class TestGitSyncerOperations:
    """Tests for commit, sync and the forced operations."""

    @pytest.fixture
    def syncer(self, tmp_path, fake_git) -> GitSyncer:
        (tmp_path / ".git").mkdir()
        syncer = GitSyncer(tmp_path, remote=REMOTE, key_file=tmp_path / "key")
        fake_git.calls.clear()
        fake_git.envs.clear()
        return syncer

    def test_commit_stages_everything(self, syncer, fake_git):
        """Commits stage every file first."""
        syncer.commit("started task title: x")

        assert fake_git.subcommands() == [
            ["add", "-A"],
            ["commit", "-a", "-m", "started task title: x"],
        ]
        assert all(env["GIT_SSH_COMMAND"].startswith("ssh -i ") for env in fake_git.envs)

    def test_sync_pulls_then_pushes(self, syncer, fake_git):
        """Sync pulls and then pushes."""
        output = syncer.sync()

        assert fake_git.subcommands() == [
            ["pull", "origin", "main"],
            ["push", "-u", "origin", "main"],
        ]
        assert output == "git pull output:\nok pull\n\n\ngit push output:\nok push\n"

    def test_failed_pull_skips_push(self, syncer, fake_git):
        """Nothing is pushed after a failed pull."""
        fake_git.fail("pull", output="CONFLICT (content): Merge conflict in tasks.json")

        with pytest.raises(ExternalCommandError) as exc_info:
            syncer.sync()

        assert "CONFLICT" in exc_info.value.output
        assert fake_git.subcommands() == [["pull", "origin", "main"]]

    def test_failed_push_raises(self, syncer, fake_git):
        """A failed push raises."""
        fake_git.fail("push", output="! [rejected] main -> main (fetch first)")

        with pytest.raises(ExternalCommandError):
            syncer.sync()

    def test_push_force(self, syncer, fake_git):
        """Force push overwrites the remote branch."""
        syncer.push_force()
        assert fake_git.subcommands() == [["push", "--force", "-u", "origin", "main"]]

    def test_pull_force(self, syncer, fake_git):
        """Force pull resets to the remote branch."""
        syncer.pull_force()
        assert fake_git.subcommands() == [["pull", "--force", "--rebase", "origin", "main"]]


class TestCreateSyncer:
    """Tests for create_syncer."""

    def test_empty_config(self, tmp_path):
        """No remote gives the no-op syncer."""
        assert isinstance(create_syncer(EmptySyncerConfig(), tmp_path), EmptySyncer)

    def test_git_config(self, tmp_path, fake_git):
        """A git section gives a configured git syncer."""
        config = GitSyncerConfig(remote=REMOTE, remote_branch="data", key_file=tmp_path / "key")

        syncer = create_syncer(config, tmp_path)

        assert isinstance(syncer, GitSyncer)
        assert syncer.branch == "data"
        assert syncer.remote == REMOTE
        assert syncer.key_file == tmp_path / "key"


def git(cwd, *args: str) -> str:
    return subprocess.run(
        ["git", *args], cwd=cwd, check=True, capture_output=True, text=True
    ).stdout


@pytest.mark.skipif(shutil.which("git") is None, reason="git is not installed")
class TestGitSyncerWithRepository:
    """Runs the git syncer against a real bare remote."""

    @pytest.fixture
    def remote(self, tmp_path, monkeypatch, clock):
        """A bare remote whose main branch already holds one stopped task."""
        monkeypatch.setenv("GIT_CONFIG_GLOBAL", str(tmp_path / "gitconfig"))
        monkeypatch.setenv("GIT_CONFIG_NOSYSTEM", "1")
        for key in ("AUTHOR", "COMMITTER"):
            monkeypatch.setenv(f"GIT_{key}_NAME", "busy test")
            monkeypatch.setenv(f"GIT_{key}_EMAIL", "busy@example.com")

        remote = tmp_path / "remote.git"
        seed = tmp_path / "seed"
        git(tmp_path, "init", "--bare", "-b", "main", str(remote))
        git(tmp_path, "init", "-b", "main", str(seed))

        storage = JsonStorage(seed)
        project = Project(name="old")
        storage.add_project(project)
        storage.add_task(
            Task.new(
                project.id,
                "old work",
                [],
                start_time=clock() - timedelta(hours=2),
                stop_time=clock() - timedelta(hours=1),
            )
        )
        git(seed, "add", "-A")
        git(seed, "commit", "-m", "seed")
        git(seed, "remote", "add", "origin", str(remote))
        git(seed, "push", "origin", "main")
        return remote

    def test_fresh_machine_keeps_remote_history(self, tmp_path, remote, clock):
        """A new store picks up remote history and pushes on top of it."""
        store = tmp_path / "store"
        config = BusyConfig(storage_dir=store, syncer=GitSyncerConfig(remote=str(remote)))

        busy = Busy(config, clock=clock)

        assert [t.title for t in busy.all_tasks()] == ["old work"]
        assert busy.project_by_name("old") is not None

        busy.start("new", "new work", [])
        busy.sync()

        pushed = json.loads(git(tmp_path, "--git-dir", str(remote), "show", "main:tasks.json"))
        assert [t["title"] for t in pushed] == ["old work", "new work"]
