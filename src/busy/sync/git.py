"""Git-backed syncer for the storage directory.

All remote work is delegated to the ``git`` binary. Conflicts are never
resolved here: a failing pull or push surfaces as an ExternalCommandError
and the user decides whether to force push or force pull.
"""

import logging
import os
import subprocess
from pathlib import Path

from busy.errors import ExternalCommandError
from busy.sync.base import Syncer
from busy.sync.config import DEFAULT_BRANCH

logger = logging.getLogger(__name__)

REMOTE_NAME = "origin"


def run_git(cwd: Path, *args: str, key_file: Path | None = None) -> str:
    """Run git in ``cwd`` and return its output.

    The call blocks until git exits; there is no timeout.

    Args:
        cwd: Working directory (the storage directory).
        *args: Git arguments.
        key_file: SSH key exported through GIT_SSH_COMMAND.

    Returns:
        Captured stdout.

    Raises:
        ExternalCommandError: If git can't be started or exits non-zero.
    """
    command = ["git", *args]
    env = None
    if key_file is not None:
        env = {**os.environ, "GIT_SSH_COMMAND": f"ssh -i {key_file}"}

    logger.debug(f"Run git with args: {list(args)} cwd: {cwd} key_file: {key_file}")
    try:
        proc = subprocess.run(
            command,
            cwd=str(cwd),
            env=env,
            text=True,
            capture_output=True,
            check=False,
        )
    except OSError as e:
        raise ExternalCommandError(command, 127, str(e)) from e

    if proc.returncode != 0:
        output = "\n".join(part for part in (proc.stdout.strip(), proc.stderr.strip()) if part)
        logger.debug(f"git failed with status {proc.returncode}: {output}")
        raise ExternalCommandError(command, proc.returncode, output)

    logger.debug(f"git output: {proc.stdout!r}")
    return proc.stdout


class GitSyncer(Syncer):
    """Syncer that commits the storage directory and syncs it with a remote.

    Example:
        syncer = GitSyncer("~/.busy", remote="git@example.com:me/busy-db.git")
        syncer.commit("started task")
        syncer.sync()
    """

    def __init__(
        self,
        storage_dir: str | Path,
        remote: str | None = None,
        branch: str | None = None,
        key_file: str | Path | None = None,
    ) -> None:
        """Prepare the repository in the storage directory.

        A fresh directory gets ``git init``, the remote and an initial pull.
        An existing repository only gets its remote registered or updated.
        Failures here are logged, not raised.

        Args:
            storage_dir: Directory holding the JSON files.
            remote: Remote URL registered as ``origin``.
            branch: Branch to pull from and push to.
            key_file: SSH private key for the remote.
        """
        self.storage_dir = Path(storage_dir).expanduser()
        self.remote = remote
        self.branch = branch or DEFAULT_BRANCH
        self.key_file = Path(key_file).expanduser() if key_file else None

        try:
            self._init()
        except ExternalCommandError as e:
            logger.warning(f"Git repository initialization failed: {e}")

    def _git(self, *args: str) -> str:
        return run_git(self.storage_dir, *args, key_file=self.key_file)

    def _init(self) -> None:
        if (self.storage_dir / ".git").exists():
            self._set_remote()
            return

        self.storage_dir.mkdir(parents=True, exist_ok=True)
        self._git("init", "-b", self.branch)
        logger.info(f"Initialized git repository in {self.storage_dir}")
        self._set_remote()
        self._pull()

    def _set_remote(self) -> None:
        if self.remote is None:
            return
        try:
            self._git("remote", "set-url", REMOTE_NAME, self.remote)
        except ExternalCommandError:
            self._git("remote", "add", REMOTE_NAME, self.remote)

    def _pull(self) -> str:
        return self._git("pull", REMOTE_NAME, self.branch)

    def _push(self) -> str:
        return self._git("push", "-u", REMOTE_NAME, self.branch)

    def commit(self, message: str) -> str:
        self._git("add", "-A")
        return self._git("commit", "-a", "-m", message)

    def sync(self) -> str:
        """Pull, then push. A failed pull skips the push."""
        pull_output = self._pull()
        push_output = self._push()
        return f"git pull output:\n{pull_output}\n\ngit push output:\n{push_output}"

    def push_force(self) -> str:
        return self._git("push", "--force", "-u", REMOTE_NAME, self.branch)

    def pull_force(self) -> str:
        return self._git("pull", "--force", "--rebase", REMOTE_NAME, self.branch)
