"""Configuration models for the syncer."""

from pathlib import Path
from typing import Annotated, Literal

from pydantic import BaseModel, Field

DEFAULT_BRANCH = "main"


class EmptySyncerConfig(BaseModel):
    """No synchronization: commits and syncs are no-ops."""

    kind: Literal["empty"] = "empty"


class GitSyncerConfig(BaseModel):
    """Synchronize the storage directory with a git remote.

    Attributes:
        remote: Remote URL registered as ``origin``.
        remote_branch: Branch to pull from and push to.
        key_file: SSH private key passed to git through GIT_SSH_COMMAND.
    """

    kind: Literal["git"] = "git"
    remote: str = Field(..., description="Remote URL")
    remote_branch: str | None = Field(default=None, description="Remote branch (default: main)")
    key_file: Path | None = Field(default=None, description="SSH key file")

    @property
    def branch(self) -> str:
        return self.remote_branch or DEFAULT_BRANCH


SyncerConfig = Annotated[EmptySyncerConfig | GitSyncerConfig, Field(discriminator="kind")]
