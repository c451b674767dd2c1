"""Base syncer interface."""

from abc import ABC, abstractmethod


class Syncer(ABC):
    """Abstract base class for storage synchronization.

    Every operation returns the textual output of the work it did and raises
    ExternalCommandError when an external command fails.
    """

    @abstractmethod
    def commit(self, message: str) -> str:
        """Record all pending changes of the storage directory."""
        ...

    @abstractmethod
    def sync(self) -> str:
        """Pull remote changes, then push local ones."""
        ...

    @abstractmethod
    def push_force(self) -> str:
        """Overwrite the remote history with the local one."""
        ...

    @abstractmethod
    def pull_force(self) -> str:
        """Rebase local history onto the remote one."""
        ...
