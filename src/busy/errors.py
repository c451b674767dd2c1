"""Error taxonomy for busy.

Local failures (unknown ids, illegal lifecycle transitions) are raised before
anything is written. External failures carry the captured command output so
the caller can show it and offer the forced push/pull escape hatches.
"""


class BusyError(Exception):
    """Base class for all busy errors."""

    pass


class NotFoundError(BusyError):
    """Raised when an entity id is not present in storage."""

    pass


class AmbiguousIdError(BusyError):
    """Raised when a short id matches more than one entity."""

    def __init__(self, short_id: str, matches: list[str]) -> None:
        self.short_id = short_id
        self.matches = matches
        super().__init__(
            f"short id '{short_id}' is ambiguous, use the full id: {', '.join(matches)}"
        )


class InvalidStateError(BusyError):
    """Raised on an illegal task lifecycle transition."""

    pass


class ExternalCommandError(BusyError):
    """Raised when git or the editor exits with a non-zero status."""

    def __init__(self, command: list[str], returncode: int, output: str) -> None:
        self.command = command
        self.returncode = returncode
        self.output = output
        super().__init__(
            f"command '{' '.join(command)}' failed with exit code {returncode}:\n{output}"
        )


class SerializationError(BusyError):
    """Raised when persisted or edited data can't be decoded."""

    pass
