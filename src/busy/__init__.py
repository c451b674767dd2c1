"""busy - a command-line time tracker with git-backed sync."""

from importlib.metadata import version, PackageNotFoundError

try:
    __version__ = version("busy-tracker")
except PackageNotFoundError:
    __version__ = "0.0.0-dev"

from busy.core.busy import Busy
from busy.core.types import Project, Tag, Task, TimeInterval

__all__ = ["Busy", "Task", "TimeInterval", "Project", "Tag"]
