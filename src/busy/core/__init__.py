"""Core time tracking model.

The repository facade lives in ``busy.core.busy``; this package exports the
entity types and period helpers it is built on.
"""

from busy.core.period import Period, format_duration, parse_datetime
from busy.core.types import Project, Tag, Task, TaskState, TimeInterval, local_now

__all__ = [
    "Task",
    "TaskState",
    "TimeInterval",
    "Project",
    "Tag",
    "local_now",
    "Period",
    "format_duration",
    "parse_datetime",
]
