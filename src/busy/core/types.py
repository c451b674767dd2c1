"""Type definitions for tracked work.

This module defines the Pydantic models persisted in the storage directory:
time intervals, tasks, projects and tags.
"""

import uuid
from datetime import datetime, timedelta
from enum import Enum

from pydantic import AwareDatetime, BaseModel, Field


def local_now() -> datetime:
    """Return the current local time as a timezone-aware datetime."""
    return datetime.now().astimezone()


class TaskState(str, Enum):
    """Lifecycle state of a task.

    Attributes:
        RUNNING: Last interval is open.
        PAUSED: Last interval is closed and the paused flag is set.
        STOPPED: Last interval is closed and the paused flag is clear.
    """

    RUNNING = "running"
    PAUSED = "paused"
    STOPPED = "stopped"


class TimeInterval(BaseModel):
    """One contiguous tracked span.

    Attributes:
        start_time: When the span started, timezone-aware.
        stop_time: When the span ended, None while it is still running.
    """

    start_time: AwareDatetime = Field(..., description="Span start")
    stop_time: AwareDatetime | None = Field(default=None, description="Span stop, null while open")

    @property
    def is_open(self) -> bool:
        return self.stop_time is None

    def duration(self, now: datetime | None = None) -> timedelta:
        """Length of the span, measuring open spans up to ``now``."""
        end = self.stop_time or now or local_now()
        return end - self.start_time


class Task(BaseModel):
    """A tracked piece of work.

    The interval list is never empty and is ordered by start time. Only the
    last interval may be open, and only while the task isn't paused.

    Attributes:
        id: Unique task identifier.
        project_id: Id of the project the task belongs to.
        times: Tracked intervals, oldest first.
        title: Human-readable task title.
        tags: Ids of the tags attached to the task.
        is_paused: Whether the task is paused.
    """

    id: uuid.UUID = Field(default_factory=uuid.uuid4, description="Unique task identifier")
    project_id: uuid.UUID = Field(..., description="Project reference")
    times: list[TimeInterval] = Field(..., description="Tracked intervals")
    title: str = Field(..., description="Task title")
    tags: list[uuid.UUID] = Field(default_factory=list, description="Tag references")
    is_paused: bool = Field(default=False, description="Whether the task is paused")

    @classmethod
    def new(
        cls,
        project_id: uuid.UUID,
        title: str,
        tags: list[uuid.UUID],
        start_time: datetime | None = None,
        stop_time: datetime | None = None,
    ) -> "Task":
        """Create a task with a single interval.

        Args:
            project_id: Project reference.
            title: Task title.
            tags: Tag references.
            start_time: Interval start (defaults to now).
            stop_time: Interval stop, None for a running task.

        Returns:
            The new task with a fresh id.
        """
        interval = TimeInterval(start_time=start_time or local_now(), stop_time=stop_time)
        return cls(project_id=project_id, title=title, tags=list(tags), times=[interval])

    @property
    def last_interval(self) -> TimeInterval:
        return self.times[-1]

    @property
    def start_time(self) -> datetime:
        return self.times[0].start_time

    @property
    def stop_time(self) -> datetime | None:
        return self.last_interval.stop_time

    @property
    def is_active(self) -> bool:
        """True while the task is running or paused."""
        return self.last_interval.is_open or self.is_paused

    @property
    def state(self) -> TaskState:
        if self.last_interval.is_open:
            return TaskState.RUNNING
        if self.is_paused:
            return TaskState.PAUSED
        return TaskState.STOPPED

    def duration(self, now: datetime | None = None) -> timedelta:
        """Sum of all interval lengths, open intervals measured up to ``now``."""
        now = now or local_now()
        return sum((interval.duration(now) for interval in self.times), timedelta())

    def stop(self, at: datetime | None = None) -> None:
        """Close the last interval (if open) and clear the paused flag."""
        if self.last_interval.is_open:
            self.last_interval.stop_time = at or local_now()
        self.is_paused = False

    def pause(self, at: datetime | None = None) -> None:
        self.stop(at)
        self.is_paused = True

    def resume(self, at: datetime | None = None) -> None:
        """Open a fresh interval starting at ``at``."""
        self.times.append(TimeInterval(start_time=at or local_now()))
        self.is_paused = False

    def check_intervals(self) -> None:
        """Validate the interval invariants.

        Raises:
            ValueError: If the intervals are empty, out of order, inverted,
                or an interval other than the last one is open.
        """
        if not self.times:
            raise ValueError(f"task {self.id} has no time intervals")

        for index, interval in enumerate(self.times):
            is_last = index == len(self.times) - 1
            if interval.is_open and not is_last:
                raise ValueError(f"task {self.id}: only the last interval may be open")
            if interval.stop_time is not None and interval.stop_time < interval.start_time:
                raise ValueError(f"task {self.id}: interval stops before it starts")
            if index and interval.start_time < self.times[index - 1].start_time:
                raise ValueError(f"task {self.id}: intervals are not ordered by start time")

        if self.is_paused and self.last_interval.is_open:
            raise ValueError(f"task {self.id}: a paused task can't have an open interval")


class Project(BaseModel):
    """A named project.

    Attributes:
        id: Unique project identifier.
        name: Unique display name.
    """

    id: uuid.UUID = Field(default_factory=uuid.uuid4, description="Unique project identifier")
    name: str = Field(..., description="Project name")


class Tag(BaseModel):
    """A named tag.

    Attributes:
        id: Unique tag identifier.
        name: Unique display name.
    """

    id: uuid.UUID = Field(default_factory=uuid.uuid4, description="Unique tag identifier")
    name: str = Field(..., description="Tag name")
