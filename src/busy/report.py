"""Time totals per project and per tag."""

import uuid
from dataclasses import dataclass, field
from datetime import datetime, timedelta

from busy.core.types import Project, Tag, Task


@dataclass
class Total:
    """Accumulated time for one project or tag."""

    name: str
    duration: timedelta = timedelta()
    task_count: int = 0


@dataclass
class Summary:
    """Totals for a set of tasks."""

    total: timedelta = timedelta()
    by_project: list[Total] = field(default_factory=list)
    by_tag: list[Total] = field(default_factory=list)


def _sorted(totals: dict[uuid.UUID, Total]) -> list[Total]:
    return sorted(totals.values(), key=lambda t: t.duration, reverse=True)


def summarize(
    tasks: list[Task],
    projects: list[Project],
    tags: list[Tag],
    now: datetime | None = None,
) -> Summary:
    """Sum task durations per project and per tag.

    Running tasks are measured up to ``now``. A task with several tags counts
    toward each of them.

    Args:
        tasks: Tasks to summarize.
        projects: Known projects, used for names.
        tags: Known tags, used for names.
        now: Reference time for running tasks.

    Returns:
        Summary with both groupings sorted by duration, longest first.
    """
    project_names = {p.id: p.name for p in projects}
    tag_names = {t.id: t.name for t in tags}

    by_project: dict[uuid.UUID, Total] = {}
    by_tag: dict[uuid.UUID, Total] = {}
    summary = Summary()

    for task in tasks:
        duration = task.duration(now)
        summary.total += duration

        project_total = by_project.setdefault(
            task.project_id, Total(name=project_names.get(task.project_id, str(task.project_id)))
        )
        project_total.duration += duration
        project_total.task_count += 1

        for tag_id in task.tags:
            tag_total = by_tag.setdefault(tag_id, Total(name=tag_names.get(tag_id, str(tag_id))))
            tag_total.duration += duration
            tag_total.task_count += 1

    summary.by_project = _sorted(by_project)
    summary.by_tag = _sorted(by_tag)
    return summary
