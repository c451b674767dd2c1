"""Bulk editing through an external text editor.

Entities are written as pretty JSON to a scratch file, the user's editor is
run on it, and the result is read back and validated before anything is
stored. Tasks are shown with project and tag names instead of ids; unknown
names are created on save.
"""

import json
import logging
import shlex
import subprocess
import tempfile
import uuid
from pathlib import Path
from typing import Any, TypeVar

from pydantic import BaseModel, Field, TypeAdapter, ValidationError

from busy.core.busy import Busy
from busy.core.types import Project, Tag, Task, TimeInterval
from busy.errors import ExternalCommandError, NotFoundError, SerializationError

logger = logging.getLogger(__name__)

T = TypeVar("T")


class TaskView(BaseModel):
    """Editable form of a task.

    Attributes:
        id: Task id (must stay unchanged).
        project: Project name.
        title: Task title.
        tags: Tag names.
        times: Tracked intervals.
        is_paused: Whether the task is paused.
    """

    id: uuid.UUID = Field(..., description="Task id")
    project: str = Field(..., description="Project name")
    title: str = Field(..., description="Task title")
    tags: list[str] = Field(default_factory=list, description="Tag names")
    times: list[TimeInterval] = Field(..., description="Tracked intervals")
    is_paused: bool = Field(default=False, description="Whether the task is paused")

    @classmethod
    def from_task(cls, task: Task, project: Project | None, tags: list[Tag]) -> "TaskView":
        names = {tag.id: tag.name for tag in tags}
        return cls(
            id=task.id,
            project=project.name if project else "",
            title=task.title,
            tags=[names[tag_id] for tag_id in task.tags if tag_id in names],
            times=task.times,
            is_paused=task.is_paused,
        )

    def to_task(self, project_id: uuid.UUID, tag_ids: list[uuid.UUID]) -> Task:
        return Task(
            id=self.id,
            project_id=project_id,
            title=self.title,
            tags=tag_ids,
            times=self.times,
            is_paused=self.is_paused,
        )


def run_editor(editor: str, path: Path) -> None:
    """Open ``path`` in ``editor`` and wait for it to exit.

    Raises:
        ExternalCommandError: If the editor can't be started or exits non-zero.
    """
    command = [*shlex.split(editor), str(path)]
    logger.debug(f"Run editor: {command}")
    try:
        proc = subprocess.run(command, check=False)
    except OSError as e:
        raise ExternalCommandError(command, 127, str(e)) from e

    if proc.returncode != 0:
        raise ExternalCommandError(command, proc.returncode, "editor exited with an error")


def edit_json(data: Any, editor: str) -> Any:
    """Let the user edit ``data`` as JSON and return the parsed result.

    Raises:
        ExternalCommandError: If the editor fails.
        SerializationError: If the edited text isn't valid JSON.
    """
    with tempfile.NamedTemporaryFile(
        "w", prefix="busy_", suffix=".json", delete=False, encoding="utf-8"
    ) as f:
        json.dump(data, f, indent=2)
        path = Path(f.name)

    try:
        run_editor(editor, path)
        content = path.read_text(encoding="utf-8")
    finally:
        path.unlink(missing_ok=True)

    logger.debug(f"Edit result: {content}")
    try:
        return json.loads(content)
    except json.JSONDecodeError as e:
        raise SerializationError(f"Can't decode edited data, please try again: {e}") from e


def edit_value(value: T, value_type: Any, editor: str) -> T:
    """Edit any pydantic-serializable value and validate it as ``value_type``.

    Raises:
        ExternalCommandError: If the editor fails.
        SerializationError: If the result doesn't validate.
    """
    adapter = TypeAdapter(value_type)
    edited = edit_json(adapter.dump_python(value, mode="json"), editor)
    try:
        return adapter.validate_python(edited)
    except ValidationError as e:
        raise SerializationError(f"Edited data is invalid: {e}") from e


def _check_task(task: Task) -> None:
    try:
        task.check_intervals()
    except ValueError as e:
        raise SerializationError(str(e)) from e


def edit_task(busy: Busy, task_id: uuid.UUID, editor: str) -> Task:
    """Edit one task, creating any newly named project or tags.

    Raises:
        NotFoundError: If the task doesn't exist.
    """
    task = busy.task_by_id(task_id)
    if task is None:
        raise NotFoundError(f"task with id: {task_id} not found")

    view = TaskView.from_task(task, busy.project_by_id(task.project_id), busy.tags())
    edited = edit_value(view, TaskView, editor)
    _check_task(edited.to_task(task.project_id, []))
    if edited.id != task.id:
        raise SerializationError("task id can't be changed")

    project = busy.upsert_project(edited.project)
    updated = edited.to_task(project.id, busy.upsert_tags(edited.tags))
    busy.replace_task(updated)
    return updated


def _check_name_free(kind: str, item: Project | Tag, existing: Project | Tag | None) -> None:
    if existing is not None and existing.id != item.id:
        raise SerializationError(f"{kind} name '{item.name}' is already taken by {existing.id}")


def edit_project(busy: Busy, project_id: uuid.UUID, editor: str) -> Project:
    project = busy.project_by_id(project_id)
    if project is None:
        raise NotFoundError(f"project with id: {project_id} not found")

    updated = edit_value(project, Project, editor)
    _check_name_free("project", updated, busy.project_by_name(updated.name))
    busy.replace_project(updated)
    return updated


def edit_tag(busy: Busy, tag_id: uuid.UUID, editor: str) -> Tag:
    tag = busy.tag_by_id(tag_id)
    if tag is None:
        raise NotFoundError(f"tag with id: {tag_id} not found")

    updated = edit_value(tag, Tag, editor)
    _check_name_free("tag", updated, busy.tag_by_name(updated.name))
    busy.replace_tag(updated)
    return updated


def edit_all_tasks(busy: Busy, editor: str) -> list[Task]:
    """Edit the raw task list in one go."""
    tasks = edit_value(busy.all_tasks(), list[Task], editor)
    for task in tasks:
        _check_task(task)
    busy.replace_tasks(tasks)
    return tasks


def edit_all_tags(busy: Busy, editor: str) -> list[Tag]:
    tags = edit_value(busy.tags(), list[Tag], editor)
    names = [tag.name for tag in tags]
    duplicates = sorted({name for name in names if names.count(name) > 1})
    if duplicates:
        raise SerializationError(f"tag names must be unique, duplicated: {', '.join(duplicates)}")
    busy.replace_tags(tags)
    return tags
