"""Repository facade tying storage, sync and configuration together.

Every mutation is written to the storage directory first and then recorded
with exactly one syncer commit. A failing commit is logged and never undoes
the local change.
"""

import logging
import uuid
from collections.abc import Callable
from datetime import datetime

from busy.config import BusyConfig
from busy.core.period import Period
from busy.core.types import Project, Tag, Task, local_now
from busy.errors import ExternalCommandError, InvalidStateError, NotFoundError
from busy.storage import JsonStorage
from busy.sync import Syncer, create_syncer

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]


def format_task_commit(verb: str, task: Task) -> str:
    """Build the commit message for a task change."""
    return f"{verb} task title: {task.title} id: {task.id} project: {task.project_id}"


class Busy:
    """Time tracker repository.

    One instance is created per command and handed to the command handler.
    The whole store is loaded on construction and kept in memory.

    Example:
        busy = Busy(load_config())
        busy.start("busy", "write docs", ["doc"])
        busy.pause()
        busy.resume()
        busy.stop()
    """

    def __init__(
        self,
        config: BusyConfig,
        storage: JsonStorage | None = None,
        syncer: Syncer | None = None,
        clock: Clock | None = None,
    ) -> None:
        """Open the storage directory and the syncer.

        Args:
            config: Effective configuration.
            storage: Storage override (defaults to JSON storage in config.storage_dir).
            syncer: Syncer override (defaults to the one described by config.syncer).
            clock: Source of the current time.
        """
        self.config = config
        self._clock = clock or local_now

        logger.debug(f"busy data folder: {config.storage_dir}")
        # The git syncer pulls into a fresh storage directory; load after it.
        self.syncer = syncer or create_syncer(config.syncer, config.storage_dir)
        self.storage = storage or JsonStorage(config.storage_dir)

    def now(self) -> datetime:
        return self._clock()

    # -- sync -----------------------------------------------------------

    def _commit(self, message: str) -> None:
        try:
            self.syncer.commit(message)
        except ExternalCommandError as e:
            logger.warning(f"Commit failed, local changes are kept. msg: {message}: {e}")

    def sync(self) -> str:
        """Pull and push, then reload the storage from disk.

        Raises:
            ExternalCommandError: If git fails. Storage isn't reloaded then.
        """
        output = self.syncer.sync()
        self.storage.reload()
        return output

    def push_force(self) -> str:
        return self.syncer.push_force()

    def pull_force(self) -> str:
        output = self.syncer.pull_force()
        self.storage.reload()
        return output

    # -- ids ------------------------------------------------------------

    def ids(self) -> list[uuid.UUID]:
        return self.storage.ids()

    def shorten_id(self, item_id: uuid.UUID) -> str:
        return self.storage.shorten_id(item_id)

    def resolve_id(self, short_id: str) -> uuid.UUID:
        return self.storage.resolve_id(short_id)

    # -- projects & tags ------------------------------------------------

    def projects(self) -> list[Project]:
        return self.storage.projects()

    def project_by_id(self, project_id: uuid.UUID) -> Project | None:
        return self.storage.project_by_id(project_id)

    def project_by_name(self, name: str) -> Project | None:
        return self.storage.find_project_by_name(name)

    def upsert_project(self, name: str) -> Project:
        """Find a project by exact name or create it."""
        project = self.storage.find_project_by_name(name)
        if project is not None:
            return project

        project = Project(name=name)
        self.storage.add_project(project)
        logger.info(f"Created project '{name}' ({project.id})")
        return project

    def tags(self) -> list[Tag]:
        return self.storage.tags()

    def tag_by_id(self, tag_id: uuid.UUID) -> Tag | None:
        return self.storage.tag_by_id(tag_id)

    def tag_by_name(self, name: str) -> Tag | None:
        return self.storage.find_tag_by_name(name)

    def find_tags(self, tag_ids: list[uuid.UUID]) -> list[Tag]:
        return self.storage.find_tags(tag_ids)

    def find_tags_by_names(self, names: list[str]) -> list[Tag]:
        return self.storage.find_tags_by_names(names)

    def upsert_tags(self, names: list[str]) -> list[uuid.UUID]:
        """Find tags by exact name, creating the missing ones.

        Returns:
            Tag ids in the order of ``names``.
        """
        tag_ids = []
        for name in names:
            tag = self.storage.find_tag_by_name(name)
            if tag is None:
                tag = Tag(name=name)
                self.storage.add_tag(tag)
                logger.info(f"Created tag '{name}' ({tag.id})")
            if tag.id not in tag_ids:
                tag_ids.append(tag.id)
        return tag_ids

    def replace_project(self, project: Project) -> None:
        self.storage.replace_project(project)
        self._commit(f"replace project, name: {project.name} id: {project.id}")

    def replace_tag(self, tag: Tag) -> None:
        self.storage.replace_tag(tag)
        self._commit(f"replace tag, name: {tag.name} id: {tag.id}")

    def replace_tags(self, tags: list[Tag]) -> None:
        self.storage.replace_tags(tags)
        self._commit("Edit all tags")

    # -- task queries ---------------------------------------------------

    def all_tasks(self) -> list[Task]:
        return self.storage.tasks()

    def task_by_id(self, task_id: uuid.UUID) -> Task | None:
        return self.storage.task_by_id(task_id)

    def active_task(self) -> Task | None:
        """The running or paused task, if any."""
        for task in self.storage.tasks():
            if task.is_active:
                return task
        return None

    def tasks(
        self,
        period: Period,
        project_ids: set[uuid.UUID] | None = None,
        tag_ids: set[uuid.UUID] | None = None,
    ) -> list[Task]:
        """Tasks inside ``period``, optionally filtered.

        A task is inside the period when its start and (if set) its stop fall
        within it.

        Args:
            period: Reporting window.
            project_ids: Keep only tasks of these projects.
            tag_ids: Keep only tasks carrying at least one of these tags.

        Returns:
            Matching tasks ordered by start time.
        """
        found = []
        for task in self.storage.tasks():
            if not period.contains(task.start_time):
                continue
            if task.stop_time is not None and not period.contains(task.stop_time):
                continue
            if project_ids and task.project_id not in project_ids:
                continue
            if tag_ids and not tag_ids.intersection(task.tags):
                continue
            found.append(task)
        return found

    # -- task lifecycle -------------------------------------------------

    def _require_active(self, action: str) -> Task:
        task = self.active_task()
        if task is None:
            raise InvalidStateError(f"there is no active task to {action}")
        return task

    def start(
        self,
        project_name: str,
        title: str,
        tags: list[str],
        start_time: datetime | None = None,
    ) -> Task:
        """Start a new running task.

        Raises:
            InvalidStateError: If a task is already running or paused.
        """
        if self.active_task() is not None:
            raise InvalidStateError("active task already exists, stop it firstly")

        project = self.upsert_project(project_name)
        task = Task.new(project.id, title, self.upsert_tags(tags), start_time=start_time or self.now())
        self.storage.add_task(task)

        self._commit(format_task_commit("started", task))
        return task

    def add(
        self,
        project_name: str,
        title: str,
        tags: list[str],
        start_time: datetime,
        finish_time: datetime,
    ) -> Task:
        """Record already finished work. Doesn't check for an active task.

        Raises:
            ValueError: If ``finish_time`` is before ``start_time``.
        """
        if finish_time < start_time:
            raise ValueError("finish time is before start time")

        project = self.upsert_project(project_name)
        task = Task.new(
            project.id, title, self.upsert_tags(tags), start_time=start_time, stop_time=finish_time
        )
        self.storage.add_task(task)

        self._commit(format_task_commit("added", task))
        return task

    def stop(self) -> Task:
        """Stop the running or paused task.

        Raises:
            InvalidStateError: If no task is active.
        """
        task = self._require_active("stop")
        task.stop(self.now())
        self.storage.replace_task(task)

        self._commit(format_task_commit("stopped", task))
        return task

    def pause(self) -> Task:
        """Pause the running task.

        Raises:
            InvalidStateError: If no task is active.
        """
        task = self._require_active("pause")
        task.pause(self.now())
        self.storage.replace_task(task)

        self._commit(format_task_commit("paused", task))
        return task

    def resume(self) -> Task:
        """Resume the paused task with a fresh interval.

        Raises:
            InvalidStateError: If no task is paused.
        """
        task = self.active_task()
        if task is None or task.last_interval.is_open or not task.is_paused:
            raise InvalidStateError("there is no paused task to continue")

        task.resume(self.now())
        self.storage.replace_task(task)

        self._commit(format_task_commit("resumed", task))
        return task

    def continue_task(self, task_id: uuid.UUID) -> Task:
        """Start a new task cloned from an existing one.

        The new task gets a fresh id and a single open interval; the
        existing task is left as it is.

        Raises:
            InvalidStateError: If a task is already active.
            NotFoundError: If ``task_id`` is unknown.
        """
        if self.active_task() is not None:
            raise InvalidStateError("found active task, please stop it firstly")

        existing = self.storage.task_by_id(task_id)
        if existing is None:
            raise NotFoundError(f"task with id: {task_id} not found")

        task = Task.new(existing.project_id, existing.title, existing.tags, start_time=self.now())
        self.storage.add_task(task)

        self._commit(format_task_commit("continue", task))
        return task

    def remove_task(self, task_id: uuid.UUID) -> Task:
        """Delete a task.

        Returns:
            The removed task.

        Raises:
            NotFoundError: If ``task_id`` is unknown.
        """
        task = self.storage.task_by_id(task_id)
        if task is None:
            raise NotFoundError(f"task with id: {task_id} not found")

        self.storage.remove_task(task_id)
        self._commit(format_task_commit("removed", task))
        return task

    def replace_task(self, task: Task) -> None:
        """Store ``task`` over the task with the same id.

        The task isn't re-validated; callers feeding edited data must check
        it with Task.check_intervals first.
        """
        self.storage.replace_task(task)
        self._commit(format_task_commit("replace", task))

    def replace_tasks(self, tasks: list[Task]) -> None:
        self.storage.replace_tasks(tasks)
        self._commit("Edit all tasks")
