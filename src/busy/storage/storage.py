"""Storage directory holding the task, project and tag collections."""

import logging
import uuid
from pathlib import Path

from busy.core.types import Project, Tag, Task
from busy.errors import AmbiguousIdError, NotFoundError
from busy.storage.collection import JsonCollection

logger = logging.getLogger(__name__)

TASKS_FILE = "tasks.json"
PROJECTS_FILE = "projects.json"
TAGS_FILE = "tags.json"


def shorten_id(item_id: uuid.UUID) -> str:
    """Render an id as ``xxxx..yyyy`` from its 32-character hex form."""
    hex_id = item_id.hex
    return f"{hex_id[:4]}..{hex_id[-4:]}"


class JsonStorage:
    """JSON file storage for tasks, projects and tags.

    Every collection is loaded once on construction and rewritten in full
    on each mutation.

    Example:
        storage = JsonStorage("~/.busy")
        storage.add_project(Project(name="home"))
        storage.resolve_id("1a2b..9f0e")
    """

    def __init__(self, storage_dir: str | Path) -> None:
        """Open (and create if needed) the storage directory.

        Args:
            storage_dir: Directory holding the JSON files.
        """
        self._dir = Path(storage_dir).expanduser()
        self._dir.mkdir(parents=True, exist_ok=True)

        self._tasks = JsonCollection(self._dir / TASKS_FILE, Task)
        self._projects = JsonCollection(self._dir / PROJECTS_FILE, Project)
        self._tags = JsonCollection(self._dir / TAGS_FILE, Tag)

        logger.debug(
            f"Opened storage {self._dir}: {len(self._tasks)} tasks, "
            f"{len(self._projects)} projects, {len(self._tags)} tags"
        )

    @property
    def storage_dir(self) -> Path:
        return self._dir

    @property
    def tasks_path(self) -> Path:
        return self._tasks.path

    @property
    def projects_path(self) -> Path:
        return self._projects.path

    @property
    def tags_path(self) -> Path:
        return self._tags.path

    def reload(self) -> None:
        """Re-read every collection from disk."""
        self._tasks.reload()
        self._projects.reload()
        self._tags.reload()

    # -- ids ------------------------------------------------------------

    def ids(self) -> list[uuid.UUID]:
        """All ids of all collections: tasks, then projects, then tags."""
        return self._tasks.ids() + self._projects.ids() + self._tags.ids()

    def shorten_id(self, item_id: uuid.UUID) -> str:
        return shorten_id(item_id)

    def resolve_id(self, short_id: str) -> uuid.UUID:
        """Resolve a short or full id to a stored id.

        Args:
            short_id: ``xxxx..yyyy`` short form, or a full UUID.

        Returns:
            The matching id.

        Raises:
            NotFoundError: If nothing matches.
            AmbiguousIdError: If the short form matches several ids.
        """
        short_id = short_id.strip()
        ids = self.ids()

        if ".." not in short_id:
            try:
                full_id = uuid.UUID(short_id)
            except ValueError:
                raise NotFoundError(f"id by short name: {short_id} not found") from None
            if full_id in ids:
                return full_id
            raise NotFoundError(f"id: {short_id} not found")

        matches = [item_id for item_id in ids if shorten_id(item_id) == short_id]
        if not matches:
            raise NotFoundError(f"id by short name: {short_id} not found")
        if len(matches) > 1:
            raise AmbiguousIdError(short_id, [str(item_id) for item_id in matches])
        return matches[0]

    # -- tasks ----------------------------------------------------------

    def tasks(self) -> list[Task]:
        """All tasks ordered by start time."""
        return sorted(self._tasks.all(), key=lambda task: task.start_time)

    def task_by_id(self, task_id: uuid.UUID) -> Task | None:
        return self._tasks.get(task_id)

    def add_task(self, task: Task) -> None:
        self._tasks.add(task)

    def remove_task(self, task_id: uuid.UUID) -> None:
        self._tasks.remove(task_id)

    def replace_task(self, task: Task) -> None:
        self._tasks.replace(task)

    def replace_tasks(self, tasks: list[Task]) -> None:
        self._tasks.replace_all(tasks)

    # -- projects -------------------------------------------------------

    def projects(self) -> list[Project]:
        return self._projects.all()

    def project_by_id(self, project_id: uuid.UUID) -> Project | None:
        return self._projects.get(project_id)

    def find_project_by_name(self, name: str) -> Project | None:
        for project in self._projects.all():
            if project.name == name:
                return project
        return None

    def add_project(self, project: Project) -> None:
        self._projects.add(project)

    def replace_project(self, project: Project) -> None:
        self._projects.replace(project)

    # -- tags -----------------------------------------------------------

    def tags(self) -> list[Tag]:
        return self._tags.all()

    def tag_by_id(self, tag_id: uuid.UUID) -> Tag | None:
        return self._tags.get(tag_id)

    def find_tag_by_name(self, name: str) -> Tag | None:
        for tag in self._tags.all():
            if tag.name == name:
                return tag
        return None

    def find_tags_by_names(self, names: list[str]) -> list[Tag]:
        """Tags with the given names, silently skipping unknown names."""
        found = []
        for name in names:
            tag = self.find_tag_by_name(name)
            if tag is not None:
                found.append(tag)
        return found

    def find_tags(self, tag_ids: list[uuid.UUID]) -> list[Tag]:
        """Tags with the given ids, silently skipping unknown ids."""
        found = []
        for tag_id in tag_ids:
            tag = self._tags.get(tag_id)
            if tag is not None:
                found.append(tag)
        return found

    def add_tag(self, tag: Tag) -> None:
        self._tags.add(tag)

    def replace_tag(self, tag: Tag) -> None:
        self._tags.replace(tag)

    def replace_tags(self, tags: list[Tag]) -> None:
        self._tags.replace_all(tags)
