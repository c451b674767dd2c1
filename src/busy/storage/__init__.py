"""File-backed storage for tasks, projects and tags.

Each entity type lives in its own pretty-printed JSON array file inside the
storage directory. The whole directory is what the git syncer backs up.

Example:
    from busy.storage import JsonStorage

    storage = JsonStorage("~/.busy")
    for task in storage.tasks():
        print(storage.shorten_id(task.id), task.title)
"""

from busy.storage.collection import JsonCollection
from busy.storage.storage import (
    PROJECTS_FILE,
    TAGS_FILE,
    TASKS_FILE,
    JsonStorage,
    shorten_id,
)

__all__ = [
    "JsonCollection",
    "JsonStorage",
    "shorten_id",
    "TASKS_FILE",
    "PROJECTS_FILE",
    "TAGS_FILE",
]
