"""JSON file persistence for a single entity collection.

Each collection is held fully in memory and rewritten as one pretty-printed
JSON array on every mutation. There is no append log and no locking.
"""

import json
import logging
import uuid
from pathlib import Path
from typing import Generic, TypeVar

from pydantic import BaseModel, TypeAdapter, ValidationError

from busy.errors import NotFoundError

logger = logging.getLogger(__name__)

T = TypeVar("T", bound=BaseModel)


class JsonCollection(Generic[T]):
    """In-memory collection of models backed by a JSON array file.

    Items are keyed by their ``id`` attribute. Callers always get copies,
    so changing a returned item never touches the stored one.

    Example:
        projects = JsonCollection("/path/to/projects.json", Project)
        projects.add(Project(name="home"))
        projects.all()
    """

    def __init__(self, path: str | Path, item_type: type[T]) -> None:
        """Open the collection and load its file.

        Args:
            path: Path to the JSON array file.
            item_type: Model class of the stored items.
        """
        self._path = Path(path)
        self._item_type = item_type
        self._adapter = TypeAdapter(list[item_type])
        self._items: list[T] = []

        self.reload()

    @property
    def path(self) -> Path:
        """Get the storage file path."""
        return self._path

    def reload(self) -> None:
        """Replace the in-memory buffer with the file contents.

        A missing, empty or unparseable file is loaded as an empty collection.
        """
        self._items = self._read_items()
        logger.debug(f"Restored {len(self._items)} items from {self._path}")

    def _read_items(self) -> list[T]:
        if not self._path.exists():
            return []

        content = self._path.read_bytes()
        if not content.strip():
            return []

        try:
            return self._adapter.validate_json(content)
        except ValidationError as e:
            logger.warning(
                f"Can't parse {self._path}, treating it as an empty collection: {e}"
            )
            return []

    def _flush(self) -> None:
        """Truncate the file and write the whole buffer."""
        self._path.parent.mkdir(parents=True, exist_ok=True)
        data = self._adapter.dump_python(self._items, mode="json")
        self._path.write_text(json.dumps(data, indent=2), encoding="utf-8")

    def _position(self, item_id: uuid.UUID) -> int | None:
        for index, item in enumerate(self._items):
            if item.id == item_id:
                return index
        return None

    def add(self, item: T) -> None:
        """Append an item and flush. No uniqueness check is made."""
        self._items.append(item.model_copy(deep=True))
        self._flush()

    def remove(self, item_id: uuid.UUID) -> None:
        """Remove the item with the given id and flush.

        Raises:
            NotFoundError: If no item has that id. The file isn't touched.
        """
        position = self._position(item_id)
        if position is None:
            raise NotFoundError(f"{self._item_type.__name__.lower()} with id: {item_id} not found")

        del self._items[position]
        self._flush()

    def replace(self, item: T) -> None:
        """Overwrite the stored item that has ``item.id`` and flush.

        Raises:
            NotFoundError: If no item has that id. The file isn't touched.
        """
        position = self._position(item.id)
        if position is None:
            raise NotFoundError(f"{self._item_type.__name__.lower()} with id: {item.id} not found")

        self._items[position] = item.model_copy(deep=True)
        self._flush()

    def replace_all(self, items: list[T]) -> None:
        """Overwrite the whole collection and flush."""
        self._items = [item.model_copy(deep=True) for item in items]
        self._flush()

    def all(self) -> list[T]:
        """Snapshot of the stored items."""
        return [item.model_copy(deep=True) for item in self._items]

    def get(self, item_id: uuid.UUID) -> T | None:
        position = self._position(item_id)
        if position is None:
            return None
        return self._items[position].model_copy(deep=True)

    def ids(self) -> list[uuid.UUID]:
        return [item.id for item in self._items]

    def __len__(self) -> int:
        return len(self._items)
