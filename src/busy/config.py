"""Configuration management for busy.

Settings come from two places: environment variables (``BUSY_*``, plus
``EDITOR``/``VISUAL``) and a YAML config file at ``~/.busy.yaml``. The file
is bootstrapped with defaults on first run and never overwritten afterwards.
Environment variables win over the file.
"""

import logging
from pathlib import Path
from typing import Any

import yaml
from pydantic import AliasChoices, BaseModel, Field, ValidationError
from pydantic_settings import BaseSettings, SettingsConfigDict

from busy.errors import SerializationError
from busy.sync.config import EmptySyncerConfig, GitSyncerConfig, SyncerConfig

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = Path.home() / ".busy.yaml"
DEFAULT_STORAGE_DIR = "~/.busy"
DEFAULT_EDITOR = "nvim"

_YAML_HEADER = """\
# busy - time tracker configuration
#
# storage_dir: directory holding tasks.json, projects.json and tags.json
# syncer.kind: "empty" (no sync) or "git", which also takes:
#   remote: git@example.com:me/busy-db.git
#   remote_branch: main
#   key_file: ~/.ssh/id_busy

"""

DEFAULT_CONFIG: dict[str, Any] = {
    "storage_dir": DEFAULT_STORAGE_DIR,
    "syncer": {"kind": "empty"},
}


class Settings(BaseSettings):
    """Settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="BUSY_",
        extra="ignore",
        populate_by_name=True,
    )

    config: Path = Field(
        default=DEFAULT_CONFIG_PATH,
        description="Path of the YAML config file",
    )
    storage_dir: Path | None = Field(
        default=None,
        description="Storage directory, overrides the config file",
    )
    remote: str | None = Field(
        default=None,
        description="Git remote URL, enables git sync and overrides the config file",
    )
    remote_branch: str | None = Field(
        default=None,
        description="Branch used with BUSY_REMOTE",
    )
    key_file: Path | None = Field(
        default=None,
        description="SSH key used with BUSY_REMOTE",
    )
    editor: str | None = Field(
        default=None,
        validation_alias=AliasChoices("BUSY_EDITOR", "EDITOR", "VISUAL"),
        description="Editor command used by `busy edit`",
    )


class BusyConfig(BaseModel):
    """Contents of the config file after environment overrides.

    Attributes:
        storage_dir: Directory holding the JSON files.
        syncer: Tagged sync configuration.
        editor: Editor command for bulk edits.
    """

    storage_dir: Path = Field(default=Path(DEFAULT_STORAGE_DIR), description="Storage directory")
    syncer: SyncerConfig = Field(default_factory=EmptySyncerConfig, description="Sync configuration")
    editor: str = Field(default=DEFAULT_EDITOR, description="Editor command")


def save_default_config(path: Path) -> bool:
    """Write the default config file if it doesn't exist yet.

    Returns:
        True if the file was created.
    """
    if path.exists():
        return False

    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w", encoding="utf-8") as f:
        f.write(_YAML_HEADER)
        yaml.dump(DEFAULT_CONFIG, f, default_flow_style=False, sort_keys=False)
    logger.info(f"Created config file: {path}")
    return True


def read_config_file(path: Path) -> BusyConfig:
    """Parse and validate a config file.

    Raises:
        SerializationError: If the file isn't valid YAML or doesn't match the schema.
    """
    try:
        with open(path, encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
    except yaml.YAMLError as e:
        raise SerializationError(f"Can't parse config file {path}: {e}") from e

    try:
        return BusyConfig.model_validate(data)
    except ValidationError as e:
        raise SerializationError(f"Invalid config file {path}: {e}") from e


def load_config(settings: Settings | None = None) -> BusyConfig:
    """Load the effective configuration.

    Args:
        settings: Environment settings (read from the environment if omitted).

    Returns:
        Config with ``~`` expanded and environment overrides applied.
    """
    settings = settings or Settings()
    path = settings.config.expanduser()

    save_default_config(path)
    config = read_config_file(path)

    if settings.storage_dir is not None:
        config.storage_dir = settings.storage_dir
    config.storage_dir = config.storage_dir.expanduser()

    if settings.remote:
        config.syncer = GitSyncerConfig(
            remote=settings.remote,
            remote_branch=settings.remote_branch,
            key_file=settings.key_file,
        )
    if isinstance(config.syncer, GitSyncerConfig) and config.syncer.key_file is not None:
        config.syncer.key_file = config.syncer.key_file.expanduser()

    if settings.editor:
        config.editor = settings.editor

    logger.debug(f"Loaded config from {path}: storage_dir={config.storage_dir} syncer={config.syncer.kind}")
    return config
