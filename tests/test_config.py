"""Tests for configuration loading."""

from pathlib import Path

import pytest
import yaml

from busy.config import (
    DEFAULT_CONFIG,
    BusyConfig,
    Settings,
    load_config,
    read_config_file,
    save_default_config,
)
from busy.errors import SerializationError
from busy.sync.config import EmptySyncerConfig, GitSyncerConfig

ENV_VARS = [
    "BUSY_CONFIG",
    "BUSY_STORAGE_DIR",
    "BUSY_REMOTE",
    "BUSY_REMOTE_BRANCH",
    "BUSY_KEY_FILE",
    "BUSY_EDITOR",
    "EDITOR",
    "VISUAL",
]


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def config_path(tmp_path) -> Path:
    return tmp_path / "busy.yaml"


class TestDefaultConfig:
    """Tests for bootstrapping the config file."""

    def test_creates_file_once(self, config_path):
        """The default file is written when missing."""
        assert save_default_config(config_path) is True
        assert save_default_config(config_path) is False

    def test_default_file_is_valid(self, config_path):
        """The written default file loads cleanly."""
        save_default_config(config_path)

        content = config_path.read_text()
        assert content.startswith("# busy")
        assert yaml.safe_load(content) == DEFAULT_CONFIG

    def test_existing_file_is_not_overwritten(self, config_path):
        """An existing file is left alone."""
        config_path.write_text("storage_dir: /data/busy\n")
        save_default_config(config_path)

        assert config_path.read_text() == "storage_dir: /data/busy\n"

    def test_default_model(self):
        """The model defaults to no syncer and nvim."""
        config = BusyConfig()

        assert isinstance(config.syncer, EmptySyncerConfig)
        assert config.editor == "nvim"


class TestReadConfigFile:
    """Tests for read_config_file."""

    def test_git_syncer(self, config_path):
        """A git section is read into a git syncer config."""
        config_path.write_text(
            "storage_dir: /data/busy\n"
            "syncer:\n"
            "  kind: git\n"
            "  remote: git@example.com:me/busy-db.git\n"
            "  key_file: /keys/id_busy\n"
        )

        config = read_config_file(config_path)

        assert config.storage_dir == Path("/data/busy")
        assert isinstance(config.syncer, GitSyncerConfig)
        assert config.syncer.remote == "git@example.com:me/busy-db.git"
        assert config.syncer.branch == "main"
        assert config.syncer.key_file == Path("/keys/id_busy")

    def test_empty_file_uses_defaults(self, config_path):
        """An empty file gives the defaults."""
        config_path.write_text("")
        assert read_config_file(config_path) == BusyConfig()

    def test_invalid_yaml(self, config_path):
        """Broken YAML is a configuration error."""
        config_path.write_text("syncer: [unclosed\n")

        with pytest.raises(SerializationError):
            read_config_file(config_path)

    def test_unknown_syncer_kind(self, config_path):
        """An unknown syncer kind is a configuration error."""
        config_path.write_text("syncer:\n  kind: svn\n")

        with pytest.raises(SerializationError):
            read_config_file(config_path)

    def test_git_syncer_requires_remote(self, config_path):
        """A git syncer without a remote is a configuration error."""
        config_path.write_text("syncer:\n  kind: git\n")

        with pytest.raises(SerializationError):
            read_config_file(config_path)


class TestLoadConfig:
    """Tests for load_config and environment overrides."""

    def test_bootstraps_and_expands_home(self, config_path):
        """The first load writes the file and expands the home directory."""
        config = load_config(Settings(config=config_path))

        assert config_path.exists()
        assert config.storage_dir == Path("~/.busy").expanduser()
        assert isinstance(config.syncer, EmptySyncerConfig)

    def test_storage_dir_override(self, config_path, tmp_path, monkeypatch):
        """BUSY_STORAGE_DIR overrides the storage directory."""
        monkeypatch.setenv("BUSY_STORAGE_DIR", str(tmp_path / "elsewhere"))

        config = load_config(Settings(config=config_path))

        assert config.storage_dir == tmp_path / "elsewhere"

    def test_config_path_from_env(self, config_path, monkeypatch):
        """The config file path can come from the environment."""
        monkeypatch.setenv("BUSY_CONFIG", str(config_path))

        load_config()

        assert config_path.exists()

    def test_remote_enables_git_syncer(self, config_path, monkeypatch):
        """A remote from the environment turns on git sync."""
        monkeypatch.setenv("BUSY_REMOTE", "git@example.com:me/busy-db.git")
        monkeypatch.setenv("BUSY_REMOTE_BRANCH", "data")

        config = load_config(Settings(config=config_path))

        assert isinstance(config.syncer, GitSyncerConfig)
        assert config.syncer.branch == "data"
        assert config.syncer.key_file is None

    def test_editor_from_env(self, config_path, monkeypatch):
        """The editor can come from the environment."""
        monkeypatch.setenv("EDITOR", "vim")
        assert load_config(Settings(config=config_path)).editor == "vim"

        monkeypatch.setenv("BUSY_EDITOR", "code --wait")
        assert load_config(Settings(config=config_path)).editor == "code --wait"

    def test_editor_defaults_to_nvim(self, config_path):
        """Without overrides the editor is nvim."""
        assert load_config(Settings(config=config_path)).editor == "nvim"
