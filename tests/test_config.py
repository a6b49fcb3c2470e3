"""Tests for configuration loading and default list resolution."""

import os
import stat
from pathlib import Path

import pytest

from todo_lists.config import (
    ConfigModel,
    load_config,
    resolve_list_name,
    save_config,
    set_default_list,
)
from todo_lists.exceptions import InvalidListNameError, ListNotWritableError


class TestConfigModel:
    """Test the configuration model."""

    def test_defaults(self):
        config = ConfigModel()
        assert config.default_list == "default"
        assert config.data_dir == str(Path("~/.todo").expanduser())

    def test_yaml_round_trip(self, tmp_path):
        config = ConfigModel(data_dir=str(tmp_path), default_list="work", export_dir=str(tmp_path / "out"))
        restored = ConfigModel.from_yaml(config.to_yaml())
        assert restored == config

    def test_from_yaml_ignores_unknown_keys(self):
        config = ConfigModel.from_yaml("default_list: home\ntheme: dark\n")
        assert config.default_list == "home"

    def test_from_yaml_empty(self):
        assert ConfigModel.from_yaml("") == ConfigModel()


class TestLoadSave:
    """Test reading and writing the config file."""

    def test_missing_file_gives_defaults(self, tmp_path):
        assert load_config(tmp_path / "config.yaml") == ConfigModel()

    def test_save_then_load(self, tmp_path):
        path = tmp_path / "config.yaml"
        save_config(ConfigModel(data_dir=str(tmp_path), default_list="errands"), path)

        loaded = load_config(path)
        assert loaded.default_list == "errands"
        assert loaded.data_dir == str(tmp_path)

    def test_unreadable_yaml_falls_back(self, tmp_path, caplog):
        path = tmp_path / "config.yaml"
        path.write_text("- just\n- a list\n")
        assert load_config(path) == ConfigModel()
        assert "Failed to load config" in caplog.text


class TestDefaultList:
    """Test default list resolution."""

    def test_explicit_name_wins(self):
        assert resolve_list_name("work", ConfigModel(default_list="home")) == "work"

    def test_falls_back_to_config(self):
        assert resolve_list_name(None, ConfigModel(default_list="home")) == "home"

    def test_set_default_list_persists(self, tmp_path):
        path = tmp_path / "config.yaml"
        set_default_list("groceries", ConfigModel(data_dir=str(tmp_path)), path)
        assert load_config(path).default_list == "groceries"

    def test_set_default_list_validates(self, tmp_path):
        with pytest.raises(InvalidListNameError):
            set_default_list("../etc", ConfigModel(data_dir=str(tmp_path)), tmp_path / "config.yaml")

    def test_save_config_unwritable_location(self, tmp_path):
        blocker = tmp_path / "blocker"
        blocker.write_text("not a directory")
        with pytest.raises(ListNotWritableError):
            save_config(ConfigModel(), blocker / "config.yaml")

    def test_save_config_keeps_file_mode(self, tmp_path):
        path = tmp_path / "config.yaml"
        save_config(ConfigModel(default_list="home"), path)
        os.chmod(path, 0o644)

        save_config(ConfigModel(default_list="work"), path)

        assert stat.S_IMODE(path.stat().st_mode) == 0o644
