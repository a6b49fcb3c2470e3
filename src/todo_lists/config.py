"""Configuration management for the todo list command line."""

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

import yaml

from .exceptions import ListNotWritableError
from .storage import atomic_write, validate_list_name


logger = logging.getLogger(__name__)

DEFAULT_DATA_DIR = "~/.todo"
CONFIG_FILENAME = "config.yaml"


@dataclass
class ConfigModel:
    """Settings consumed by the command line layer."""

    data_dir: str = DEFAULT_DATA_DIR
    default_list: str = "default"
    export_dir: str = "."
    date_format: str = "%Y-%m-%d"

    def __post_init__(self):
        """Expand user paths."""
        self.data_dir = os.path.expanduser(self.data_dir)
        self.export_dir = os.path.expanduser(self.export_dir)

    def to_yaml(self) -> str:
        """Serialize config to YAML."""
        data = {
            "data_dir": self.data_dir,
            "default_list": self.default_list,
            "export_dir": self.export_dir,
            "date_format": self.date_format,
        }
        return yaml.dump(data, default_flow_style=False)

    @classmethod
    def from_yaml(cls, yaml_str: str) -> "ConfigModel":
        """Deserialize config from YAML, ignoring unknown keys."""
        data = yaml.safe_load(yaml_str) or {}
        if not isinstance(data, dict):
            raise ValueError("config file must contain a mapping")
        known = {name: data[name] for name in cls.__dataclass_fields__ if name in data}
        return cls(**known)


def default_config_path() -> Path:
    return Path(os.path.expanduser(DEFAULT_DATA_DIR)) / CONFIG_FILENAME


def load_config(config_path: Optional[Path] = None) -> ConfigModel:
    """Load configuration from file, falling back to defaults."""
    config_path = Path(config_path) if config_path else default_config_path()

    if not config_path.exists():
        logger.debug(f"No config at {config_path}; using defaults")
        return ConfigModel()

    try:
        with open(config_path, "r", encoding="utf-8") as f:
            config = ConfigModel.from_yaml(f.read())
        logger.debug(f"Loaded configuration from {config_path}")
        return config
    except (OSError, ValueError, TypeError, yaml.YAMLError) as e:
        logger.warning(f"Failed to load config from {config_path}: {e}. Using defaults.")
        return ConfigModel()


def save_config(config: ConfigModel, config_path: Optional[Path] = None) -> Path:
    """Save configuration to file atomically."""
    config_path = Path(config_path) if config_path else default_config_path()
    try:
        config_path.parent.mkdir(parents=True, exist_ok=True)
        atomic_write(config_path, config.to_yaml())
    except OSError as e:
        raise ListNotWritableError(config_path, e) from e
    logger.debug(f"Configuration saved to {config_path}")
    return config_path


def resolve_list_name(explicit: Optional[str], config: ConfigModel) -> str:
    """The explicitly requested list, or the configured default."""
    return explicit or config.default_list or "default"


def set_default_list(name: str, config: ConfigModel, config_path: Optional[Path] = None) -> ConfigModel:
    """Persist ``name`` as the default list."""
    config.default_list = validate_list_name(name)
    save_config(config, config_path)
    return config
