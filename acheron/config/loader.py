"""Configuration loading utilities."""

import json
import os
import re
from pathlib import Path
from typing import Any

from loguru import logger
from pydantic import ValidationError

from acheron.config.schema import Config
from acheron.errors import ConfigUnreadable


def get_config_path() -> Path:
    """Get the configuration file path (``ACHERON_CONFIG`` overrides)."""
    override = os.environ.get("ACHERON_CONFIG")
    if override:
        return Path(override).expanduser()
    return Path.home() / ".acheron" / "config.json"


def get_data_dir(config: Config | None = None) -> Path:
    """Get the data directory, creating it if needed."""
    path = config.data_path if config else Path.home() / ".acheron" / "data"
    path.mkdir(parents=True, exist_ok=True)
    return path


def camel_to_snake(name: str) -> str:
    return re.sub(r"(?<!^)(?=[A-Z])", "_", name).lower()


def snake_to_camel(name: str) -> str:
    first, *rest = name.split("_")
    return first + "".join(part.capitalize() for part in rest)


def convert_keys(data: Any, convert) -> Any:
    """Recursively rename dictionary keys with ``convert``."""
    if isinstance(data, dict):
        return {convert(k): convert_keys(v, convert) for k, v in data.items()}
    if isinstance(data, list):
        return [convert_keys(item, convert) for item in data]
    return data


def load_config(config_path: Path | None = None, strict: bool = False) -> Config:
    """
    Load configuration from file.

    A missing file is created with defaults. An unreadable file raises
    ConfigUnreadable when ``strict`` is set, otherwise defaults are returned.

    Args:
        config_path: Optional path to config file. Uses default if not provided.
        strict: Raise instead of falling back to defaults.

    Returns:
        Loaded configuration object.
    """
    path = config_path or get_config_path()

    if not path.exists():
        logger.warning(f"{path} not found, creating default config")
        config = Config()
        save_config(config, path)
        return config

    try:
        data = json.loads(path.read_text(encoding="utf-8"))
        if not isinstance(data, dict):
            raise TypeError("top-level value must be an object")
        return Config(**convert_keys(data, camel_to_snake))
    except (OSError, json.JSONDecodeError, ValidationError, TypeError) as e:
        if strict:
            raise ConfigUnreadable(str(path), str(e)) from e
        logger.warning(f"Failed to load config from {path}: {e}")
        logger.warning("Using default configuration.")
        return Config()


def save_config(config: Config, config_path: Path | None = None) -> None:
    """
    Save configuration to file.

    The file is replaced in one step so a concurrent reader never sees a
    half-written document.
    """
    path = config_path or get_config_path()
    path.parent.mkdir(parents=True, exist_ok=True)

    data = convert_keys(config.model_dump(), snake_to_camel)
    tmp_path = path.with_name(path.name + ".tmp")
    tmp_path.write_text(json.dumps(data, indent=2, ensure_ascii=False), encoding="utf-8")
    tmp_path.replace(path)


class ConfigSource:
    """
    Configuration re-read from disk on every access.

    Live edits to the file (by hand or by an admin command) apply to the
    next inbound event without a restart. When the file becomes unreadable
    the last configuration that loaded cleanly is served instead.
    """

    def __init__(self, path: Path | None = None):
        self.path = path or get_config_path()
        self._last_good: Config | None = None

    def load(self) -> Config:
        """Load a fresh snapshot, falling back to the last good one."""
        try:
            config = load_config(self.path, strict=True)
        except ConfigUnreadable as e:
            logger.warning(f"{e}; using last known configuration")
            return self._last_good or Config()
        self._last_good = config
        return config

    def update(self, **changes: Any) -> Config:
        """
        Apply field changes and persist them immediately.

        Read-modify-write against the file; last writer wins.
        """
        current = self.load()
        updated = Config(**{**current.model_dump(), **changes})
        save_config(updated, self.path)
        self._last_good = updated
        logger.info(f"Config updated: {', '.join(sorted(changes))}")
        return updated
