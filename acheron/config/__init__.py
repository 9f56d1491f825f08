"""Configuration module for Acheron."""

from acheron.config.schema import Config, MOODS
from acheron.config.loader import (
    ConfigSource,
    get_config_path,
    get_data_dir,
    load_config,
    save_config,
)

__all__ = [
    "Config",
    "MOODS",
    "ConfigSource",
    "get_config_path",
    "get_data_dir",
    "load_config",
    "save_config",
]
