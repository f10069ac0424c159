"""Configuration management for Folder Monitor.

Stores and retrieves the source/destination folder pair (plus a few
logging settings) from a JSON config file in the platform-appropriate
application data directory.
"""

import json
import logging
import os
from pathlib import Path
from typing import Any

from folder_monitor.errors import ConfigError
from folder_monitor.platform_utils import (
    get_config_path as _platform_config_path,
)
from folder_monitor.platform_utils import (
    get_log_path as _platform_log_path,
)

logger = logging.getLogger(__name__)

DEFAULT_CONFIG: dict[str, Any] = {
    "source_dir": "",
    "dest_dir": "",
    "log_level": "INFO",
    # ---- log rotation ----
    "max_log_size_mb": 10,  # rotate log when it exceeds this size
    "log_backup_count": 3,  # number of rotated log files to keep
}

_REQUIRED_PATH_KEYS = ("source_dir", "dest_dir")


def get_config_path() -> Path:
    """Return the path to the configuration file."""
    return _platform_config_path()


def get_log_path() -> Path:
    """Return the path to the log file."""
    return _platform_log_path()


class Config:
    """Configuration backed by a JSON file.

    Unlike a settings store for an interactive app, a missing or broken
    file is an error here: the service must not start without both
    folders.  Use ``Config(path, load=False)`` to build a fresh config
    that will be written with :meth:`save`.
    """

    def __init__(self, path: Path | None = None, load: bool = True):
        try:
            self._path = Path(path) if path else get_config_path()
        except OSError as exc:
            raise ConfigError(f"Cannot locate configuration directory: {exc}") from exc
        self._data: dict[str, Any] = dict(DEFAULT_CONFIG)
        if load:
            self.load()

    @property
    def path(self) -> Path:
        """Return the file this configuration is read from and saved to."""
        return self._path

    # ---- persistence ----

    def load(self) -> None:
        """Load and validate configuration from disk.

        Raises ConfigError if the file is missing, unreadable, not a JSON
        object, or does not name two absolute folders.
        """
        try:
            with open(self._path, encoding="utf-8") as fh:
                stored = json.load(fh)
        except FileNotFoundError as exc:
            raise ConfigError(
                f"Configuration file not found: {self._path} "
                "(run with --config to create it)"
            ) from exc
        except (json.JSONDecodeError, OSError) as exc:
            raise ConfigError(f"Could not read config {self._path}: {exc}") from exc

        if not isinstance(stored, dict):
            raise ConfigError(f"Config {self._path} must contain a JSON object")

        # Merge stored values over defaults so optional keys get defaults
        data = {**DEFAULT_CONFIG, **stored}
        _validate(data)
        self._data = data
        logger.info("Configuration loaded from %s", self._path)

    def save(self) -> None:
        """Persist the current configuration to disk."""
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            with open(self._path, "w", encoding="utf-8") as fh:
                json.dump(self._data, fh, indent=2)
        except OSError as exc:
            raise ConfigError(f"Failed to save configuration to {self._path}: {exc}") from exc
        logger.info("Configuration saved to %s", self._path)

    # ---- accessors ----

    @property
    def source_dir(self) -> str:
        """Return the watched source folder path."""
        return self._data["source_dir"]

    @source_dir.setter
    def source_dir(self, value: str) -> None:
        self._data["source_dir"] = value

    @property
    def dest_dir(self) -> str:
        """Return the copy-destination folder path."""
        return self._data["dest_dir"]

    @dest_dir.setter
    def dest_dir(self, value: str) -> None:
        self._data["dest_dir"] = value

    @property
    def log_level(self) -> str:
        """Return the current logging level name."""
        return self._data.get("log_level", "INFO")

    @log_level.setter
    def log_level(self, value: str) -> None:
        self._data["log_level"] = value

    # ---- log rotation ----

    @property
    def max_log_size_mb(self) -> int:
        """Return the maximum log file size in MB before rotation."""
        return int(self._data.get("max_log_size_mb", 10))

    @max_log_size_mb.setter
    def max_log_size_mb(self, value: int) -> None:
        """Set the maximum log file size in MB (minimum 1)."""
        self._data["max_log_size_mb"] = max(1, int(value))

    @property
    def log_backup_count(self) -> int:
        """Return the number of rotated log backups to keep."""
        return int(self._data.get("log_backup_count", 3))

    @log_backup_count.setter
    def log_backup_count(self, value: int) -> None:
        self._data["log_backup_count"] = max(0, int(value))


def _validate(data: dict[str, Any]) -> None:
    for key in _REQUIRED_PATH_KEYS:
        value = data.get(key)
        if not isinstance(value, str) or not value.strip():
            raise ConfigError(f"Config key '{key}' must be a non-empty path")
        if not os.path.isabs(value):
            raise ConfigError(f"Config key '{key}' must be an absolute path: {value}")
    level = data.get("log_level")
    if not isinstance(level, str) or not isinstance(logging.getLevelName(level.upper()), int):
        raise ConfigError(f"Config key 'log_level' must name a logging level: {level!r}")
    for key in ("max_log_size_mb", "log_backup_count"):
        try:
            int(data[key])
        except (TypeError, ValueError) as exc:
            raise ConfigError(f"Config key '{key}' must be an integer") from exc
