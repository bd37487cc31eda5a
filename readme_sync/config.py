"""Configuration management for Readme Sync.

Stores and retrieves settings from a JSON config file in the
platform-appropriate application data directory.
"""

import json
import logging
from pathlib import Path
from typing import Any

from readme_sync.platform_utils import (
    get_config_dir as _platform_config_dir,
)
from readme_sync.platform_utils import (
    get_log_path as _platform_log_path,
)
from readme_sync.platform_utils import (
    get_store_path as _platform_store_path,
)

logger = logging.getLogger(__name__)

DEFAULT_NOT_FOUND_TEXT = "No readme found"

DEFAULT_CONFIG: dict[str, Any] = {
    "install_root": "",  # Folder holding one sub-folder per item
    "store_path": "",  # Blank = metadata.json in the config directory
    "attribute_name": "readme",
    "file_extension": "txt",
    "not_found_text": DEFAULT_NOT_FOUND_TEXT,
    "tracked_states": ["installed", "enabled"],
    "text_encoding": "utf-8",
    "stable_time_seconds": 2.0,  # Size/mtime must settle this long before reading
    # ---- restart policy ----
    "max_restarts": 0,  # 0 = keep restarting forever
    "restart_delay_seconds": 0.0,
    "watch_timeout_seconds": 0,  # 0 = wait for the readme indefinitely
    # ---- validation ----
    "validate_on_change": True,
    # ---- notifications ----
    "play_sound_on_error": True,
    # ---- logging ----
    "log_level": "INFO",
    "max_log_size_mb": 10,
    "log_backup_count": 3,
}


def get_config_dir() -> Path:
    """Return the platform-appropriate application config directory."""
    return _platform_config_dir()


def get_config_path() -> Path:
    """Return the path to the configuration file."""
    return get_config_dir() / "config.json"


def get_log_path() -> Path:
    """Return the path to the log file."""
    return _platform_log_path()


class Config:
    """Configuration manager backed by a JSON file."""

    def __init__(self, path: Path | None = None):
        """Load config from *path*, falling back to the platform default."""
        self._path = path or get_config_path()
        self._data: dict[str, Any] = dict(DEFAULT_CONFIG)
        self.load()

    @property
    def path(self) -> Path:
        return self._path

    # ---- persistence ----

    def load(self) -> None:
        """Load configuration from disk, applying defaults for missing keys."""
        if self._path.exists():
            try:
                with open(self._path, encoding="utf-8") as fh:
                    stored = json.load(fh)
                # Merge stored values over defaults so new keys get defaults
                self._data = {**DEFAULT_CONFIG, **stored}
                logger.info("Configuration loaded from %s", self._path)
            except (json.JSONDecodeError, OSError) as exc:
                logger.warning("Could not read config (%s); using defaults.", exc)
                self._data = dict(DEFAULT_CONFIG)
        else:
            self._data = dict(DEFAULT_CONFIG)
            self.save()
            logger.info("Created default configuration at %s", self._path)

    def save(self) -> None:
        """Persist the current configuration to disk."""
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            with open(self._path, "w", encoding="utf-8") as fh:
                json.dump(self._data, fh, indent=2)
            logger.info("Configuration saved.")
        except OSError as exc:
            logger.error("Failed to save configuration: %s", exc)

    # ---- locations ----

    @property
    def install_root(self) -> str:
        """Return the folder that holds one sub-folder per item."""
        return self._data.get("install_root", "")

    @install_root.setter
    def install_root(self, value: str) -> None:
        self._data["install_root"] = value.strip()

    @property
    def store_path(self) -> Path:
        """Return the metadata store file, defaulting to the config dir."""
        value = self._data.get("store_path", "")
        return Path(value).expanduser() if value else _platform_store_path()

    @store_path.setter
    def store_path(self, value: str) -> None:
        self._data["store_path"] = value.strip()

    # ---- readme detection ----

    @property
    def attribute_name(self) -> str:
        """Return the attribute the readme content is recorded under."""
        return self._data.get("attribute_name") or "readme"

    @attribute_name.setter
    def attribute_name(self, value: str) -> None:
        self._data["attribute_name"] = value.strip() or "readme"

    @property
    def file_extension(self) -> str:
        """Return the readme file extension (lowercase, no dot)."""
        return self._data.get("file_extension") or "txt"

    @file_extension.setter
    def file_extension(self, value: str) -> None:
        """Set the readme extension, normalising to lowercase."""
        self._data["file_extension"] = value.lower().strip().lstrip(".") or "txt"

    @property
    def not_found_text(self) -> str:
        """Return the text shown for items without a readme."""
        return self._data.get("not_found_text", DEFAULT_NOT_FOUND_TEXT)

    @not_found_text.setter
    def not_found_text(self, value: str) -> None:
        self._data["not_found_text"] = value

    @property
    def tracked_states(self) -> list[str]:
        """Return the item states that take part in validation."""
        return list(self._data.get("tracked_states", ["installed", "enabled"]))

    @tracked_states.setter
    def tracked_states(self, value: list[str]) -> None:
        self._data["tracked_states"] = [s.strip() for s in value if s.strip()]

    @property
    def text_encoding(self) -> str:
        return self._data.get("text_encoding") or "utf-8"

    @text_encoding.setter
    def text_encoding(self, value: str) -> None:
        self._data["text_encoding"] = value.strip() or "utf-8"

    @property
    def stable_time(self) -> float:
        """Return seconds a new readme must stay unchanged before it is read."""
        return float(self._data.get("stable_time_seconds", 2.0))

    @stable_time.setter
    def stable_time(self, value: float) -> None:
        self._data["stable_time_seconds"] = max(0.0, float(value))

    # ---- restart policy ----

    @property
    def max_restarts(self) -> int:
        """Return the lifecycle restart limit (0 = unlimited)."""
        return int(self._data.get("max_restarts", 0))

    @max_restarts.setter
    def max_restarts(self, value: int) -> None:
        self._data["max_restarts"] = max(0, int(value))

    @property
    def restart_delay(self) -> float:
        """Return seconds to wait before each lifecycle restart."""
        return float(self._data.get("restart_delay_seconds", 0.0))

    @restart_delay.setter
    def restart_delay(self, value: float) -> None:
        self._data["restart_delay_seconds"] = max(0.0, float(value))

    @property
    def watch_timeout(self) -> float | None:
        """Return the maximum wait for a readme, or None to wait forever."""
        value = float(self._data.get("watch_timeout_seconds", 0))
        return value if value > 0 else None

    @watch_timeout.setter
    def watch_timeout(self, value: float) -> None:
        self._data["watch_timeout_seconds"] = max(0.0, float(value))

    # ---- validation ----

    @property
    def validate_on_change(self) -> bool:
        """Return whether every metadata change triggers validation."""
        return bool(self._data.get("validate_on_change", True))

    @validate_on_change.setter
    def validate_on_change(self, value: bool) -> None:
        self._data["validate_on_change"] = value

    # ---- notifications ----

    @property
    def play_sound_on_error(self) -> bool:
        """Return whether an alert sound plays on blocking errors."""
        return bool(self._data.get("play_sound_on_error", True))

    @play_sound_on_error.setter
    def play_sound_on_error(self, value: bool) -> None:
        self._data["play_sound_on_error"] = value

    # ---- logging ----

    @property
    def log_level(self) -> str:
        """Return the current logging level name."""
        return self._data.get("log_level", "INFO")

    @log_level.setter
    def log_level(self, value: str) -> None:
        self._data["log_level"] = value

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

    # ---- convenience ----

    def is_configured(self) -> bool:
        """Return True when an install root is set."""
        return bool(self.install_root)
