"""Install-path resolution and the small filesystem surface Readme Sync needs.

Every helper wraps ``OSError`` in :class:`IoError` so callers only deal
with the package's own error taxonomy.
"""

from __future__ import annotations

import logging
import os
import threading
import time
from pathlib import Path

from readme_sync.errors import ConfigurationError, IoError

logger = logging.getLogger(__name__)

DEFAULT_EXTENSION = "txt"
STABLE_POLL_SECONDS = 0.1


def resolve_item_path(item_id: str, base_root: str | None) -> str:
    """Return the absolute directory holding *item_id*'s files.

    Raises :class:`ConfigurationError` when no install root is known or
    the id is not a single path component.
    """
    if not base_root:
        raise ConfigurationError("No install root is configured.")
    if not item_id or item_id in (".", "..") or any(
        sep in item_id for sep in ("/", "\\", os.sep)
    ):
        raise ConfigurationError(f"Invalid item id: {item_id!r}")
    root = os.path.abspath(os.path.expanduser(base_root))
    return os.path.join(root, item_id)


def ensure_directory(path: str | Path) -> None:
    """Create *path* (and parents) unless it already exists."""
    try:
        Path(path).mkdir(parents=True, exist_ok=True)
    except OSError as exc:
        raise IoError(f"Cannot create directory {path}: {exc}", str(path)) from exc


def list_directory(path: str | Path) -> list[str]:
    """Return the entry names of *path*, sorted."""
    try:
        return sorted(os.listdir(path))
    except OSError as exc:
        raise IoError(f"Cannot list directory {path}: {exc}", str(path)) from exc


def read_text_file(path: str | Path, encoding: str = "utf-8") -> str:
    """Return the verbatim text content of *path* (no newline translation)."""
    try:
        with open(path, encoding=encoding, newline="") as fh:
            return fh.read()
    except (OSError, UnicodeDecodeError) as exc:
        raise IoError(f"Cannot read {path}: {exc}", str(path)) from exc


def wait_until_stable(
    path: str | Path,
    stable_seconds: float,
    stop: threading.Event | None = None,
    poll_interval: float = STABLE_POLL_SECONDS,
) -> None:
    """Block until *path* has kept the same size and mtime for *stable_seconds*.

    Returns early when *stop* is set.  Raises :class:`IoError` if the
    file disappears while waiting.
    """
    if stable_seconds <= 0:
        return
    stop = stop or threading.Event()
    last_seen = time.monotonic()
    last_sig = None
    while True:
        try:
            st = os.stat(path)
        except OSError as exc:
            raise IoError(f"{path} vanished while being written: {exc}", str(path)) from exc
        sig = (st.st_size, st.st_mtime_ns)
        now = time.monotonic()
        if sig != last_sig:
            # Still changing
            last_sig = sig
            last_seen = now
        elif now - last_seen >= stable_seconds:
            logger.debug("File stable: %s (size=%d)", path, st.st_size)
            return
        if stop.wait(timeout=poll_interval):
            return


def is_qualifying_file(name: str, extension: str = DEFAULT_EXTENSION) -> bool:
    """Return True when *name* carries the readme extension (any case)."""
    ext = os.path.splitext(name)[1].lower().lstrip(".")
    return bool(ext) and ext == extension.lower().lstrip(".")


def find_qualifying_file(
    directory: str | Path,
    extension: str = DEFAULT_EXTENSION,
    names: list[str] | None = None,
) -> str | None:
    """Return the name of the readme file in *directory*, or None.

    When several files qualify the lexicographically first one wins, so
    the answer never depends on directory listing order.
    """
    if names is None:
        names = list_directory(directory)
    candidates = sorted(n for n in names if is_qualifying_file(n, extension))
    for name in candidates:
        if os.path.isfile(os.path.join(directory, name)):
            if len(candidates) > 1:
                logger.debug(
                    "Several readme candidates in %s; using %s", directory, name
                )
            return name
    return None
