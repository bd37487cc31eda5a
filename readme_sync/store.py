"""
Metadata store for Readme Sync.

The store holds, per item, the host's lifecycle state and a set of
recorded attributes.  Recorded values are either ``Present(text)`` or
the ``NOT_FOUND`` marker; ``get`` returns None when nothing was ever
recorded.  Every mutation notifies the registered listeners (with no
payload) once the internal lock has been released.
"""

from __future__ import annotations

import json
import logging
import threading
from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Protocol

from readme_sync.errors import IoError

logger = logging.getLogger(__name__)

STATE_INSTALLED = "installed"
STATE_ENABLED = "enabled"


@dataclass(frozen=True)
class Present:
    """A recorded readme: the verbatim content of the last successful read."""
    text: str


@dataclass(frozen=True)
class NotFound:
    """Recorded marker meaning "the item ships no readme file"."""


NOT_FOUND = NotFound()

RecordedValue = Present | NotFound


@dataclass(frozen=True)
class Item:
    """An installed unit tracked by the store."""
    id: str
    state: str = STATE_INSTALLED


class MetadataStore(Protocol):
    """Key-value attribute store keyed by (item id, attribute name)."""

    def get(self, item_id: str, attribute: str) -> RecordedValue | None:
        ...

    def set(self, item_id: str, attribute: str, value: RecordedValue) -> None:
        ...

    def items(self) -> list[Item]:
        ...

    def has_item(self, item_id: str) -> bool:
        ...

    def set_state(self, item_id: str, state: str) -> None:
        ...

    def add_listener(self, callback: Callable[[], None]) -> None:
        ...


def _encode_value(value: RecordedValue) -> dict[str, Any]:
    if isinstance(value, Present):
        return {"found": True, "text": value.text}
    return {"found": False}


def _decode_value(raw: Any) -> RecordedValue | None:
    if not isinstance(raw, dict):
        return None
    if raw.get("found"):
        return Present(str(raw.get("text", "")))
    return NOT_FOUND


class MemoryMetadataStore:
    """Thread-safe in-memory store."""

    def __init__(self) -> None:
        # item_id -> {"state": str, "attributes": {name: RecordedValue}}
        self._items: dict[str, dict[str, Any]] = {}
        self._lock = threading.RLock()
        self._listeners: list[Callable[[], None]] = []

    # ---- listeners ----

    def add_listener(self, callback: Callable[[], None]) -> None:
        """Call *callback* after every mutation."""
        with self._lock:
            self._listeners.append(callback)

    def _notify(self) -> None:
        with self._lock:
            listeners = list(self._listeners)
        for callback in listeners:
            try:
                callback()
            except Exception:
                logger.exception("Error in metadata listener %r", callback)

    # ---- items ----

    def _entry(self, item_id: str) -> dict[str, Any]:
        entry = self._items.get(item_id)
        if entry is None:
            entry = {"state": STATE_INSTALLED, "attributes": {}}
            self._items[item_id] = entry
        return entry

    def items(self) -> list[Item]:
        """Return every known item, ordered by id."""
        with self._lock:
            return [
                Item(item_id, entry["state"])
                for item_id, entry in sorted(self._items.items())
            ]

    def has_item(self, item_id: str) -> bool:
        with self._lock:
            return item_id in self._items

    def set_state(self, item_id: str, state: str) -> None:
        """Record the host lifecycle state of *item_id*."""
        with self._lock:
            self._entry(item_id)["state"] = state
            self._persist()
        self._notify()

    # ---- attributes ----

    def get(self, item_id: str, attribute: str) -> RecordedValue | None:
        """Return the recorded value, or None if nothing was recorded."""
        with self._lock:
            entry = self._items.get(item_id)
            if entry is None:
                return None
            return entry["attributes"].get(attribute)

    def set(self, item_id: str, attribute: str, value: RecordedValue) -> None:
        """Record *value* for (*item_id*, *attribute*)."""
        with self._lock:
            self._entry(item_id)["attributes"][attribute] = value
            self._persist()
        logger.debug("Recorded %s.%s", item_id, attribute)
        self._notify()

    def _persist(self) -> None:
        """Hook for durable subclasses; called with the lock held."""


class JsonMetadataStore(MemoryMetadataStore):
    """Store persisted to a JSON file after every write.

    A write that cannot be saved raises :class:`IoError`; the in-memory
    value is kept and listeners are not notified.
    """

    def __init__(self, path: Path):
        super().__init__()
        self._path = Path(path)
        self.load()

    @property
    def path(self) -> Path:
        return self._path

    def load(self) -> None:
        """Load items from disk; a missing or unreadable file means empty."""
        if not self._path.exists():
            return
        try:
            with open(self._path, encoding="utf-8") as fh:
                stored = json.load(fh)
        except (json.JSONDecodeError, OSError) as exc:
            logger.warning("Could not read metadata store (%s); starting empty.", exc)
            return

        items: dict[str, dict[str, Any]] = {}
        for item_id, raw in stored.get("items", {}).items():
            attributes = {}
            for name, raw_value in raw.get("attributes", {}).items():
                value = _decode_value(raw_value)
                if value is not None:
                    attributes[name] = value
            items[item_id] = {
                "state": raw.get("state", STATE_INSTALLED),
                "attributes": attributes,
            }
        with self._lock:
            self._items = items
        logger.info("Metadata store loaded from %s (%d items)", self._path, len(items))

    def _persist(self) -> None:
        data = {
            "items": {
                item_id: {
                    "state": entry["state"],
                    "attributes": {
                        name: _encode_value(value)
                        for name, value in entry["attributes"].items()
                    },
                }
                for item_id, entry in self._items.items()
            }
        }
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            tmp = self._path.with_suffix(self._path.suffix + ".tmp")
            with open(tmp, "w", encoding="utf-8") as fh:
                json.dump(data, fh, indent=2)
            tmp.replace(self._path)
        except OSError as exc:
            logger.error("Failed to save metadata store: %s", exc)
            raise IoError(f"Cannot save metadata store {self._path}: {exc}", str(self._path)) from exc
