"""
Readme validation for Readme Sync.

Re-reads every tracked item's directory and compares the readme on
disk against the recorded attribute.  Validation is read-only and stops
at the first finding; it is meant to run again after every metadata
change, so transient I/O errors clear on the next pass.
"""

from __future__ import annotations

import logging
import os
from collections.abc import Callable, Iterable
from dataclasses import dataclass

from readme_sync.errors import (
    IoError,
    MismatchError,
    MissingAttributeError,
    SyncError,
)
from readme_sync.paths import (
    DEFAULT_EXTENSION,
    find_qualifying_file,
    read_text_file,
    resolve_item_path,
)
from readme_sync.store import (
    STATE_ENABLED,
    STATE_INSTALLED,
    Item,
    MetadataStore,
    NotFound,
    Present,
)
from readme_sync.sync import DEFAULT_ATTRIBUTE

logger = logging.getLogger(__name__)

DEFAULT_TRACKED_STATES = (STATE_INSTALLED, STATE_ENABLED)


@dataclass
class CheckResult:
    """Outcome of one validation run."""
    ok: bool
    message: str = ""
    error: SyncError | None = None

    @property
    def item_id(self) -> str | None:
        return getattr(self.error, "item_id", None)


class BatchValidator:
    """Checks recorded readme attributes against the files on disk."""

    def __init__(
        self,
        store: MetadataStore,
        root_provider: Callable[[], str | None],
        attribute: str = DEFAULT_ATTRIBUTE,
        extension: str = DEFAULT_EXTENSION,
        tracked_states: Iterable[str] = DEFAULT_TRACKED_STATES,
        encoding: str = "utf-8",
    ):
        self._store = store
        self._root_provider = root_provider
        self._attribute = attribute
        self._extension = extension
        self._tracked_states = frozenset(tracked_states)
        self._encoding = encoding

    def validate_all(self, items: Iterable[Item]) -> None:
        """Validate *items* in order, raising on the first finding.

        Raises :class:`MissingAttributeError` or :class:`MismatchError`
        for the offending item, :class:`IoError` when its directory or
        readme cannot be read, and :class:`ConfigurationError` when no
        install root is configured.
        """
        root = None
        for item in items:
            if item.state not in self._tracked_states:
                logger.debug("Skipping %s (state=%s)", item.id, item.state)
                continue
            if root is None:
                root = self._root_provider()
            self._validate_item(item.id, root)

    def check(self, items: Iterable[Item] | None = None) -> CheckResult:
        """Run :meth:`validate_all` and report the outcome as one message.

        Defaults to every item in the store.  Configuration errors are
        reported the same way as findings.
        """
        if items is None:
            items = self._store.items()
        try:
            self.validate_all(items)
        except SyncError as exc:
            logger.warning("Readme validation failed: %s", exc)
            return CheckResult(ok=False, message=str(exc), error=exc)
        return CheckResult(ok=True)

    # ---- internals ----

    def _validate_item(self, item_id: str, root: str | None) -> None:
        recorded = self._store.get(item_id, self._attribute)
        if recorded is None:
            raise MissingAttributeError(
                item_id, f"{item_id}: no {self._attribute} attribute has been recorded"
            )

        directory = resolve_item_path(item_id, root)
        try:
            name = find_qualifying_file(directory, self._extension)
        except IoError as exc:
            raise IoError(f"{item_id}: {exc}", exc.path) from exc

        if name is None:
            if not isinstance(recorded, NotFound):
                raise MismatchError(
                    item_id,
                    f"{item_id}: {self._attribute} is recorded but no "
                    f".{self._extension} file exists in {directory}",
                )
            return

        path = os.path.join(directory, name)
        try:
            content = read_text_file(path, self._encoding)
        except IoError as exc:
            raise IoError(f"{item_id}: {exc}", exc.path) from exc

        if not isinstance(recorded, Present):
            raise MismatchError(
                item_id,
                f"{item_id}: {name} exists but the {self._attribute} is recorded as not found",
            )
        if content != recorded.text:
            raise MismatchError(
                item_id,
                f"{item_id}: {name} differs from the recorded {self._attribute}",
            )
