"""
Readme lookup lifecycle for a single item.

A :class:`ContentSync` resolves the item's directory, makes sure it
exists, watches it for the readme file, reads the file and records its
content in the metadata store.  Any I/O or watch failure restarts the
whole lifecycle from a fresh path resolution, because a reinstall may
have cleared the directory or moved the install root in the meantime.

States::

    STARTING -> WATCHING -> READING -> PUBLISHED
        ^
        +---- RESTARTING <---- (any IoError / WatchError)

Configuration problems are never retried.  The number of restarts is
governed by a :class:`RestartPolicy`; the default policy never gives up.
"""

from __future__ import annotations

import concurrent.futures
import enum
import logging
import os
import threading
from collections.abc import Callable
from dataclasses import dataclass

from readme_sync.errors import (
    IoError,
    RetryLimitExceeded,
    SyncCancelled,
    WatchError,
)
from readme_sync.paths import (
    ensure_directory,
    read_text_file,
    resolve_item_path,
    wait_until_stable,
)
from readme_sync.store import MetadataStore, Present
from readme_sync.watcher import DirectoryWatcher, WatchSession

logger = logging.getLogger(__name__)

DEFAULT_ATTRIBUTE = "readme"


class SyncState(enum.Enum):
    STARTING = "starting"
    WATCHING = "watching"
    READING = "reading"
    PUBLISHED = "published"
    RESTARTING = "restarting"
    CANCELLED = "cancelled"
    FAILED = "failed"


@dataclass
class RestartPolicy:
    """How many times, and how quickly, a lifecycle may restart.

    ``max_restarts`` of 0 means no limit.  ``delay`` is the pause in
    seconds before each restart (0 = restart immediately).
    """
    max_restarts: int = 0
    delay: float = 0.0

    def allows(self, restarts: int) -> bool:
        return self.max_restarts <= 0 or restarts <= self.max_restarts


class ContentSync:
    """
    Drives the readme lookup for one item until it publishes.

    Parameters
    ----------
    item_id : str
        The item whose readme is tracked.
    store : MetadataStore
        Where the readme content is recorded.
    root_provider : callable
        Returns the current install root (or None).  Called again on
        every restart; the resolved path is never cached.
    watcher : DirectoryWatcher, optional
        Opens the directory watch sessions.
    attribute : str
        Attribute name the content is recorded under.
    policy : RestartPolicy, optional
        Restart limit and delay.
    watch_timeout : float, optional
        Seconds to wait for the readme before restarting (None = forever).
    encoding : str
        Text encoding of the readme file.
    stable_seconds : float
        How long the detected file's size and mtime must stay unchanged
        before it is read (0 = read immediately).
    """

    def __init__(
        self,
        item_id: str,
        store: MetadataStore,
        root_provider: Callable[[], str | None],
        watcher: DirectoryWatcher | None = None,
        attribute: str = DEFAULT_ATTRIBUTE,
        policy: RestartPolicy | None = None,
        watch_timeout: float | None = None,
        encoding: str = "utf-8",
        stable_seconds: float = 0.0,
    ):
        self.item_id = item_id
        self._store = store
        self._root_provider = root_provider
        self._watcher = watcher or DirectoryWatcher()
        self._attribute = attribute
        self._policy = policy or RestartPolicy()
        self._watch_timeout = watch_timeout
        self._encoding = encoding
        self._stable_seconds = stable_seconds

        self._state = SyncState.STARTING
        self._restarts = 0
        self._session: WatchSession | None = None
        self._cancelled = threading.Event()
        self._lock = threading.Lock()
        self._future: concurrent.futures.Future[str] | None = None

    # ---- status ----

    @property
    def state(self) -> SyncState:
        return self._state

    @property
    def restarts(self) -> int:
        """Number of lifecycle restarts so far."""
        return self._restarts

    @property
    def future(self) -> concurrent.futures.Future[str] | None:
        return self._future

    # ---- control ----

    def start(self) -> concurrent.futures.Future[str]:
        """Run the lifecycle on a background thread.

        The returned future resolves with the published text, or carries
        the error that ended the lifecycle.  While a run is in progress
        the running lifecycle's future is returned instead.
        """
        with self._lock:
            if self._future is not None and not self._future.done():
                logger.debug("Lifecycle for %s already running", self.item_id)
                return self._future
            future: concurrent.futures.Future[str] = concurrent.futures.Future()
            self._future = future

        def _target() -> None:
            try:
                future.set_result(self.run())
            except Exception as exc:
                future.set_exception(exc)

        threading.Thread(
            target=_target, daemon=True, name=f"Sync-{self.item_id}"
        ).start()
        return future

    def cancel(self) -> None:
        """Stop the lifecycle and release any live watch."""
        self._cancelled.set()
        with self._lock:
            session = self._session
        if session is not None:
            session.close()

    def run(self) -> str:
        """Run the lifecycle on the calling thread and return the published text."""
        while True:
            self._check_cancelled()
            self._set_state(SyncState.STARTING)
            # ConfigurationError propagates: nothing a restart can fix
            directory = resolve_item_path(self.item_id, self._root_provider())
            try:
                content = self._attempt(directory)
            except (IoError, WatchError) as exc:
                self._check_cancelled()
                self._restart(exc)
                continue
            self._set_state(SyncState.PUBLISHED)
            logger.info(
                "Recorded %s for %s (%d chars, %d restarts)",
                self._attribute, self.item_id, len(content), self._restarts,
            )
            return content

    # ---- internals ----

    def _attempt(self, directory: str) -> str:
        ensure_directory(directory)

        session = self._watcher.watch(directory)
        with self._lock:
            self._session = session
        try:
            if self._cancelled.is_set():
                session.close()
            self._set_state(SyncState.WATCHING)
            name = session.wait(self._watch_timeout)
        finally:
            session.close()
            with self._lock:
                self._session = None

        self._set_state(SyncState.READING)
        path = os.path.join(directory, name)
        # The installer may still be writing the file
        wait_until_stable(path, self._stable_seconds, stop=self._cancelled)
        self._check_cancelled()
        content = read_text_file(path, self._encoding)
        # Durable stores raise IoError themselves when a write is not persisted
        try:
            self._store.set(self.item_id, self._attribute, Present(content))
        except OSError as exc:
            raise IoError(f"Cannot record {self._attribute} for {self.item_id}: {exc}") from exc
        return content

    def _restart(self, exc: Exception) -> None:
        self._restarts += 1
        if not self._policy.allows(self._restarts):
            self._set_state(SyncState.FAILED)
            logger.error(
                "Giving up on %s after %d restarts: %s",
                self.item_id, self._restarts - 1, exc,
            )
            raise RetryLimitExceeded(
                f"Readme lookup for {self.item_id} failed {self._restarts} times"
            ) from exc
        self._set_state(SyncState.RESTARTING)
        logger.info("Restarting readme lookup for %s: %s", self.item_id, exc)
        if self._policy.delay > 0:
            self._cancelled.wait(self._policy.delay)

    def _check_cancelled(self) -> None:
        if self._cancelled.is_set():
            self._set_state(SyncState.CANCELLED)
            raise SyncCancelled(f"Readme lookup for {self.item_id} cancelled")

    def _set_state(self, state: SyncState) -> None:
        if state is not self._state:
            logger.debug("%s: %s -> %s", self.item_id, self._state.value, state.value)
        self._state = state
