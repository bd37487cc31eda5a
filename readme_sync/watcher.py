"""Directory watcher for Readme Sync.

Uses the watchdog library to wait for the readme file to be created
(or renamed into place) inside an item's directory.  Each watch is a
single-shot session: the first qualifying file settles it, the observer
is released, and every later event is ignored.
"""

from __future__ import annotations

import concurrent.futures
import logging
import os
import threading
import time
from collections.abc import Callable
from pathlib import Path
from typing import Any

from watchdog.events import (
    FileSystemEvent,
    FileSystemEventHandler,
)
from watchdog.observers import Observer

from readme_sync.errors import WatchError, WatchTimeout
from readme_sync.paths import DEFAULT_EXTENSION, is_qualifying_file

logger = logging.getLogger(__name__)

_HEALTH_POLL_SECONDS = 0.5


def _same_path(a: str, b: str) -> bool:
    return os.path.normcase(os.path.abspath(a)) == os.path.normcase(os.path.abspath(b))


class QualifyingFileHandler(FileSystemEventHandler):
    """Watchdog handler that forwards readme creations to its session."""

    def __init__(self, session: WatchSession, extension: str = DEFAULT_EXTENSION):
        super().__init__()
        self._session = session
        self._extension = extension

    def _offer(self, path: str) -> None:
        directory, name = os.path.split(path)
        if not _same_path(directory, self._session.directory):
            return
        if is_qualifying_file(name, self._extension):
            self._session._deliver(name)
        else:
            logger.debug("Ignoring %s (not a readme)", name)

    def on_created(self, event: FileSystemEvent) -> None:
        """A file was created inside the watched directory."""
        if event.is_directory:
            return
        self._offer(os.fsdecode(event.src_path))

    def on_moved(self, event: FileSystemEvent) -> None:
        """A file was renamed into place, or the directory itself moved."""
        src = os.fsdecode(event.src_path)
        if event.is_directory and _same_path(src, self._session.directory):
            self._session._fail(WatchError(f"Watched directory moved: {src}"))
            return
        if event.is_directory:
            return
        self._offer(os.fsdecode(event.dest_path))

    def on_deleted(self, event: FileSystemEvent) -> None:
        """The watched directory being removed kills the session."""
        src = os.fsdecode(event.src_path)
        if event.is_directory and _same_path(src, self._session.directory):
            self._session._fail(WatchError(f"Watched directory removed: {src}"))


class WatchSession:
    """One single-shot watch on one directory.

    The outcome is carried by a :class:`concurrent.futures.Future`:
    the readme file name on success, or a :class:`WatchError` when the
    watch dies or is closed before anything qualifying shows up.
    """

    def __init__(
        self,
        directory: str | Path,
        on_qualifying_file: Callable[[str], None] | None = None,
        extension: str = DEFAULT_EXTENSION,
        observer_factory: Callable[[], Any] = Observer,
    ):
        self.directory = os.path.abspath(os.fspath(directory))
        self.handler = QualifyingFileHandler(self, extension)
        self._on_qualifying_file = on_qualifying_file
        self._observer_factory = observer_factory
        self._observer: Any | None = None
        self._future: concurrent.futures.Future[str] = concurrent.futures.Future()
        self._settled = False
        self._lock = threading.Lock()

    # ---- lifecycle ----

    def start(self) -> None:
        """Open the OS-level watch on the directory."""
        observer = self._observer_factory()
        try:
            observer.schedule(self.handler, self.directory, recursive=False)
            observer.start()
        except OSError as exc:
            raise WatchError(f"Cannot watch {self.directory}: {exc}") from exc
        with self._lock:
            if self._settled:
                # Closed while we were starting up
                stale = observer
            else:
                self._observer = observer
                stale = None
        if stale is not None:
            self._stop_observer(stale)
            return
        logger.debug("Watching '%s'", self.directory)

    def close(self) -> None:
        """Release the watch.  Safe to call any number of times."""
        with self._lock:
            pending = not self._settled
            self._settled = True
        self._release()
        if pending:
            self._future.set_exception(
                WatchError(f"Watch on {self.directory} closed before a readme appeared")
            )

    def wait(self, timeout: float | None = None) -> str:
        """Block until the session settles and return the readme file name.

        Raises :class:`WatchError` if the watch died or was closed, and
        :class:`WatchTimeout` (after closing the session) when *timeout*
        seconds pass without a qualifying file.
        """
        deadline = None if timeout is None else time.monotonic() + timeout
        while True:
            step = _HEALTH_POLL_SECONDS
            if deadline is not None:
                step = max(0.0, min(step, deadline - time.monotonic()))
            try:
                return self._future.result(timeout=step)
            except concurrent.futures.TimeoutError:
                pass
            self._check_health()
            if deadline is not None and time.monotonic() >= deadline and not self._future.done():
                self.close()
                try:
                    # A readme delivered while closing still counts
                    return self._future.result()
                except WatchError as exc:
                    raise WatchTimeout(
                        f"No readme appeared in {self.directory} within {timeout}s"
                    ) from exc

    # ---- status ----

    @property
    def future(self) -> concurrent.futures.Future[str]:
        return self._future

    @property
    def fired(self) -> bool:
        """True once a qualifying file has been reported."""
        return self._future.done() and self._future.exception() is None

    @property
    def is_open(self) -> bool:
        """Return whether an OS-level watch handle is currently held."""
        with self._lock:
            return self._observer is not None

    # ---- internals ----

    def _deliver(self, name: str) -> None:
        with self._lock:
            if self._settled:
                return
            self._settled = True
        self._release()
        logger.info("Readme detected in %s: %s", self.directory, name)
        if self._on_qualifying_file:
            try:
                self._on_qualifying_file(name)
            except Exception:
                logger.exception("Error in readme callback for %s", name)
        self._future.set_result(name)

    def _fail(self, error: WatchError) -> None:
        with self._lock:
            if self._settled:
                return
            self._settled = True
        self._release()
        logger.warning("%s", error)
        self._future.set_exception(error)

    def _check_health(self) -> None:
        with self._lock:
            observer = self._observer
        if observer is None:
            return
        if not observer.is_alive():
            self._fail(WatchError(f"Watch on {self.directory} stopped unexpectedly"))
        elif not os.path.isdir(self.directory):
            self._fail(WatchError(f"Watched directory vanished: {self.directory}"))

    def _release(self) -> None:
        with self._lock:
            observer, self._observer = self._observer, None
        if observer is not None:
            self._stop_observer(observer)

    @staticmethod
    def _stop_observer(observer: Any) -> None:
        try:
            observer.stop()
            # Events are dispatched on the observer thread itself
            if observer is not threading.current_thread():
                observer.join(timeout=5)
        except Exception:
            logger.debug("Error while stopping observer.", exc_info=True)


class DirectoryWatcher:
    """Factory for started :class:`WatchSession` objects.

    Usage:
        session = DirectoryWatcher().watch(path, on_readme)
        name = session.wait()
    """

    def __init__(
        self,
        extension: str = DEFAULT_EXTENSION,
        observer_factory: Callable[[], Any] = Observer,
    ):
        self.extension = extension
        self._observer_factory = observer_factory

    def watch(
        self,
        directory: str | Path,
        on_qualifying_file: Callable[[str], None] | None = None,
    ) -> WatchSession:
        """Open a single-shot watch on *directory*."""
        session = WatchSession(
            directory,
            on_qualifying_file,
            extension=self.extension,
            observer_factory=self._observer_factory,
        )
        session.start()
        return session
