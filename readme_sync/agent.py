"""
Main controller for Readme Sync.

Ties together configuration, the metadata store, per-item readme
lookups and validation, and exposes the hooks a host application
registers: an install-started handler, a metadata-changed handler, an
attribute provider for display, and an on-demand validation check.
"""

import concurrent.futures
import logging
import logging.handlers
import sys
import threading

from readme_sync import __app_name__, __version__
from readme_sync.config import Config, get_log_path
from readme_sync.errors import ConfigurationError, RetryLimitExceeded, SyncCancelled
from readme_sync.notify import Notifier
from readme_sync.store import JsonMetadataStore, MetadataStore, Present
from readme_sync.sync import ContentSync, RestartPolicy
from readme_sync.validator import BatchValidator, CheckResult
from readme_sync.watcher import DirectoryWatcher

logger = logging.getLogger(__name__)


class SyncAgent:
    """
    Central orchestrator.

    Everything the components share is passed in explicitly; nothing is
    read from module-level state.
    """

    def __init__(
        self,
        config: Config,
        store: MetadataStore | None = None,
        watcher: DirectoryWatcher | None = None,
        notifier: Notifier | None = None,
    ) -> None:
        self.config = config
        self.store = store if store is not None else JsonMetadataStore(config.store_path)
        self.watcher = watcher or DirectoryWatcher(extension=config.file_extension)
        self.notifier = notifier or Notifier(play_sound=config.play_sound_on_error)
        self.validator = BatchValidator(
            self.store,
            self._install_root,
            attribute=config.attribute_name,
            extension=config.file_extension,
            tracked_states=config.tracked_states,
            encoding=config.text_encoding,
        )
        # item_id -> (lifecycle, future handed to the caller)
        self._syncs: dict[str, tuple[ContentSync, concurrent.futures.Future]] = {}
        self._lock = threading.Lock()
        self._last_check: CheckResult | None = None

        if config.validate_on_change:
            self.store.add_listener(self.on_metadata_changed)

    # ------------------------------------------------------------------
    # Host hooks
    # ------------------------------------------------------------------

    def on_install_started(self, item_id: str | None) -> concurrent.futures.Future[str] | None:
        """Start the readme lookup for *item_id*.

        Returns the lifecycle's future.  If a lookup for the item is
        already running, its future is returned instead of starting a
        second one.
        """
        if not item_id:
            self.notifier.alert("Couldn't retrieve the installed item; no readme lookup started.")
            return None

        with self._lock:
            running = self._syncs.get(item_id)
            if running is not None:
                logger.debug("Readme lookup for %s already running.", item_id)
                return running[1]

            cfg = self.config
            sync = ContentSync(
                item_id,
                self.store,
                self._install_root,
                watcher=self.watcher,
                attribute=cfg.attribute_name,
                policy=RestartPolicy(cfg.max_restarts, cfg.restart_delay),
                watch_timeout=cfg.watch_timeout,
                encoding=cfg.text_encoding,
                stable_seconds=cfg.stable_time,
            )
            # Resolved only after the outcome has been handled below
            outer: concurrent.futures.Future[str] = concurrent.futures.Future()
            self._syncs[item_id] = (sync, outer)

        logger.info("Readme lookup started for %s", item_id)
        sync.start().add_done_callback(
            lambda f, s=sync, o=outer: self._on_sync_done(s, f, o)
        )
        return outer

    def on_metadata_changed(self) -> CheckResult:
        """Revalidate every tracked item after a metadata change."""
        result = self.validator.check()
        self._last_check = result
        if not result.ok:
            logger.warning("Validation after metadata change: %s", result.message)
        return result

    def attribute_value(self, item_id: str) -> str:
        """Return the readme text to display for *item_id*."""
        value = self.store.get(item_id, self.config.attribute_name)
        if isinstance(value, Present):
            return value.text
        return self.config.not_found_text

    def run_check(self) -> CheckResult:
        """Run the validation check on demand."""
        result = self.validator.check()
        self._last_check = result
        return result

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    @property
    def last_check(self) -> CheckResult | None:
        return self._last_check

    @property
    def active_items(self) -> list[str]:
        """Ids whose readme lookup is still running."""
        with self._lock:
            return sorted(self._syncs)

    def shutdown(self) -> None:
        """Cancel every running lookup."""
        with self._lock:
            syncs = [sync for sync, _ in self._syncs.values()]
        for sync in syncs:
            sync.cancel()
        logger.info("%s stopped.", __app_name__)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _install_root(self) -> str | None:
        return self.config.install_root or None

    def _on_sync_done(
        self,
        sync: ContentSync,
        inner: concurrent.futures.Future,
        outer: concurrent.futures.Future,
    ) -> None:
        with self._lock:
            running = self._syncs.get(sync.item_id)
            if running is not None and running[0] is sync:
                del self._syncs[sync.item_id]

        exc = inner.exception()
        if exc is None:
            outer.set_result(inner.result())
            return
        if isinstance(exc, ConfigurationError):
            self.notifier.alert(f"Cannot look up the readme for {sync.item_id}: {exc}")
        elif isinstance(exc, SyncCancelled):
            logger.info("%s", exc)
        elif isinstance(exc, RetryLimitExceeded):
            logger.error("%s", exc)
        else:
            logger.error(
                "Readme lookup for %s crashed", sync.item_id, exc_info=exc
            )
        outer.set_exception(exc)


def setup_logging(config: Config) -> None:
    """Configure rotating file log and stderr handler."""
    log_path = get_log_path()
    level = getattr(logging, config.log_level.upper(), logging.INFO)
    root_logger = logging.getLogger()
    root_logger.setLevel(level)

    fmt = logging.Formatter("%(asctime)s [%(levelname)s] %(name)s: %(message)s")

    max_bytes = config.max_log_size_mb * 1024 * 1024
    fh = logging.handlers.RotatingFileHandler(
        str(log_path),
        maxBytes=max_bytes,
        backupCount=config.log_backup_count,
        encoding="utf-8",
    )
    fh.setLevel(level)
    fh.setFormatter(fmt)
    root_logger.addHandler(fh)

    sh = logging.StreamHandler(sys.stderr)
    sh.setLevel(level)
    sh.setFormatter(fmt)
    root_logger.addHandler(sh)

    logger.info("%s %s starting.", __app_name__, __version__)
