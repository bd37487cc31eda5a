"""Shared fakes for the Readme Sync tests."""

from __future__ import annotations

import os
import threading
from collections.abc import Callable

import pytest

from readme_sync.config import Config
from readme_sync.errors import WatchError
from readme_sync.store import MemoryMetadataStore


class FakeSession:
    """Stands in for a WatchSession whose outcome is decided up front."""

    def __init__(self, directory: str, outcome: Callable[[str], str]):
        self.directory = directory
        self._outcome = outcome
        self.close_calls = 0

    def wait(self, timeout=None) -> str:
        return self._outcome(self.directory)

    def close(self) -> None:
        self.close_calls += 1


class BlockingSession:
    """A session that never fires; close() makes wait() fail."""

    def __init__(self, directory: str):
        self.directory = directory
        self.watching = threading.Event()
        self._closed = threading.Event()

    def wait(self, timeout=None) -> str:
        self.watching.set()
        self._closed.wait(timeout=10)
        raise WatchError("closed")

    def close(self) -> None:
        self._closed.set()


class ScriptedWatcher:
    """DirectoryWatcher replacement driven by a list of outcomes.

    Each outcome receives the watched directory and returns the readme
    file name, or raises to simulate a failed watch.  The last outcome
    repeats once the script runs out.
    """

    def __init__(self, *outcomes: Callable[[str], str]):
        self._outcomes = list(outcomes)
        self.directories: list[str] = []
        self.sessions: list[FakeSession] = []

    def watch(self, directory, on_qualifying_file=None):
        self.directories.append(str(directory))
        index = min(len(self.directories), len(self._outcomes)) - 1
        session = FakeSession(str(directory), self._outcomes[index])
        self.sessions.append(session)
        return session


class BlockingWatcher:
    def __init__(self):
        self.sessions: list[BlockingSession] = []

    def watch(self, directory, on_qualifying_file=None):
        session = BlockingSession(str(directory))
        self.sessions.append(session)
        return session


class RecordingStore(MemoryMetadataStore):
    """In-memory store that remembers every attribute write."""

    def __init__(self):
        super().__init__()
        self.writes: list[tuple] = []

    def set(self, item_id, attribute, value):
        self.writes.append((item_id, attribute, value))
        super().set(item_id, attribute, value)


def write_readme(name: str, content: str) -> Callable[[str], str]:
    """Outcome that drops *name* into the directory and reports it."""

    def _outcome(directory: str) -> str:
        with open(os.path.join(directory, name), "w", encoding="utf-8", newline="") as fh:
            fh.write(content)
        return name

    return _outcome


def report_only(name: str) -> Callable[[str], str]:
    """Outcome that reports *name* without it existing on disk."""

    def _outcome(directory: str) -> str:
        return name

    return _outcome


def watch_fails(message: str = "watch died") -> Callable[[str], str]:
    def _outcome(directory: str) -> str:
        raise WatchError(message)

    return _outcome


@pytest.fixture
def install_root(tmp_path):
    root = tmp_path / "mods"
    root.mkdir()
    return root


@pytest.fixture
def store():
    return RecordingStore()


@pytest.fixture
def config(tmp_path, install_root):
    cfg = Config(tmp_path / "config.json")
    cfg.install_root = str(install_root)
    cfg.play_sound_on_error = False
    cfg.stable_time = 0
    return cfg
