"""Tests for the single-shot directory watch sessions."""

import os
import shutil

import pytest
from watchdog.events import (
    DirCreatedEvent,
    DirDeletedEvent,
    FileCreatedEvent,
    FileModifiedEvent,
    FileMovedEvent,
)

from readme_sync.errors import WatchError, WatchTimeout
from readme_sync.watcher import DirectoryWatcher, WatchSession


@pytest.fixture
def calls():
    return []


@pytest.fixture
def session(tmp_path, calls):
    # Not started: events are injected straight into the handler
    return WatchSession(tmp_path, calls.append)


def created(directory, name):
    return FileCreatedEvent(os.path.join(str(directory), name))


def test_first_qualifying_file_fires_once(tmp_path, session, calls):
    session.handler.dispatch(created(tmp_path, "readme.txt"))
    session.handler.dispatch(created(tmp_path, "other.txt"))
    session.handler.dispatch(created(tmp_path, "readme.txt"))

    assert calls == ["readme.txt"]
    assert session.wait(timeout=1) == "readme.txt"
    assert session.fired


def test_non_qualifying_events_are_ignored(tmp_path, session, calls):
    session.handler.dispatch(created(tmp_path, "setup.exe"))
    session.handler.dispatch(DirCreatedEvent(os.path.join(str(tmp_path), "docs.txt")))
    session.handler.dispatch(FileModifiedEvent(os.path.join(str(tmp_path), "readme.txt")))
    session.handler.dispatch(created(tmp_path / "nested", "readme.txt"))

    assert calls == []
    assert not session.future.done()


def test_file_renamed_into_place_fires(tmp_path, session, calls):
    session.handler.dispatch(
        FileMovedEvent(
            os.path.join(str(tmp_path), "readme.part"),
            os.path.join(str(tmp_path), "Readme.TXT"),
        )
    )
    assert calls == ["Readme.TXT"]


def test_no_delivery_after_close(tmp_path, session, calls):
    session.close()
    session.handler.dispatch(created(tmp_path, "readme.txt"))

    assert calls == []
    with pytest.raises(WatchError):
        session.wait(timeout=1)


def test_close_is_idempotent(tmp_path, session):
    session.handler.dispatch(created(tmp_path, "readme.txt"))
    session.close()
    session.close()
    assert session.wait(timeout=1) == "readme.txt"


def test_removed_directory_kills_the_session(tmp_path, session, calls):
    session.handler.dispatch(DirDeletedEvent(str(tmp_path)))
    session.handler.dispatch(created(tmp_path, "readme.txt"))

    assert calls == []
    with pytest.raises(WatchError):
        session.wait(timeout=1)


def test_callback_errors_do_not_prevent_delivery(tmp_path):
    def boom(name):
        raise RuntimeError(name)

    session = WatchSession(tmp_path, boom)
    session.handler.dispatch(created(tmp_path, "readme.txt"))
    assert session.wait(timeout=1) == "readme.txt"


def test_wait_times_out_and_closes(tmp_path, session):
    with pytest.raises(WatchTimeout):
        session.wait(timeout=0.2)
    session.handler.dispatch(created(tmp_path, "readme.txt"))
    assert not session.fired


def test_real_observer_detects_readme(tmp_path, calls):
    session = DirectoryWatcher().watch(tmp_path, calls.append)
    try:
        assert session.is_open
        (tmp_path / "install.log").write_text("unpacking", encoding="utf-8")
        (tmp_path / "readme.txt").write_text("Hello", encoding="utf-8")
        assert session.wait(timeout=10) == "readme.txt"
    finally:
        session.close()

    assert calls == ["readme.txt"]
    assert not session.is_open


def test_real_observer_reports_removed_directory(tmp_path):
    target = tmp_path / "mod"
    target.mkdir()
    session = DirectoryWatcher().watch(target)
    try:
        shutil.rmtree(target)
        with pytest.raises(WatchError) as info:
            session.wait(timeout=10)
        assert not isinstance(info.value, WatchTimeout)
    finally:
        session.close()


def test_watching_a_missing_directory_fails(tmp_path):
    with pytest.raises(WatchError):
        DirectoryWatcher().watch(tmp_path / "missing")


def test_readme_delivered_while_timing_out_is_kept(tmp_path, session, calls, monkeypatch):
    close = session.close

    def close_after_late_event():
        # The observer thread wins the race against the timeout
        session.handler.dispatch(created(tmp_path, "readme.txt"))
        close()

    monkeypatch.setattr(session, "close", close_after_late_event)

    assert session.wait(timeout=0.1) == "readme.txt"
    assert calls == ["readme.txt"]
    assert session.fired
