"""Tests for readme validation against disk."""

import pytest

from readme_sync.errors import (
    ConfigurationError,
    IoError,
    MismatchError,
    MissingAttributeError,
)
from readme_sync.store import NOT_FOUND, Item, MemoryMetadataStore, Present
from readme_sync.validator import BatchValidator


@pytest.fixture
def store():
    return MemoryMetadataStore()


@pytest.fixture
def validator(store, install_root):
    return BatchValidator(store, lambda: str(install_root))


def make_item(install_root, item_id, files=None):
    directory = install_root / item_id
    directory.mkdir()
    for name, content in (files or {}).items():
        (directory / name).write_text(content, encoding="utf-8")
    return directory


def test_no_readme_and_not_found_marker_passes(validator, store, install_root):
    for item_id in ("mod-1", "mod-2"):
        make_item(install_root, item_id, {"data.bin": "x"})
        store.set(item_id, "readme", NOT_FOUND)

    validator.validate_all([Item("mod-1"), Item("mod-2", "enabled")])


def test_matching_readme_passes(validator, store, install_root):
    make_item(install_root, "mod-42", {"readme.txt": "Hello"})
    store.set("mod-42", "readme", Present("Hello"))

    validator.validate_all([Item("mod-42")])
    assert validator.check().ok


def test_one_character_difference_is_a_mismatch(validator, store, install_root):
    make_item(install_root, "mod-1", {"readme.txt": "Hello"})
    store.set("mod-1", "readme", Present("Hellp"))
    make_item(install_root, "mod-2", {"readme.txt": "Other"})
    store.set("mod-2", "readme", Present("wrong"))

    with pytest.raises(MismatchError) as info:
        validator.validate_all([Item("mod-1"), Item("mod-2")])
    assert info.value.item_id == "mod-1"


def test_comparison_is_case_and_whitespace_sensitive(validator, store, install_root):
    make_item(install_root, "mod-1", {"readme.txt": "hello\n"})
    store.set("mod-1", "readme", Present("Hello\n"))
    with pytest.raises(MismatchError):
        validator.validate_all([Item("mod-1")])

    store.set("mod-1", "readme", Present("hello"))
    with pytest.raises(MismatchError):
        validator.validate_all([Item("mod-1")])


def test_new_readme_after_not_found_is_a_mismatch(validator, store, install_root):
    directory = make_item(install_root, "mod-7")
    store.set("mod-7", "readme", NOT_FOUND)
    validator.validate_all([Item("mod-7")])

    (directory / "notes.txt").write_text("X", encoding="utf-8")

    with pytest.raises(MismatchError) as info:
        validator.validate_all([Item("mod-7")])
    assert info.value.item_id == "mod-7"


def test_recorded_readme_without_file_is_a_mismatch(validator, store, install_root):
    make_item(install_root, "mod-1")
    store.set("mod-1", "readme", Present("Hello"))
    with pytest.raises(MismatchError):
        validator.validate_all([Item("mod-1")])


def test_marker_text_on_disk_is_not_confused_with_the_marker(validator, store, install_root):
    make_item(install_root, "mod-1", {"readme.txt": "No readme found"})
    store.set("mod-1", "readme", NOT_FOUND)
    with pytest.raises(MismatchError):
        validator.validate_all([Item("mod-1")])


def test_missing_attribute_stops_the_batch(validator, store, install_root):
    make_item(install_root, "mod-1")
    make_item(install_root, "mod-2", {"readme.txt": "a"})
    store.set("mod-2", "readme", Present("b"))

    with pytest.raises(MissingAttributeError) as info:
        validator.validate_all([Item("mod-1"), Item("mod-2")])
    assert info.value.item_id == "mod-1"


def test_untracked_states_are_skipped(validator, store, install_root):
    make_item(install_root, "mod-1", {"readme.txt": "a"})
    validator.validate_all([Item("mod-1", "disabled"), Item("mod-2", "downloaded")])


def test_missing_directory_is_an_io_error(validator, store):
    store.set("ghost", "readme", NOT_FOUND)
    with pytest.raises(IoError):
        validator.validate_all([Item("ghost")])


def test_lexicographically_first_readme_is_compared(validator, store, install_root):
    make_item(install_root, "mod-1", {"b.txt": "second", "a.txt": "first"})
    store.set("mod-1", "readme", Present("first"))
    validator.validate_all([Item("mod-1")])


def test_missing_install_root_is_a_configuration_error(store):
    store.set("mod-1", "readme", NOT_FOUND)
    with pytest.raises(ConfigurationError):
        BatchValidator(store, lambda: None).validate_all([Item("mod-1")])


def test_check_reports_a_single_message(validator, store, install_root):
    make_item(install_root, "mod-1", {"readme.txt": "disk"})
    store.set("mod-1", "readme", Present("recorded"))

    result = validator.check()

    assert not result.ok
    assert result.item_id == "mod-1"
    assert "mod-1" in result.message
    assert isinstance(result.error, MismatchError)


def test_validation_does_not_mutate_the_store(validator, store, install_root):
    make_item(install_root, "mod-1", {"readme.txt": "disk"})
    store.set("mod-1", "readme", Present("recorded"))
    notified = []
    store.add_listener(lambda: notified.append(True))

    validator.check()

    assert store.get("mod-1", "readme") == Present("recorded")
    assert notified == []
