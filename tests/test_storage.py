"""Tests for key/value storage and display preferences."""
import pytest

from store.storage import (
    CLOCK_FORMAT_KEY,
    LANGUAGE_KEY,
    TIMEZONE_KEY,
    JsonFileStorage,
    MemoryStorage,
    Preferences,
)


def test_json_file_storage_persists_across_instances(tmp_path):
    path = tmp_path / "state" / "storage.json"
    storage = JsonFileStorage(path)
    storage.set_item("a", "1")
    storage.set_item("b", "2")
    storage.remove_item("a")

    reopened = JsonFileStorage(path)
    assert reopened.get_item("a") is None
    assert reopened.get_item("b") == "2"
    assert list(reopened.keys()) == ["b"]


def test_json_file_storage_ignores_unreadable_file(tmp_path):
    path = tmp_path / "storage.json"
    path.write_text("not json", encoding="utf-8")
    storage = JsonFileStorage(path)
    assert list(storage.keys()) == []


def test_preferences_defaults():
    prefs = Preferences(MemoryStorage())
    assert prefs.clock_format == "12h"
    assert prefs.timezone == "UTC"
    assert prefs.language == "en"
    assert prefs.is_rtl is False


def test_preferences_round_trip():
    storage = MemoryStorage()
    prefs = Preferences(storage)
    prefs.clock_format = "24h"
    prefs.timezone = "Asia/Dubai"
    prefs.language = "ar"

    assert storage.get_item(TIMEZONE_KEY) == "Asia/Dubai"
    assert prefs.clock_format == "24h"
    assert prefs.is_rtl is True


def test_preferences_reject_invalid_values():
    prefs = Preferences(MemoryStorage())
    with pytest.raises(ValueError):
        prefs.clock_format = "36h"
    with pytest.raises(ValueError):
        prefs.timezone = "Mars/Olympus_Mons"
    with pytest.raises(ValueError):
        prefs.language = "de"


def test_bad_stored_values_read_as_defaults():
    storage = MemoryStorage({CLOCK_FORMAT_KEY: "13h", TIMEZONE_KEY: "Nowhere/Land", LANGUAGE_KEY: "xx"})
    prefs = Preferences(storage)
    assert prefs.clock_format == "12h"
    assert prefs.timezone == "UTC"
    assert prefs.language == "en"
