"""Tests for the versioned settings store."""

import json

import pytest

from graphitegit.errors import SettingsError, SettingsVersionError
from graphitegit.settings import SettingsStore


def test_missing_file_is_empty(temp_dir):
    """Test loading when no file exists yet."""
    store = SettingsStore(temp_dir / "settings.json")

    assert store.to_dict() == {}
    assert store.get("agent_model") is None
    assert store.get_bool("include_selection", True) is True


def test_save_and_reload(temp_dir):
    """Test persisting values with a version tag."""
    path = temp_dir / "nested" / "settings.json"
    store = SettingsStore(path)
    store.set("agent_model", "anthropic:claude-haiku-4-5")
    store.set_bool("include_selection", False)
    store.save()

    raw = json.loads(path.read_text())
    assert raw == {
        "version": 1,
        "values": {"agent_model": "anthropic:claude-haiku-4-5", "include_selection": "false"},
    }

    reloaded = SettingsStore(path)
    assert reloaded.get("agent_model") == "anthropic:claude-haiku-4-5"
    assert reloaded.get_bool("include_selection", True) is False


def test_set_none_removes_key(temp_dir):
    """Test that None deletes a value."""
    store = SettingsStore(temp_dir / "settings.json")
    store.set("github_token", "abc")
    store.set("github_token", None)

    assert store.get("github_token") is None


def test_legacy_file_is_migrated(temp_dir):
    """Test migrating an unversioned flat file."""
    path = temp_dir / "settings.json"
    path.write_text(json.dumps({"agent_model": "anthropic:claude-opus-4-1", "include_repo_map": "false"}))

    store = SettingsStore(path)

    assert store.migrated
    assert store.get("agent_model") == "anthropic:claude-opus-4-1"
    assert json.loads(path.read_text())["version"] == 1


def test_newer_version_is_refused(temp_dir):
    """Test that a file from a newer release is not overwritten."""
    path = temp_dir / "settings.json"
    path.write_text(json.dumps({"version": 99, "values": {}}))

    with pytest.raises(SettingsVersionError):
        SettingsStore(path)


def test_corrupt_file_is_set_aside(temp_dir):
    """Test that unreadable JSON yields empty settings and survives a save."""
    path = temp_dir / "settings.json"
    path.write_text("{not json")

    store = SettingsStore(path)

    assert store.to_dict() == {}
    assert store.backup_path == temp_dir / "settings.json.bak"
    assert store.backup_path.read_text() == "{not json"
    assert not path.exists()

    store.set("agent_model", "anthropic:claude-haiku-4-5")
    store.save()

    assert store.backup_path.read_text() == "{not json"
    assert json.loads(path.read_text())["values"] == {"agent_model": "anthropic:claude-haiku-4-5"}


def test_non_object_file_is_set_aside(temp_dir):
    """Test that valid JSON of the wrong shape is treated as damaged."""
    path = temp_dir / "settings.json"
    path.write_text("[1, 2]")

    store = SettingsStore(path)

    assert store.to_dict() == {}
    assert store.backup_path.read_text() == "[1, 2]"


def test_unreadable_file_raises(temp_dir):
    """Test that a path that cannot be opened is reported."""
    path = temp_dir / "settings.json"
    path.mkdir()

    with pytest.raises(SettingsError):
        SettingsStore(path)
