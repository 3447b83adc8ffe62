"""Tests for the device-local hidden-list preference."""

from __future__ import annotations

import json

from tasksync.preferences.hidden_lists import HiddenListPreferences


def test_missing_file_means_nothing_hidden(tmp_path):
    prefs = HiddenListPreferences(tmp_path / "hidden.json")

    assert prefs.hidden_ids == set()
    assert prefs.is_hidden("inbox") is False


def test_toggle_persists_across_instances(tmp_path):
    path = tmp_path / "nested" / "hidden.json"

    assert HiddenListPreferences(path).toggle("projects") is True

    reloaded = HiddenListPreferences(path)
    assert reloaded.is_hidden("projects") is True
    assert json.loads(path.read_text()) == ["projects"]


def test_toggle_twice_unhides(tmp_path):
    prefs = HiddenListPreferences(tmp_path / "hidden.json")

    prefs.toggle("projects")

    assert prefs.toggle("projects") is False
    assert prefs.hidden_ids == set()


def test_corrupt_file_is_ignored(tmp_path):
    path = tmp_path / "hidden.json"
    path.write_text("{not json")

    assert HiddenListPreferences(path).hidden_ids == set()


def test_non_array_file_is_ignored(tmp_path):
    path = tmp_path / "hidden.json"
    path.write_text(json.dumps({"inbox": True}))

    assert HiddenListPreferences(path).hidden_ids == set()


def test_cleanup_forgets_deleted_lists(tmp_path):
    path = tmp_path / "hidden.json"
    path.write_text(json.dumps(["inbox", "classroom-c9"]))
    prefs = HiddenListPreferences(path)

    prefs.cleanup(["inbox", "projects"])

    assert prefs.hidden_ids == {"inbox"}
    assert json.loads(path.read_text()) == ["inbox"]
