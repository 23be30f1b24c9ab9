"""Tests for the durable JSON store."""

import json
from unittest.mock import patch

import pytest

from core.operations.errors import StoreWriteError


class TestWrite:
    def test_round_trip(self, store):
        snapshot = {"op_1": {"name": "Thunder-01"}, "op_2": {"name": "Storm"}}

        assert store.save("active_operations", snapshot) is True

        assert store.load("active_operations") == snapshot
        assert not store.temp_path_for("active_operations").exists()

    def test_second_save_keeps_previous_as_backup(self, store):
        store.save("active_operations", {"op_1": {"v": 1}})
        store.save("active_operations", {"op_1": {"v": 2}})

        with open(store.backup_path_for("active_operations")) as f:
            assert json.load(f) == {"op_1": {"v": 1}}

    def test_failed_write_leaves_canonical_untouched(self, store):
        store.save("active_operations", {"op_1": {"v": 1}})

        with patch("core.operations.store.os.replace", side_effect=OSError("disk full")):
            with pytest.raises(StoreWriteError):
                store.write("active_operations", {"op_1": {"v": 2}})

        assert store.load("active_operations") == {"op_1": {"v": 1}}
        assert not store.temp_path_for("active_operations").exists()

    def test_save_swallows_errors(self, store):
        with patch("core.operations.store.os.replace", side_effect=OSError("disk full")):
            with patch("core.operations.store.sentry_sdk") as mock_sentry:
                assert store.save("active_operations", {"op_1": {}}) is False

        mock_sentry.capture_exception.assert_called_once()

    def test_unserializable_snapshot_is_rejected(self, store):
        assert store.save("active_operations", {"op_1": {"when": object()}}) is False
        assert not store.path_for("active_operations").exists()


class TestLoad:
    def test_missing_file_is_empty(self, store):
        assert store.load("active_operations") == {}

    def test_corrupt_file_recovers_from_backup(self, store):
        store.save("active_operations", {"op_1": {"v": 1}})
        store.save("active_operations", {"op_1": {"v": 2}})
        store.path_for("active_operations").write_text("{not json")

        result = store.load("active_operations")

        assert result == {"op_1": {"v": 1}}
        # Canonical file is readable again
        with open(store.path_for("active_operations")) as f:
            assert json.load(f) == {"op_1": {"v": 1}}
        with open(store.backup_path_for("active_operations")) as f:
            assert json.load(f) == {"op_1": {"v": 1}}
        assert not store.temp_path_for("active_operations").exists()

        assert store.save("active_operations", {"op_1": {"v": 3}}) is True
        assert store.load("active_operations") == {"op_1": {"v": 3}}
        assert not store.temp_path_for("active_operations").exists()

    def test_corrupt_file_without_backup_is_empty(self, store):
        store.data_dir.mkdir(parents=True, exist_ok=True)
        store.path_for("active_operations").write_text("garbage")

        with patch("core.operations.store.sentry_sdk") as mock_sentry:
            assert store.load("active_operations") == {}

        mock_sentry.capture_message.assert_called_once()

    def test_wrong_shape_counts_as_corrupt(self, store):
        store.data_dir.mkdir(parents=True, exist_ok=True)
        store.path_for("active_operations").write_text(json.dumps(["op_1"]))

        assert store.load("active_operations") == {}
