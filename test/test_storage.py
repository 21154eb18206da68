"""
Tests for client storage backends and expiring markers.
"""

import json
from datetime import datetime, timedelta, timezone

import pytest

from storefront.config import Settings
from storefront.exceptions import PersistenceError
from storefront.utils.storage import InMemoryStorage, JSONFileStorage, MarkerStore, create_storage


class TestInMemoryStorage:
    def test_set_get_remove(self):
        storage = InMemoryStorage()
        storage.set_item("k", "v")
        assert storage.get_item("k") == "v"

        storage.remove_item("k")
        assert storage.get_item("k") is None

    def test_remove_missing_key_is_noop(self):
        InMemoryStorage().remove_item("absent")

    def test_initial_items_copied(self):
        initial = {"k": "v"}
        storage = InMemoryStorage(initial)
        initial["k"] = "changed"
        assert storage.get_item("k") == "v"


class TestJSONFileStorage:
    def test_values_persist_across_instances(self, tmp_path):
        path = tmp_path / "client" / "storage.json"
        JSONFileStorage(path).set_item("arvyam_locale", "ta")

        assert JSONFileStorage(path).get_item("arvyam_locale") == "ta"
        assert json.loads(path.read_text()) == {"arvyam_locale": "ta"}

    def test_missing_file_reads_empty(self, tmp_path):
        assert JSONFileStorage(tmp_path / "absent.json").get_item("k") is None

    def test_remove_item(self, tmp_path):
        storage = JSONFileStorage(tmp_path / "storage.json")
        storage.set_item("a", "1")
        storage.set_item("b", "2")
        storage.remove_item("a")

        assert storage.get_item("a") is None
        assert storage.get_item("b") == "2"

    def test_corrupt_file_raises_persistence_error(self, tmp_path):
        path = tmp_path / "storage.json"
        path.write_text("{not json")

        with pytest.raises(PersistenceError):
            JSONFileStorage(path).get_item("k")

    def test_non_object_file_raises_persistence_error(self, tmp_path):
        path = tmp_path / "storage.json"
        path.write_text("[1, 2]")

        with pytest.raises(PersistenceError):
            JSONFileStorage(path).get_item("k")

    def test_non_string_value_reads_as_absent(self, tmp_path):
        path = tmp_path / "storage.json"
        path.write_text(json.dumps({"k": 5}))

        assert JSONFileStorage(path).get_item("k") is None


class TestMarkerStore:
    def test_marker_roundtrip(self):
        markers = MarkerStore(InMemoryStorage())
        markers.set_marker("arvy_consent_v1", "yes", 365)

        assert markers.get_marker("arvy_consent_v1") == "yes"

    def test_expired_marker_removed(self):
        storage = InMemoryStorage()
        markers = MarkerStore(storage)
        expires_at = markers.set_marker("m", "yes", 1)

        assert markers.get_marker("m", now=expires_at + timedelta(seconds=1)) is None
        assert storage.get_item(MarkerStore.PREFIX + "m") is None

    def test_marker_valid_until_expiry(self):
        markers = MarkerStore(InMemoryStorage())
        markers.set_marker("m", "yes", 1)
        almost = datetime.now(timezone.utc) + timedelta(hours=23)

        assert markers.get_marker("m", now=almost) == "yes"

    def test_unreadable_marker_discarded(self):
        storage = InMemoryStorage({MarkerStore.PREFIX + "m": "garbage"})

        assert MarkerStore(storage).get_marker("m") is None
        assert storage.get_item(MarkerStore.PREFIX + "m") is None

    def test_remove_marker(self):
        markers = MarkerStore(InMemoryStorage())
        markers.set_marker("m", "yes", 1)
        markers.remove_marker("m")

        assert markers.get_marker("m") is None


class TestCreateStorage:
    def test_in_memory_without_path(self):
        settings = Settings(_env_file=None, storage_path=None)
        assert isinstance(create_storage(settings), InMemoryStorage)

    def test_file_storage_with_path(self, tmp_path):
        settings = Settings(_env_file=None, storage_path=str(tmp_path / "s.json"))
        assert isinstance(create_storage(settings), JSONFileStorage)
