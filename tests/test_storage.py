import json
from unittest.mock import patch

import pytest

from domain.errors import StorageWriteFailure
from storage import JsonFileStorage, MemoryStorage, SQLiteStorage


@pytest.fixture(params=["memory", "json", "sqlite"])
def backend(request, tmp_path):
    if request.param == "memory":
        yield MemoryStorage()
    elif request.param == "json":
        yield JsonFileStorage(str(tmp_path / "store.json"))
    else:
        storage = SQLiteStorage(str(tmp_path / "store.db"))
        yield storage
        storage.close()


class TestKeyValueContract:
    def test_missing_key(self, backend):
        assert backend.get_item("budgeto.missing") is None

    def test_set_get_overwrite(self, backend):
        backend.set_item("budgeto.theme", "dark")
        backend.set_item("budgeto.theme", "light")
        assert backend.get_item("budgeto.theme") == "light"

    def test_remove(self, backend):
        backend.set_item("budgeto.a", "1")
        backend.remove_item("budgeto.a")
        backend.remove_item("budgeto.never-set")
        assert backend.get_item("budgeto.a") is None

    def test_keys(self, backend):
        backend.set_item("budgeto.b", "2")
        backend.set_item("other.c", "3")
        assert sorted(backend.keys()) == ["budgeto.b", "other.c"]

    def test_unicode_values(self, backend):
        backend.set_item("budgeto.note", "Føtex – 12,50 €")
        assert backend.get_item("budgeto.note") == "Føtex – 12,50 €"


class TestJsonFileStorage:
    def test_instances_share_the_file(self, tmp_path):
        path = str(tmp_path / "store.json")
        JsonFileStorage(path).set_item("budgeto.locale", "da")
        assert JsonFileStorage(path).get_item("budgeto.locale") == "da"

    def test_file_is_a_flat_json_object(self, tmp_path):
        path = tmp_path / "store.json"
        JsonFileStorage(str(path)).set_item("budgeto.lock", "123")
        assert json.loads(path.read_text(encoding="utf-8")) == {"budgeto.lock": "123"}

    def test_corrupt_file_reads_as_empty(self, tmp_path):
        path = tmp_path / "store.json"
        path.write_text("{not json", encoding="utf-8")
        storage = JsonFileStorage(str(path))
        assert storage.keys() == []
        storage.set_item("budgeto.theme", "auto")
        assert storage.get_item("budgeto.theme") == "auto"

    def test_creates_parent_directory(self, tmp_path):
        path = tmp_path / "nested" / "dir" / "store.json"
        JsonFileStorage(str(path)).set_item("k", "v")
        assert path.exists()

    def test_os_error_becomes_storage_write_failure(self, tmp_path):
        storage = JsonFileStorage(str(tmp_path / "store.json"))
        with patch("storage.json_storage.os.replace", side_effect=OSError("disk full")):
            with pytest.raises(StorageWriteFailure, match="disk full"):
                storage.set_item("budgeto.appstate", "{}")
        assert storage.get_item("budgeto.appstate") is None
        assert [p.name for p in tmp_path.iterdir()] == []


class TestMemoryStorage:
    def test_quota_exceeded(self):
        storage = MemoryStorage(quota_chars=20)
        storage.set_item("k", "short")
        with pytest.raises(StorageWriteFailure, match="quota"):
            storage.set_item("big", "x" * 50)
        assert storage.get_item("big") is None
        assert storage.get_item("k") == "short"

    def test_overwrite_counts_only_new_value(self):
        storage = MemoryStorage(quota_chars=10)
        storage.set_item("k", "123456789")
        storage.set_item("k", "987654321")
        assert storage.get_item("k") == "987654321"

    def test_snapshot_is_a_copy(self):
        storage = MemoryStorage({"a": "1"})
        snapshot = storage.snapshot()
        snapshot["a"] = "2"
        assert storage.get_item("a") == "1"


class TestSQLiteStorage:
    def test_persists_across_connections(self, tmp_path):
        path = str(tmp_path / "store.db")
        storage = SQLiteStorage(path)
        storage.set_item("budgeto.appstate", '{"version": 2}')
        storage.close()

        reopened = SQLiteStorage(path)
        try:
            assert reopened.get_item("budgeto.appstate") == '{"version": 2}'
        finally:
            reopened.close()
