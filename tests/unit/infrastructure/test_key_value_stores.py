"""
Name: Key-Value Substrate Tests

Responsibilities:
  - Validate get/set/remove/keys/size semantics shared by every backend
  - Validate quota, serialization and corruption handling
  - Validate atomic persistence of the JSON file backend
"""

import json
import logging

import pytest

from bizstore.infrastructure.storage import (
    InMemoryKeyValueStore,
    JsonFileKeyValueStore,
    StorageQuotaExceededError,
    StorageSerializationError,
)

pytestmark = pytest.mark.unit


@pytest.fixture(params=["memory", "file"])
def backend(request, tmp_path):
    if request.param == "memory":
        return InMemoryKeyValueStore()
    return JsonFileKeyValueStore(tmp_path / "store.json")


class TestSharedContract:
    def test_missing_key_returns_default(self, backend):
        assert backend.get("nope") is None
        assert backend.get("nope", []) == []

    def test_set_then_get_roundtrip(self, backend):
        backend.set("db_admin_projects", [{"id": 1, "name": "Tower"}])
        assert backend.get("db_admin_projects") == [{"id": 1, "name": "Tower"}]

    def test_remove_and_keys(self, backend):
        backend.set("b", 1)
        backend.set("a", 2)
        backend.remove("b")
        backend.remove("never-existed")

        assert backend.keys() == ["a"]

    def test_size_counts_utf8_bytes(self, backend):
        backend.set("k", "ñ")
        # key (1) + '"ñ"' (4 bytes)
        assert backend.size() == 5

    def test_unserializable_value_raises(self, backend):
        with pytest.raises(StorageSerializationError):
            backend.set("k", {"when": object()})


class TestQuota:
    def test_write_over_quota_raises_and_keeps_previous_value(self):
        store = InMemoryKeyValueStore(quota_bytes=20)
        store.set("k", "small")

        with pytest.raises(StorageQuotaExceededError) as exc_info:
            store.set("k", "x" * 50)

        assert exc_info.value.error_code == "QUOTA_EXCEEDED"
        assert store.get("k") == "small"

    def test_replacing_a_value_does_not_double_count(self):
        store = InMemoryKeyValueStore(quota_bytes=12)
        store.set("k", "x" * 8)  # 1 + 10 bytes
        store.set("k", "y" * 8)

        assert store.get("k") == "y" * 8

    def test_stats(self):
        store = InMemoryKeyValueStore(quota_bytes=100)
        store.set("k", 1)

        assert store.stats() == {
            "backend": "memory",
            "keys": 1,
            "size_bytes": 2,
            "quota_bytes": 100,
        }


class TestCorruption:
    def test_corrupt_value_is_treated_as_missing(self, caplog):
        store = InMemoryKeyValueStore()
        store._write_raw("k", "{not json")

        with caplog.at_level(logging.WARNING, logger="bizstore"):
            assert store.get("k", "fallback") == "fallback"

        assert any("corrupto" in r.getMessage() for r in caplog.records)

    def test_clear(self):
        store = InMemoryKeyValueStore()
        store.set("k", 1)
        store.clear()
        assert store.keys() == []


class TestJsonFileBackend:
    def test_values_survive_reopen(self, tmp_path):
        path = tmp_path / "data" / "store.json"
        JsonFileKeyValueStore(path).set("k", {"a": 1})

        reopened = JsonFileKeyValueStore(path)

        assert reopened.get("k") == {"a": 1}
        assert json.loads(path.read_text(encoding="utf-8")) == {"k": '{"a":1}'}

    def test_no_temp_files_left_behind(self, tmp_path):
        store = JsonFileKeyValueStore(tmp_path / "store.json")
        store.set("a", 1)
        store.remove("a")

        assert sorted(p.name for p in tmp_path.iterdir()) == ["store.json"]

    def test_corrupt_document_starts_empty(self, tmp_path):
        path = tmp_path / "store.json"
        path.write_text("{{{", encoding="utf-8")

        store = JsonFileKeyValueStore(path)

        assert store.keys() == []
        assert (tmp_path / "store.json.corrupt").exists()
